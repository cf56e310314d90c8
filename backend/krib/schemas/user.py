# krib/schemas/user.py
from typing import Optional

from pydantic import EmailStr, Field

from krib.schemas.base import CamelModel


class UserOut(CamelModel):
    id: int
    name: str
    email: EmailStr
    phone: Optional[str] = None
    role: str


class UserCreate(CamelModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=8)
    phone: Optional[str] = None
    # hosts can list properties; everyone else signs up as a guest
    is_host: bool = False


class UserLogin(CamelModel):
    email: EmailStr
    password: str
