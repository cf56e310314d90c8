# krib/schemas/auth.py
from typing import Optional

from pydantic import BaseModel

from krib.schemas.user import UserOut


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: Optional[UserOut] = None

    model_config = {"from_attributes": True}


class RefreshRequest(BaseModel):
    refresh: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def token(self) -> Optional[str]:
        # accept both "refresh" (frontend) and "refresh_token"
        return self.refresh or self.refresh_token
