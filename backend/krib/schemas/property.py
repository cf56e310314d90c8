# krib/schemas/property.py
from decimal import Decimal
from typing import Optional

from pydantic import Field

from krib.schemas.base import CamelModel


class PropertySummary(CamelModel):
    id: int
    host_id: int
    title: str
    city: str
    emirate: Optional[str] = None
    base_price: float


class PropertyOut(PropertySummary):
    description: Optional[str] = None
    cleaning_fee: Optional[float] = None
    security_deposit: Optional[float] = None
    guests: int
    is_instant_book: bool
    is_active: bool


class PropertyCreate(CamelModel):
    title: str = Field(min_length=1)
    description: str = ""
    city: str = Field(min_length=1)
    emirate: Optional[str] = None
    base_price: Decimal = Field(gt=0)
    cleaning_fee: Optional[Decimal] = Field(default=None, ge=0)
    security_deposit: Optional[Decimal] = Field(default=None, ge=0)
    guests: int = Field(ge=1)
    is_instant_book: bool = False
    is_active: bool = True


class PropertyUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    city: Optional[str] = None
    emirate: Optional[str] = None
    base_price: Optional[Decimal] = Field(default=None, gt=0)
    cleaning_fee: Optional[Decimal] = Field(default=None, ge=0)
    security_deposit: Optional[Decimal] = Field(default=None, ge=0)
    guests: Optional[int] = Field(default=None, ge=1)
    is_instant_book: Optional[bool] = None
    is_active: Optional[bool] = None


class PropertiesPage(CamelModel):
    items: list[PropertyOut]
    total: int
    page: int
    per_page: int
