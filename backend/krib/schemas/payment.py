# krib/schemas/payment.py
from datetime import datetime
from typing import Optional

from krib.schemas.base import CamelModel


class PaymentOut(CamelModel):
    id: int
    booking_id: int
    property_id: int
    amount: float
    currency: str
    type: str
    method: str
    status: str
    due_date: Optional[datetime] = None
    description: Optional[str] = None
    created_at: datetime
