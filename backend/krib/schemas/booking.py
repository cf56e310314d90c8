# krib/schemas/booking.py
from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field

from krib.core.config import settings
from krib.core.enums import BookingStatus
from krib.schemas.base import CamelModel
from krib.schemas.property import PropertySummary


class EmergencyContact(CamelModel):
    name: str
    phone: str
    relationship: str


class GuestInfo(CamelModel):
    first_name: str
    last_name: str
    email: EmailStr
    phone: str
    nationality: str
    emirates_id: Optional[str] = None
    emergency_contact: Optional[EmergencyContact] = None


class BookingCreate(CamelModel):
    property_id: int
    check_in: datetime
    check_out: datetime
    guests: int = Field(ge=1, le=settings.MAX_GUESTS_PER_BOOKING)
    message: Optional[str] = None
    special_requests: Optional[str] = None
    guest_info: GuestInfo


class BookingUpdate(CamelModel):
    status: Optional[BookingStatus] = None
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    guests: Optional[int] = Field(default=None, ge=1, le=settings.MAX_GUESTS_PER_BOOKING)
    special_requests: Optional[str] = None


class BookingCancel(CamelModel):
    reason: Optional[str] = None


class BookingOut(CamelModel):
    id: int
    property_id: int
    guest_id: int
    check_in: datetime
    check_out: datetime
    guests: int
    nightly_rate: float
    base_amount: float
    cleaning_fee: float
    service_fee: float
    total_amount: float
    status: BookingStatus
    special_requests: Optional[str] = None
    guest_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    property: Optional[PropertySummary] = None


class BookingCancelled(CamelModel):
    message: str = "Booking cancelled successfully"
    booking: BookingOut


class BookingsPage(CamelModel):
    bookings: List[BookingOut]
    total: int


class ConflictingBooking(CamelModel):
    check_in: datetime
    check_out: datetime
    status: BookingStatus


class AvailabilityOut(CamelModel):
    available: bool
    conflicting_bookings: List[ConflictingBooking]
