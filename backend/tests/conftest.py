from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from itertools import count
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from krib.core.config import Settings
from krib.core.enums import BLOCKING_STATUSES, BookingStatus, PaymentStatus, PaymentType
from krib.core.errors import InvalidStatusTransitionError, NotFoundError
from krib.db.models import Property
from krib.db.repository import NOT_CANCELLABLE
from krib.main import create_app
from krib.services.booking_service import BookingService
from krib.services.pricing import ranges_overlap


NOW = datetime(2026, 1, 1, 12, 0, 0)


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeBookingRepository:
    """In-memory stand-in for SqlBookingRepository."""

    def __init__(self) -> None:
        self.properties: dict[int, Property] = {}
        self.bookings: dict = {}
        self.payments: dict = {}
        self._booking_ids = count(1)
        self._payment_ids = count(1)

    def add_property(self, **overrides) -> Property:
        fields = {
            "id": 10,
            "host_id": 2,
            "title": "Marina Loft",
            "city": "Dubai Marina",
            "emirate": "Dubai",
            "base_price": Decimal("500"),
            "cleaning_fee": Decimal("100"),
            "security_deposit": Decimal("1000"),
            "guests": 4,
            "is_instant_book": False,
            "is_active": True,
        }
        fields.update(overrides)
        prop = Property(**fields)
        self.properties[prop.id] = prop
        return prop

    async def get_property(self, property_id):
        return self.properties.get(property_id)

    async def get_booking(self, booking_id):
        return self.bookings.get(booking_id)

    async def find_conflicts(self, property_id, check_in, check_out, exclude_booking_id=None):
        blocking = {s.value for s in BLOCKING_STATUSES}
        return [
            b
            for b in self.bookings.values()
            if b.property_id == property_id
            and b.id != exclude_booking_id
            and b.status in blocking
            and ranges_overlap(b.check_in, b.check_out, check_in, check_out)
        ]

    async def list_bookings(self, guest_id=None, host_id=None, status=None,
                            property_id=None, created_from=None,
                            created_to=None, limit=20, offset=0):
        items = list(self.bookings.values())
        if guest_id is not None:
            items = [b for b in items if b.guest_id == guest_id]
        if host_id is not None:
            items = [b for b in items if b.property.host_id == host_id]
        if status:
            items = [b for b in items if b.status == status]
        if property_id is not None:
            items = [b for b in items if b.property_id == property_id]
        if created_from is not None:
            items = [b for b in items if b.created_at >= created_from]
        if created_to is not None:
            items = [b for b in items if b.created_at <= created_to]
        return items[offset:offset + limit]

    async def create_booking(self, booking, payments):
        booking.id = next(self._booking_ids)
        booking.created_at = booking.updated_at = NOW
        booking.property = self.properties[booking.property_id]
        self.bookings[booking.id] = booking
        for payment in payments:
            payment.id = next(self._payment_ids)
            payment.booking_id = booking.id
            payment.created_at = NOW
            self.payments[payment.id] = payment
        return booking

    async def update_booking(self, booking_id, changes, *, recheck_dates=False):
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        for key, value in changes.items():
            setattr(booking, key, value)
        if "total_amount" in changes:
            for payment in self.payments_for(booking_id):
                if (payment.type == PaymentType.BOOKING_PAYMENT.value
                        and payment.status == PaymentStatus.PENDING.value):
                    payment.amount = changes["total_amount"]
        if "check_in" in changes:
            for payment in self.payments_for(booking_id):
                if (payment.type == PaymentType.SECURITY_DEPOSIT.value
                        and payment.status == PaymentStatus.PENDING.value):
                    payment.due_date = changes["check_in"]
        return booking

    async def cancel_booking(self, booking_id, *, reason, cancelled_by):
        booking = self.bookings[booking_id]
        if booking.status not in {s.value for s in BLOCKING_STATUSES}:
            raise InvalidStatusTransitionError(NOT_CANCELLABLE)
        booking.status = BookingStatus.CANCELLED.value
        booking.cancellation_reason = reason
        booking.cancelled_by = cancelled_by
        booking.cancelled_at = NOW
        for payment in self.payments_for(booking_id):
            if payment.status == PaymentStatus.PENDING.value:
                payment.status = PaymentStatus.CANCELLED.value
        return booking

    async def get_payment(self, payment_id):
        return self.payments.get(payment_id)

    async def list_payments(self, user_id=None, booking_id=None, status=None):
        items = list(self.payments.values())
        if user_id is not None:
            items = [p for p in items if p.user_id == user_id]
        if booking_id is not None:
            items = [p for p in items if p.booking_id == booking_id]
        if status:
            items = [p for p in items if p.status == status]
        return items

    def payments_for(self, booking_id):
        return [p for p in self.payments.values() if p.booking_id == booking_id]


@pytest.fixture
def repository() -> FakeBookingRepository:
    repo = FakeBookingRepository()
    repo.add_property()
    return repo


@pytest.fixture
def service(repository) -> BookingService:
    return BookingService(repository=repository, settings=Settings(), clock=lambda: NOW)


@pytest.fixture
def guest():
    return SimpleNamespace(id=1, role="guest")


@pytest.fixture
def host():
    return SimpleNamespace(id=2, role="host")


@pytest.fixture
def stranger():
    return SimpleNamespace(id=99, role="guest")


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def client(tmp_path):
    """App wired to a throwaway SQLite file; tables come from the lifespan."""
    settings = Settings(DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'krib.db'}")
    with TestClient(create_app(settings)) as test_client:
        yield test_client
