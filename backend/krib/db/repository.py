# krib/db/repository.py
"""
Storage seam for the booking lifecycle.

BookingService depends on the BookingRepository protocol only; the
SQLAlchemy implementation below is built once in create_app() and every
multi-row write it performs runs in a single transaction.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from krib.core.enums import BLOCKING_STATUSES, BookingStatus, statuses_leading_to
from krib.core.errors import (
    BookingValidationError,
    DatesUnavailableError,
    InvalidStatusTransitionError,
    NotFoundError,
)
from krib.db import crud_bookings, crud_payments, crud_properties
from krib.db.models import Booking, Payment, Property, utcnow

logger = logging.getLogger(__name__)

UNAVAILABLE_DATES = "Property is not available for the selected dates"
NOT_CANCELLABLE = "Booking cannot be cancelled"
NOT_MODIFIABLE = "Booking can no longer be modified"


class BookingRepository(Protocol):
    async def get_property(self, property_id: int) -> Optional[Property]: ...

    async def get_booking(self, booking_id: int) -> Optional[Booking]: ...

    async def find_conflicts(
        self,
        property_id: int,
        check_in: datetime,
        check_out: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> List[Booking]: ...

    async def list_bookings(self, **filters: Any) -> List[Booking]: ...

    async def create_booking(
        self, booking: Booking, payments: Sequence[Payment]
    ) -> Booking: ...

    async def update_booking(
        self,
        booking_id: int,
        changes: Dict[str, Any],
        *,
        recheck_dates: bool = False,
    ) -> Booking: ...

    async def cancel_booking(
        self, booking_id: int, *, reason: str, cancelled_by: int
    ) -> Booking: ...

    async def get_payment(self, payment_id: int) -> Optional[Payment]: ...

    async def list_payments(self, **filters: Any) -> List[Payment]: ...


class SqlBookingRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_property(self, property_id: int) -> Optional[Property]:
        async with self._session_factory() as db:
            return await crud_properties.get_property(db, property_id)

    async def get_booking(self, booking_id: int) -> Optional[Booking]:
        async with self._session_factory() as db:
            return await crud_bookings.get_booking(db, booking_id)

    async def find_conflicts(
        self,
        property_id: int,
        check_in: datetime,
        check_out: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> List[Booking]:
        async with self._session_factory() as db:
            return await crud_bookings.find_conflicts(
                db, property_id, check_in, check_out, exclude_booking_id
            )

    async def list_bookings(self, **filters: Any) -> List[Booking]:
        async with self._session_factory() as db:
            return await crud_bookings.list_bookings(db, **filters)

    async def create_booking(
        self, booking: Booking, payments: Sequence[Payment]
    ) -> Booking:
        """
        Insert the booking and its payment rows atomically.

        The property row is locked and conflicts re-checked inside the
        transaction, so two overlapping requests cannot both commit.
        """
        async with self._session_factory() as db:
            async with db.begin():
                prop = await crud_properties.get_property(
                    db, booking.property_id, for_update=True
                )
                if prop is None:
                    raise NotFoundError("Property not found")
                conflicts = await crud_bookings.find_conflicts(
                    db, booking.property_id, booking.check_in, booking.check_out
                )
                if conflicts:
                    raise DatesUnavailableError(UNAVAILABLE_DATES)

                await crud_bookings.add_booking(db, booking)
                for payment in payments:
                    payment.booking_id = booking.id
                    await crud_payments.add_payment(db, payment)

            # committed; reload with the property attached
            return await crud_bookings.get_booking(db, booking.id)

    async def update_booking(
        self,
        booking_id: int,
        changes: Dict[str, Any],
        *,
        recheck_dates: bool = False,
    ) -> Booking:
        """
        Apply ``changes`` in one transaction.

        The status guard is part of the UPDATE itself: a status move only
        lands from a status that may lead to it, and date or guest edits
        only land on an open booking.
        """
        changes = dict(changes)
        target = changes.get("status")
        if target is not None:
            allowed = statuses_leading_to(BookingStatus(target))
        elif set(changes) - {"special_requests"}:
            allowed = set(BLOCKING_STATUSES)
        else:
            allowed = set(BookingStatus)

        async with self._session_factory() as db:
            async with db.begin():
                if recheck_dates:
                    current = await crud_bookings.get_booking(db, booking_id)
                    if current is None:
                        raise NotFoundError("Booking not found")
                    await crud_properties.get_property(
                        db, current.property_id, for_update=True
                    )
                    conflicts = await crud_bookings.find_conflicts(
                        db,
                        current.property_id,
                        changes.get("check_in", current.check_in),
                        changes.get("check_out", current.check_out),
                        exclude_booking_id=booking_id,
                    )
                    if conflicts:
                        raise DatesUnavailableError(UNAVAILABLE_DATES)

                if not await crud_bookings.update_if_status(db, booking_id, allowed, **changes):
                    current = await crud_bookings.get_booking(db, booking_id)
                    if current is None:
                        raise NotFoundError("Booking not found")
                    if target is not None:
                        raise InvalidStatusTransitionError(
                            f"Cannot change booking status from {current.status} to {target}"
                        )
                    raise BookingValidationError(NOT_MODIFIABLE)

                if "total_amount" in changes:
                    await crud_payments.reprice_pending_booking_payment(
                        db, booking_id, Decimal(changes["total_amount"])
                    )
                if "check_in" in changes:
                    await crud_payments.reschedule_pending_deposit(
                        db, booking_id, changes["check_in"]
                    )

            return await crud_bookings.get_booking(db, booking_id)

    async def cancel_booking(
        self, booking_id: int, *, reason: str, cancelled_by: int
    ) -> Booking:
        async with self._session_factory() as db:
            async with db.begin():
                now = utcnow()
                cancelled = await crud_bookings.update_if_status(
                    db,
                    booking_id,
                    BLOCKING_STATUSES,
                    status=BookingStatus.CANCELLED.value,
                    cancellation_reason=reason,
                    cancelled_at=now,
                    cancelled_by=cancelled_by,
                    updated_at=now,
                )
                if not cancelled:
                    if await crud_bookings.get_booking(db, booking_id) is None:
                        raise NotFoundError("Booking not found")
                    raise InvalidStatusTransitionError(NOT_CANCELLABLE)

                released = await crud_payments.cancel_pending_payments(db, booking_id)
                logger.info(
                    "Booking %s cancelled; %s pending payment(s) cancelled",
                    booking_id,
                    released,
                )

            return await crud_bookings.get_booking(db, booking_id)

    async def get_payment(self, payment_id: int) -> Optional[Payment]:
        async with self._session_factory() as db:
            return await crud_payments.get_payment(db, payment_id)

    async def list_payments(self, **filters: Any) -> List[Payment]:
        async with self._session_factory() as db:
            return await crud_payments.list_payments(db, **filters)
