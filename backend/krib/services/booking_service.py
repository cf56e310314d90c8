# krib/services/booking_service.py
"""
Booking lifecycle: validation, pricing, status changes, cancellation.

Validation for a new booking runs in a fixed order and stops at the first
failure:

  1. check-out after check-in
  2. check-in in the future
  3. property exists and is active
  4. guest count within capacity
  5. no PENDING/CONFIRMED booking overlapping [check_in, check_out)

The repository repeats step 5 under a row lock when it inserts.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from krib.core.config import Settings, get_settings
from krib.core.enums import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    UserRole,
)
from krib.core.errors import (
    BookingValidationError,
    DatesUnavailableError,
    InvalidStatusTransitionError,
    NotFoundError,
    PermissionDeniedError,
    PropertyUnavailableError,
)
from krib.db.models import Booking, Payment, Property, utcnow
from krib.db.repository import (
    NOT_CANCELLABLE,
    NOT_MODIFIABLE,
    UNAVAILABLE_DATES,
    BookingRepository,
)
from krib.services.pricing import quote_stay, to_money, to_utc_naive

logger = logging.getLogger(__name__)

CHECK_OUT_BEFORE_CHECK_IN = "Check-out date must be after check-in date"
CHECK_IN_NOT_IN_FUTURE = "Check-in date must be in the future"
PROPERTY_INACTIVE = "Property is not available for booking"
TOO_MANY_GUESTS = "Number of guests exceeds property limit"
DEFAULT_CANCEL_REASON = "Cancelled by user"
CANCEL_WITH_CHANGES = "A cancelled booking cannot be changed in the same request"


def is_admin(user) -> bool:
    return user.role == UserRole.ADMIN.value


def is_host_of(user, booking: Booking) -> bool:
    return booking.property is not None and booking.property.host_id == user.id


class BookingService:
    def __init__(
        self,
        repository: BookingRepository,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repository = repository
        self._settings = settings or get_settings()
        self._clock = clock

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def check_availability(
        self, property_id: int, start: datetime, end: datetime
    ) -> List[Booking]:
        """Blocking bookings overlapping [start, end); empty means available."""
        start, end = to_utc_naive(start), to_utc_naive(end)
        if start >= end:
            raise BookingValidationError("End date must be after start date")
        return await self._repository.find_conflicts(property_id, start, end)

    async def get_booking_for(self, user, booking_id: int) -> Booking:
        booking = await self._repository.get_booking(booking_id)
        if booking is None or not self._can_access(user, booking):
            raise NotFoundError("Booking not found")
        return booking

    async def list_bookings_for(
        self,
        user,
        *,
        as_host: bool = False,
        status: Optional[str] = None,
        property_id: Optional[int] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Booking]:
        owner = {"host_id": user.id} if as_host else {"guest_id": user.id}
        return await self._repository.list_bookings(
            **owner,
            status=status,
            property_id=property_id,
            created_from=to_utc_naive(created_from) if created_from else None,
            created_to=to_utc_naive(created_to) if created_to else None,
            limit=limit,
            offset=offset,
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_booking(
        self,
        guest,
        *,
        property_id: int,
        check_in: datetime,
        check_out: datetime,
        guests: int,
        message: Optional[str] = None,
        special_requests: Optional[str] = None,
        guest_info: Optional[Dict[str, Any]] = None,
    ) -> Booking:
        check_in = to_utc_naive(check_in)
        check_out = to_utc_naive(check_out)
        now = self._clock()

        if check_in >= check_out:
            raise BookingValidationError(CHECK_OUT_BEFORE_CHECK_IN)
        if check_in <= now:
            raise BookingValidationError(CHECK_IN_NOT_IN_FUTURE)

        prop = await self._repository.get_property(property_id)
        if prop is None:
            raise NotFoundError("Property not found")
        if not prop.is_active:
            raise PropertyUnavailableError(PROPERTY_INACTIVE)
        if guests > prop.guests:
            raise BookingValidationError(TOO_MANY_GUESTS)

        conflicts = await self._repository.find_conflicts(property_id, check_in, check_out)
        if conflicts:
            logger.info(
                "Rejected booking on property %s: %s overlapping booking(s)",
                property_id,
                len(conflicts),
            )
            raise DatesUnavailableError(UNAVAILABLE_DATES)

        quote = quote_stay(
            check_in,
            check_out,
            prop.base_price,
            prop.cleaning_fee,
            self._settings.SERVICE_FEE_RATE,
        )
        status = BookingStatus.CONFIRMED if prop.is_instant_book else BookingStatus.PENDING

        booking = Booking(
            property_id=property_id,
            guest_id=guest.id,
            check_in=check_in,
            check_out=check_out,
            guests=guests,
            nightly_rate=quote.nightly_rate,
            base_amount=quote.base_amount,
            cleaning_fee=quote.cleaning_fee,
            service_fee=quote.service_fee,
            total_amount=quote.total_amount,
            status=status.value,
            special_requests=special_requests,
            guest_notes=message,
            guest_info=guest_info,
        )
        created = await self._repository.create_booking(
            booking, self._payments_for(guest, prop, booking, now)
        )
        logger.info(
            "Booking %s created on property %s: %s night(s), total %s %s, status %s",
            created.id,
            property_id,
            quote.nights,
            quote.total_amount,
            self._settings.CURRENCY,
            created.status,
        )
        return created

    def _payments_for(self, guest, prop: Property, booking: Booking, now: datetime) -> List[Payment]:
        payments = [
            Payment(
                user_id=guest.id,
                property_id=prop.id,
                amount=booking.total_amount,
                currency=self._settings.CURRENCY,
                type=PaymentType.BOOKING_PAYMENT.value,
                method=PaymentMethod.STRIPE.value,
                status=PaymentStatus.PENDING.value,
                due_date=now + timedelta(hours=self._settings.PAYMENT_DUE_HOURS),
                description=f"Booking payment for {prop.title}",
            )
        ]
        deposit = to_money(prop.security_deposit)
        if deposit > 0:
            payments.append(
                Payment(
                    user_id=guest.id,
                    property_id=prop.id,
                    amount=deposit,
                    currency=self._settings.CURRENCY,
                    type=PaymentType.SECURITY_DEPOSIT.value,
                    method=PaymentMethod.STRIPE.value,
                    status=PaymentStatus.PENDING.value,
                    due_date=booking.check_in,
                    description=f"Security deposit for {prop.title}",
                )
            )
        return payments

    # ------------------------------------------------------------------
    # Update / cancel
    # ------------------------------------------------------------------

    async def update_booking(
        self,
        user,
        booking_id: int,
        *,
        status: Optional[BookingStatus] = None,
        check_in: Optional[datetime] = None,
        check_out: Optional[datetime] = None,
        guests: Optional[int] = None,
        special_requests: Optional[str] = None,
    ) -> Booking:
        booking = await self.get_booking_for(user, booking_id)
        current = BookingStatus(booking.status)

        if status == BookingStatus.CANCELLED:
            if any(v is not None for v in (check_in, check_out, guests, special_requests)):
                raise BookingValidationError(CANCEL_WITH_CHANGES)
            return await self.cancel_booking(user, booking_id)

        changes: Dict[str, Any] = {}

        if status is not None and status != current:
            if status not in ALLOWED_TRANSITIONS[current]:
                raise InvalidStatusTransitionError(
                    f"Cannot change booking status from {current.value} to {status.value}"
                )
            if not (is_host_of(user, booking) or is_admin(user)):
                raise PermissionDeniedError("Only the host can confirm or complete a booking")
            changes["status"] = status.value

        dates_changed = check_in is not None or check_out is not None
        if (dates_changed or guests is not None) and current in TERMINAL_STATUSES:
            raise BookingValidationError(NOT_MODIFIABLE)

        if dates_changed:
            new_in = to_utc_naive(check_in) if check_in is not None else booking.check_in
            new_out = to_utc_naive(check_out) if check_out is not None else booking.check_out
            if new_in >= new_out:
                raise BookingValidationError(CHECK_OUT_BEFORE_CHECK_IN)
            if check_in is not None and new_in <= self._clock():
                raise BookingValidationError(CHECK_IN_NOT_IN_FUTURE)

            conflicts = await self._repository.find_conflicts(
                booking.property_id, new_in, new_out, exclude_booking_id=booking.id
            )
            if conflicts:
                raise DatesUnavailableError(UNAVAILABLE_DATES)

            quote = quote_stay(
                new_in,
                new_out,
                booking.nightly_rate,
                booking.cleaning_fee,
                self._settings.SERVICE_FEE_RATE,
            )
            changes.update(
                check_in=new_in,
                check_out=new_out,
                base_amount=quote.base_amount,
                service_fee=quote.service_fee,
                total_amount=quote.total_amount,
            )

        if guests is not None:
            if booking.property is not None and guests > booking.property.guests:
                raise BookingValidationError(TOO_MANY_GUESTS)
            changes["guests"] = guests

        if special_requests is not None:
            changes["special_requests"] = special_requests

        if not changes:
            return booking

        updated = await self._repository.update_booking(
            booking_id, changes, recheck_dates=dates_changed
        )
        logger.info("Booking %s updated: %s", booking_id, ", ".join(sorted(changes)))
        return updated

    async def cancel_booking(
        self, user, booking_id: int, reason: Optional[str] = None
    ) -> Booking:
        booking = await self.get_booking_for(user, booking_id)
        if BookingStatus(booking.status) in TERMINAL_STATUSES:
            raise InvalidStatusTransitionError(NOT_CANCELLABLE)
        return await self._repository.cancel_booking(
            booking_id,
            reason=reason or DEFAULT_CANCEL_REASON,
            cancelled_by=user.id,
        )

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    async def list_payments_for(
        self,
        user,
        *,
        booking_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[Payment]:
        return await self._repository.list_payments(
            user_id=user.id, booking_id=booking_id, status=status
        )

    async def get_payment_for(self, user, payment_id: int) -> Payment:
        payment = await self._repository.get_payment(payment_id)
        if payment is None or (payment.user_id != user.id and not is_admin(user)):
            raise NotFoundError("Payment not found")
        return payment

    def _can_access(self, user, booking: Booking) -> bool:
        return booking.guest_id == user.id or is_host_of(user, booking) or is_admin(user)
