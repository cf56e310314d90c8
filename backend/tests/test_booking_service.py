"""BookingService behaviour against an in-memory repository."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from krib.core.enums import BookingStatus, PaymentStatus, PaymentType
from krib.core.errors import (
    BookingValidationError,
    DatesUnavailableError,
    InvalidStatusTransitionError,
    NotFoundError,
    PermissionDeniedError,
    PropertyUnavailableError,
)

pytestmark = pytest.mark.anyio

PROPERTY_ID = 10


def jan(day: int, hour: int = 15) -> datetime:
    return datetime(2026, 1, day, hour, 0, 0)


async def book(service, guest, check_in, check_out, guests=2, property_id=PROPERTY_ID):
    return await service.create_booking(
        guest,
        property_id=property_id,
        check_in=check_in,
        check_out=check_out,
        guests=guests,
    )


# --- create: pricing and side effects ---

async def test_create_prices_stay_and_records_payments(service, repository, guest, now):
    booking = await book(service, guest, jan(10), jan(13))

    assert booking.base_amount == Decimal("1500")
    assert booking.cleaning_fee == Decimal("100")
    assert booking.service_fee == Decimal("225")
    assert booking.total_amount == Decimal("1825")
    assert booking.nightly_rate == Decimal("500")
    assert booking.status == BookingStatus.PENDING.value

    payments = repository.payments_for(booking.id)
    assert [p.type for p in payments] == [
        PaymentType.BOOKING_PAYMENT.value,
        PaymentType.SECURITY_DEPOSIT.value,
    ]
    booking_payment, deposit = payments
    assert booking_payment.amount == Decimal("1825")
    assert booking_payment.due_date == now + timedelta(hours=24)
    assert deposit.amount == Decimal("1000")
    assert deposit.due_date == jan(10)
    assert all(p.status == PaymentStatus.PENDING.value for p in payments)


async def test_no_deposit_payment_without_security_deposit(service, repository, guest):
    repository.add_property(id=11, security_deposit=None)
    booking = await book(service, guest, jan(10), jan(12), property_id=11)

    payments = repository.payments_for(booking.id)
    assert len(payments) == 1
    assert payments[0].type == PaymentType.BOOKING_PAYMENT.value


async def test_instant_book_property_confirms_immediately(service, repository, guest):
    repository.add_property(id=12, is_instant_book=True)
    booking = await book(service, guest, jan(10), jan(12), property_id=12)
    assert booking.status == BookingStatus.CONFIRMED.value


async def test_partial_day_is_billed_as_full_night(service, guest):
    booking = await book(service, guest, jan(10, 0), jan(11, 12))
    assert booking.base_amount == Decimal("1000")


# --- create: validation order ---

async def test_check_out_must_follow_check_in(service, guest):
    with pytest.raises(BookingValidationError, match="Check-out date must be after check-in date"):
        await book(service, guest, jan(12), jan(12))


async def test_check_in_must_be_in_the_future(service, guest, now):
    with pytest.raises(BookingValidationError, match="Check-in date must be in the future"):
        await book(service, guest, now, now + timedelta(days=2))


async def test_date_order_checked_before_future_check_in(service, guest, now):
    past = now - timedelta(days=5)
    with pytest.raises(BookingValidationError, match="Check-out"):
        await book(service, guest, past, past - timedelta(days=1))


async def test_future_check_checked_before_property_lookup(service, guest, now):
    with pytest.raises(BookingValidationError, match="future"):
        await book(service, guest, now - timedelta(days=1), now + timedelta(days=1), property_id=404)


async def test_unknown_property_is_not_found(service, guest):
    with pytest.raises(NotFoundError):
        await book(service, guest, jan(10), jan(12), property_id=404)


async def test_inactive_property_is_unavailable(service, repository, guest):
    repository.add_property(id=13, is_active=False)
    with pytest.raises(PropertyUnavailableError):
        await book(service, guest, jan(10), jan(12), property_id=13)


async def test_guest_count_over_capacity_rejected(service, guest):
    with pytest.raises(BookingValidationError, match="exceeds property limit"):
        await book(service, guest, jan(10), jan(12), guests=5)


# --- create: conflicts ---

async def test_overlap_with_pending_booking_rejected(service, guest):
    await book(service, guest, jan(10), jan(15))
    with pytest.raises(DatesUnavailableError):
        await book(service, guest, jan(12), jan(20))


async def test_overlap_with_confirmed_booking_rejected(service, repository, guest):
    first = await book(service, guest, jan(10), jan(15))
    repository.bookings[first.id].status = BookingStatus.CONFIRMED.value
    with pytest.raises(DatesUnavailableError):
        await book(service, guest, jan(14), jan(16))


async def test_overlap_with_cancelled_booking_allowed(service, guest):
    first = await book(service, guest, jan(10), jan(15))
    await service.cancel_booking(guest, first.id)

    second = await book(service, guest, jan(12), jan(20))
    assert second.status == BookingStatus.PENDING.value


async def test_back_to_back_stays_allowed(service, guest):
    await book(service, guest, jan(10), jan(15))
    second = await book(service, guest, jan(15), jan(18))
    assert second.id is not None


async def test_other_property_does_not_conflict(service, repository, guest):
    repository.add_property(id=14)
    await book(service, guest, jan(10), jan(15))
    other = await book(service, guest, jan(10), jan(15), property_id=14)
    assert other.property_id == 14


async def test_availability_lists_conflicting_bookings(service, guest):
    first = await book(service, guest, jan(10), jan(15))

    conflicts = await service.check_availability(PROPERTY_ID, jan(14), jan(20))
    assert [b.id for b in conflicts] == [first.id]
    assert await service.check_availability(PROPERTY_ID, jan(15), jan(20)) == []


async def test_availability_rejects_reversed_window(service):
    with pytest.raises(BookingValidationError):
        await service.check_availability(PROPERTY_ID, jan(20), jan(10))


# --- cancellation ---

async def test_cancel_pending_booking_cancels_pending_payments(service, repository, guest):
    booking = await book(service, guest, jan(10), jan(12))
    booking_payment, deposit = repository.payments_for(booking.id)
    deposit.status = PaymentStatus.COMPLETED.value

    cancelled = await service.cancel_booking(guest, booking.id, reason="Plans changed")

    assert cancelled.status == BookingStatus.CANCELLED.value
    assert cancelled.cancellation_reason == "Plans changed"
    assert cancelled.cancelled_by == guest.id
    assert booking_payment.status == PaymentStatus.CANCELLED.value
    assert deposit.status == PaymentStatus.COMPLETED.value


async def test_cancel_uses_default_reason(service, guest):
    booking = await book(service, guest, jan(10), jan(12))
    cancelled = await service.cancel_booking(guest, booking.id)
    assert cancelled.cancellation_reason == "Cancelled by user"


@pytest.mark.parametrize("terminal", [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
async def test_terminal_booking_cannot_be_cancelled(service, repository, guest, terminal):
    booking = await book(service, guest, jan(10), jan(12))
    repository.bookings[booking.id].status = terminal.value

    with pytest.raises(InvalidStatusTransitionError, match="cannot be cancelled"):
        await service.cancel_booking(guest, booking.id)


async def test_host_can_cancel_guest_booking(service, guest, host):
    booking = await book(service, guest, jan(10), jan(12))
    cancelled = await service.cancel_booking(host, booking.id)
    assert cancelled.cancelled_by == host.id


async def test_stranger_cannot_see_or_cancel_booking(service, guest, stranger):
    booking = await book(service, guest, jan(10), jan(12))
    with pytest.raises(NotFoundError):
        await service.get_booking_for(stranger, booking.id)
    with pytest.raises(NotFoundError):
        await service.cancel_booking(stranger, booking.id)


# --- update ---

async def test_date_change_reprices_at_booked_nightly_rate(service, repository, guest):
    booking = await book(service, guest, jan(10), jan(13))
    repository.properties[PROPERTY_ID].base_price = Decimal("900")

    updated = await service.update_booking(guest, booking.id, check_out=jan(14))

    assert updated.check_out == jan(14)
    assert updated.base_amount == Decimal("2000")
    assert updated.service_fee == Decimal("300")
    assert updated.total_amount == Decimal("2400")
    booking_payment = repository.payments_for(booking.id)[0]
    assert booking_payment.amount == Decimal("2400")


async def test_date_change_ignores_own_dates_but_not_others(service, guest):
    first = await book(service, guest, jan(10), jan(13))
    await book(service, guest, jan(20), jan(22))

    moved = await service.update_booking(guest, first.id, check_in=jan(11), check_out=jan(14))
    assert moved.check_in == jan(11)

    with pytest.raises(DatesUnavailableError):
        await service.update_booking(guest, first.id, check_out=jan(21))


async def test_date_change_must_keep_order(service, guest):
    booking = await book(service, guest, jan(10), jan(13))
    with pytest.raises(BookingValidationError, match="Check-out"):
        await service.update_booking(guest, booking.id, check_out=jan(9))


async def test_guest_change_checked_against_property_capacity(service, guest):
    booking = await book(service, guest, jan(10), jan(13), guests=2)

    updated = await service.update_booking(guest, booking.id, guests=4)
    assert updated.guests == 4

    with pytest.raises(BookingValidationError, match="exceeds property limit"):
        await service.update_booking(guest, booking.id, guests=5)


async def test_host_confirms_then_completes(service, guest, host):
    booking = await book(service, guest, jan(10), jan(13))

    confirmed = await service.update_booking(host, booking.id, status=BookingStatus.CONFIRMED)
    assert confirmed.status == BookingStatus.CONFIRMED.value

    completed = await service.update_booking(host, booking.id, status=BookingStatus.COMPLETED)
    assert completed.status == BookingStatus.COMPLETED.value


async def test_guest_cannot_confirm_own_booking(service, guest):
    booking = await book(service, guest, jan(10), jan(13))
    with pytest.raises(PermissionDeniedError):
        await service.update_booking(guest, booking.id, status=BookingStatus.CONFIRMED)


async def test_pending_cannot_jump_to_completed(service, guest, host):
    booking = await book(service, guest, jan(10), jan(13))
    with pytest.raises(InvalidStatusTransitionError):
        await service.update_booking(host, booking.id, status=BookingStatus.COMPLETED)


async def test_status_cancel_runs_cancellation(service, repository, guest):
    booking = await book(service, guest, jan(10), jan(13))

    cancelled = await service.update_booking(guest, booking.id, status=BookingStatus.CANCELLED)

    assert cancelled.status == BookingStatus.CANCELLED.value
    assert all(
        p.status == PaymentStatus.CANCELLED.value for p in repository.payments_for(booking.id)
    )


async def test_cancelled_booking_dates_are_frozen(service, guest):
    booking = await book(service, guest, jan(10), jan(13))
    await service.cancel_booking(guest, booking.id)
    with pytest.raises(BookingValidationError, match="no longer be modified"):
        await service.update_booking(guest, booking.id, check_out=jan(14))


# --- listing and payments ---

async def test_lists_split_by_guest_and_host(service, guest, host):
    booking = await book(service, guest, jan(10), jan(13))

    as_guest = await service.list_bookings_for(guest)
    as_host = await service.list_bookings_for(host, as_host=True)
    assert [b.id for b in as_guest] == [booking.id]
    assert [b.id for b in as_host] == [booking.id]
    assert await service.list_bookings_for(host) == []


async def test_payments_visible_only_to_payer(service, guest, stranger):
    booking = await book(service, guest, jan(10), jan(13))

    payments = await service.list_payments_for(guest, booking_id=booking.id)
    assert len(payments) == 2
    assert await service.get_payment_for(guest, payments[0].id) is payments[0]
    with pytest.raises(NotFoundError):
        await service.get_payment_for(stranger, payments[0].id)


async def test_moving_check_in_moves_deposit_due_date(service, repository, guest):
    booking = await book(service, guest, jan(10), jan(13))

    await service.update_booking(guest, booking.id, check_in=jan(20), check_out=jan(23))

    booking_payment, deposit = repository.payments_for(booking.id)
    assert deposit.due_date == jan(20)
    assert booking_payment.amount == Decimal("1825")


async def test_cancel_status_cannot_carry_other_changes(service, repository, guest):
    booking = await book(service, guest, jan(10), jan(13))

    with pytest.raises(BookingValidationError, match="same request"):
        await service.update_booking(
            guest, booking.id, status=BookingStatus.CANCELLED, guests=3
        )
    assert repository.bookings[booking.id].status == BookingStatus.PENDING.value
