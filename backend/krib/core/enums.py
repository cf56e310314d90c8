from enum import Enum


class UserRole(str, Enum):
    GUEST = "guest"
    HOST = "host"
    ADMIN = "admin"


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


# Bookings in these states hold their dates.
BLOCKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)

TERMINAL_STATUSES = (BookingStatus.CANCELLED, BookingStatus.COMPLETED)

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.CANCELLED: set(),
    BookingStatus.COMPLETED: set(),
}


class PaymentType(str, Enum):
    BOOKING_PAYMENT = "BOOKING_PAYMENT"
    SECURITY_DEPOSIT = "SECURITY_DEPOSIT"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    STRIPE = "STRIPE"


def statuses_leading_to(target: BookingStatus) -> set:
    """Statuses a booking may be in for a move to ``target`` to be legal."""
    return {source for source, targets in ALLOWED_TRANSITIONS.items() if target in targets}
