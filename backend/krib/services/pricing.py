# krib/services/pricing.py
"""
Stay pricing and date-range arithmetic.

All amounts are Decimal AED. Datetimes are compared as naive UTC; use
``to_utc_naive`` on anything that arrives from the API.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

ONE_DAY = timedelta(days=1)
WHOLE_UNIT = Decimal("1")


@dataclass(frozen=True)
class PriceBreakdown:
    nights: int
    nightly_rate: Decimal
    base_amount: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    total_amount: Decimal


def to_money(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def count_nights(check_in: datetime, check_out: datetime) -> int:
    """Whole nights billed; any part of a day counts as a full night."""
    days, remainder = divmod(check_out - check_in, ONE_DAY)
    return days + (1 if remainder else 0)


def service_fee_for(base_amount: Decimal, rate: Decimal) -> Decimal:
    """Platform fee rounded half-up to a whole currency unit."""
    return (base_amount * rate).quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def quote_stay(
    check_in: datetime,
    check_out: datetime,
    nightly_rate: Any,
    cleaning_fee: Any,
    service_fee_rate: Decimal,
) -> PriceBreakdown:
    nights = count_nights(check_in, check_out)
    rate = to_money(nightly_rate)
    base_amount = rate * nights
    cleaning = to_money(cleaning_fee)
    service_fee = service_fee_for(base_amount, service_fee_rate)
    return PriceBreakdown(
        nights=nights,
        nightly_rate=rate,
        base_amount=base_amount,
        cleaning_fee=cleaning,
        service_fee=service_fee,
        total_amount=base_amount + cleaning + service_fee,
    )


def ranges_overlap(
    first_start: datetime,
    first_end: datetime,
    second_start: datetime,
    second_end: datetime,
) -> bool:
    # half-open [start, end)
    return first_end > second_start and first_start < second_end
