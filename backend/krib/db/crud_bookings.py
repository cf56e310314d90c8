# krib/db/crud_bookings.py
"""
Booking queries. Writes only flush; the caller owns the transaction
(see krib.db.repository).
"""
from datetime import datetime
from typing import Any, Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from krib.core.enums import BLOCKING_STATUSES, BookingStatus
from krib.db.models import Booking, Property, utcnow


async def add_booking(db: AsyncSession, booking: Booking) -> Booking:
    db.add(booking)
    await db.flush()
    return booking


async def get_booking(db: AsyncSession, booking_id: int) -> Optional[Booking]:
    stmt = (
        select(Booking)
        .options(selectinload(Booking.property))
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    res = await db.execute(stmt)
    return res.scalars().first()


async def update_if_status(
    db: AsyncSession,
    booking_id: int,
    allowed: Iterable[BookingStatus],
    **values: Any,
) -> bool:
    """
    Write ``values`` only while the booking is still in one of ``allowed``.

    The status test and the write are one statement, so a concurrent
    transition that commits first makes this one match no row.
    """
    values.setdefault("updated_at", utcnow())
    res = await db.execute(
        update(Booking)
        .where(
            Booking.id == booking_id,
            Booking.status.in_([s.value for s in allowed]),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return bool(res.rowcount)


async def find_conflicts(
    db: AsyncSession,
    property_id: int,
    check_in: datetime,
    check_out: datetime,
    exclude_booking_id: Optional[int] = None,
) -> List[Booking]:
    """
    Bookings holding any part of [check_in, check_out) on the property.
    Half-open: a stay ending on another's check-in day does not conflict.
    """
    stmt = (
        select(Booking)
        .where(Booking.property_id == property_id)
        .where(Booking.status.in_([s.value for s in BLOCKING_STATUSES]))
        .where(Booking.check_out > check_in)
        .where(Booking.check_in < check_out)
        .order_by(Booking.check_in.asc())
    )
    if exclude_booking_id is not None:
        stmt = stmt.where(Booking.id != exclude_booking_id)
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def count_blocking_bookings(db: AsyncSession, property_id: int) -> int:
    res = await db.execute(
        select(func.count(Booking.id)).where(
            Booking.property_id == property_id,
            Booking.status.in_([s.value for s in BLOCKING_STATUSES]),
        )
    )
    return int(res.scalar_one())


async def list_bookings(
    db: AsyncSession,
    *,
    guest_id: Optional[int] = None,
    host_id: Optional[int] = None,
    status: Optional[str] = None,
    property_id: Optional[int] = None,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    limit: int = 20,
    offset: int = 0,
) -> List[Booking]:
    stmt = select(Booking).options(selectinload(Booking.property))

    if host_id is not None:
        stmt = stmt.join(Property, Booking.property_id == Property.id).where(
            Property.host_id == host_id
        )
    if guest_id is not None:
        stmt = stmt.where(Booking.guest_id == guest_id)
    if status:
        stmt = stmt.where(Booking.status == status)
    if property_id is not None:
        stmt = stmt.where(Booking.property_id == property_id)
    if created_from is not None:
        stmt = stmt.where(Booking.created_at >= created_from)
    if created_to is not None:
        stmt = stmt.where(Booking.created_at <= created_to)

    stmt = stmt.order_by(Booking.created_at.desc(), Booking.id.desc())
    res = await db.execute(stmt.offset(offset).limit(limit))
    return list(res.scalars().all())
