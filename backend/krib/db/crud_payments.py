# krib/db/crud_payments.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from krib.core.enums import PaymentStatus, PaymentType
from krib.db.models import Payment


async def add_payment(db: AsyncSession, payment: Payment) -> Payment:
    db.add(payment)
    await db.flush()
    return payment


async def cancel_pending_payments(db: AsyncSession, booking_id: int) -> int:
    res = await db.execute(
        update(Payment)
        .where(
            Payment.booking_id == booking_id,
            Payment.status == PaymentStatus.PENDING.value,
        )
        .values(status=PaymentStatus.CANCELLED.value)
    )
    return res.rowcount or 0


async def reprice_pending_booking_payment(
    db: AsyncSession, booking_id: int, amount: Decimal
) -> int:
    res = await db.execute(
        update(Payment)
        .where(
            Payment.booking_id == booking_id,
            Payment.type == PaymentType.BOOKING_PAYMENT.value,
            Payment.status == PaymentStatus.PENDING.value,
        )
        .values(amount=amount)
    )
    return res.rowcount or 0


async def reschedule_pending_deposit(
    db: AsyncSession, booking_id: int, due_date: datetime
) -> int:
    # the deposit falls due on check-in
    res = await db.execute(
        update(Payment)
        .where(
            Payment.booking_id == booking_id,
            Payment.type == PaymentType.SECURITY_DEPOSIT.value,
            Payment.status == PaymentStatus.PENDING.value,
        )
        .values(due_date=due_date)
    )
    return res.rowcount or 0


async def get_payment(db: AsyncSession, payment_id: int) -> Optional[Payment]:
    res = await db.execute(select(Payment).where(Payment.id == payment_id))
    return res.scalar_one_or_none()


async def list_payments(
    db: AsyncSession,
    *,
    user_id: Optional[int] = None,
    booking_id: Optional[int] = None,
    status: Optional[str] = None,
) -> List[Payment]:
    stmt = select(Payment)
    if user_id is not None:
        stmt = stmt.where(Payment.user_id == user_id)
    if booking_id is not None:
        stmt = stmt.where(Payment.booking_id == booking_id)
    if status:
        stmt = stmt.where(Payment.status == status)
    res = await db.execute(stmt.order_by(Payment.id.asc()))
    return list(res.scalars().all())
