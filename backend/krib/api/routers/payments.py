# krib/api/routers/payments.py
from typing import Optional

from fastapi import APIRouter, Depends, Query

from krib.api.dependencies import get_booking_service, get_current_user
from krib.core.enums import PaymentStatus
from krib.schemas.payment import PaymentOut
from krib.services.booking_service import BookingService

router = APIRouter()


@router.get("")
async def list_payments(
    booking_id: Optional[int] = Query(None, alias="bookingId"),
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
):
    payments = await service.list_payments_for(
        current_user,
        booking_id=booking_id,
        status=payment_status.value if payment_status else None,
    )
    return {"items": [PaymentOut.model_validate(p) for p in payments]}


@router.get("/{payment_id}", response_model=PaymentOut)
async def get_payment(
    payment_id: int,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
):
    payment = await service.get_payment_for(current_user, payment_id)
    return PaymentOut.model_validate(payment)
