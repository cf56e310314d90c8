# krib/api/routers/bookings.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from krib.api.dependencies import get_booking_service, get_current_user
from krib.core.enums import BookingStatus
from krib.services.booking_service import BookingService
from krib.schemas.booking import (
    AvailabilityOut,
    BookingCancel,
    BookingCancelled,
    BookingCreate,
    BookingOut,
    BookingsPage,
    BookingUpdate,
    ConflictingBooking,
)

router = APIRouter()


@router.get("/availability/{property_id}", response_model=AvailabilityOut)
async def check_availability(
    property_id: int,
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    service: BookingService = Depends(get_booking_service),
):
    """
    Public: does any PENDING/CONFIRMED booking hold part of the window?
    """
    conflicts = await service.check_availability(property_id, start_date, end_date)
    return AvailabilityOut(
        available=not conflicts,
        conflicting_bookings=[ConflictingBooking.model_validate(b) for b in conflicts],
    )


@router.get("", response_model=BookingsPage)
async def list_bookings(
    view: str = Query("guest", alias="as", pattern="^(guest|host)$"),
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    property_id: Optional[int] = Query(None, alias="propertyId"),
    created_from: Optional[datetime] = Query(None, alias="startDate"),
    created_to: Optional[datetime] = Query(None, alias="endDate"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
):
    bookings = await service.list_bookings_for(
        current_user,
        as_host=view == "host",
        status=booking_status.value if booking_status else None,
        property_id=property_id,
        created_from=created_from,
        created_to=created_to,
        limit=limit,
        offset=offset,
    )
    return BookingsPage(
        bookings=[BookingOut.model_validate(b) for b in bookings],
        total=len(bookings),
    )


@router.get("/{booking_id}", response_model=BookingOut)
async def get_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
):
    booking = await service.get_booking_for(current_user, booking_id)
    return BookingOut.model_validate(booking)


@router.post("", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
async def create_booking(
    body: BookingCreate,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
):
    booking = await service.create_booking(
        current_user,
        property_id=body.property_id,
        check_in=body.check_in,
        check_out=body.check_out,
        guests=body.guests,
        message=body.message,
        special_requests=body.special_requests,
        guest_info=body.guest_info.model_dump(mode="json", by_alias=True),
    )
    return BookingOut.model_validate(booking)


@router.put("/{booking_id}", response_model=BookingOut)
async def update_booking(
    booking_id: int,
    body: BookingUpdate,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
):
    booking = await service.update_booking(
        current_user,
        booking_id,
        status=body.status,
        check_in=body.check_in,
        check_out=body.check_out,
        guests=body.guests,
        special_requests=body.special_requests,
    )
    return BookingOut.model_validate(booking)


@router.delete("/{booking_id}", response_model=BookingCancelled)
async def cancel_booking(
    booking_id: int,
    body: Optional[BookingCancel] = Body(None),
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
):
    booking = await service.cancel_booking(
        current_user, booking_id, reason=body.reason if body else None
    )
    return BookingCancelled(booking=BookingOut.model_validate(booking))
