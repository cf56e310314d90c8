# krib/api/routers/host.py
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from krib.api.dependencies import get_booking_service, require_role
from krib.core.enums import UserRole
from krib.db import crud_bookings, crud_properties
from krib.db.models import User
from krib.db.session import get_db
from krib.schemas.booking import BookingOut
from krib.schemas.property import PropertyCreate, PropertyOut, PropertyUpdate
from krib.services.booking_service import BookingService

logger = logging.getLogger(__name__)
router = APIRouter()

require_host = require_role(UserRole.HOST)


async def _owned_property(db: AsyncSession, prop_id: int, user: User):
    prop = await crud_properties.get_property(db, prop_id)
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")
    if prop.host_id != user.id and user.role != UserRole.ADMIN.value:
        raise HTTPException(status_code=403, detail="Not allowed")
    return prop


@router.get("/properties")
async def host_properties(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_host),
):
    """
    All properties of the current host, active or not.
    """
    items = await crud_properties.list_properties_for_host(db, host_id=current_user.id)
    return {"items": [PropertyOut.model_validate(p) for p in items]}


@router.post("/properties", response_model=PropertyOut, status_code=status.HTTP_201_CREATED)
async def create_property(
    body: PropertyCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_host),
):
    prop = await crud_properties.create_property(
        db,
        host_id=current_user.id,
        **body.model_dump(),
    )
    logger.info("Host %s listed property %s", current_user.id, prop.id)
    return PropertyOut.model_validate(prop)


@router.put("/properties/{prop_id}", response_model=PropertyOut)
async def update_property(
    prop_id: int,
    body: PropertyUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_host),
):
    prop = await _owned_property(db, prop_id, current_user)
    prop = await crud_properties.update_property(db, prop, body.model_dump(exclude_unset=True))
    return PropertyOut.model_validate(prop)


@router.delete("/properties/{prop_id}")
async def delete_property(
    prop_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_host),
):
    prop = await _owned_property(db, prop_id, current_user)
    if await crud_bookings.count_blocking_bookings(db, prop.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Property has pending or confirmed bookings",
        )
    await crud_properties.delete_property(db, prop)
    return {"message": "deleted"}


@router.get("/bookings")
async def host_bookings(
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_host),
):
    """
    Bookings on properties owned by the current host.
    """
    bookings = await service.list_bookings_for(current_user, as_host=True, limit=100)
    return {"items": [BookingOut.model_validate(b) for b in bookings]}
