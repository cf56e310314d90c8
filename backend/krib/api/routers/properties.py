# krib/api/routers/properties.py
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from krib.db import crud_properties
from krib.db.session import get_db
from krib.schemas.property import PropertiesPage, PropertyOut

router = APIRouter()


@router.get("/properties", response_model=PropertiesPage)
async def list_properties(
    db: AsyncSession = Depends(get_db),
    city: Optional[str] = None,
    emirate: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100, alias="perPage"),
    min_price: Optional[Decimal] = Query(None, alias="minPrice"),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice"),
    guests: Optional[int] = Query(None, ge=1),
    sort: Optional[str] = None,
):
    """
    Public listings – active properties only.
    """
    filters = {
        "city": city,
        "emirate": emirate,
        "min_price": min_price,
        "max_price": max_price,
        "guests": guests,
        "sort": sort,
    }
    items, total = await crud_properties.list_properties(
        db,
        filters=filters,
        page=page,
        per_page=per_page,
    )
    return PropertiesPage(
        items=[PropertyOut.model_validate(p) for p in items],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/properties/{prop_id}", response_model=PropertyOut)
async def get_property_detail(prop_id: int, db: AsyncSession = Depends(get_db)):
    prop = await crud_properties.get_property(db, prop_id)
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")
    return PropertyOut.model_validate(prop)
