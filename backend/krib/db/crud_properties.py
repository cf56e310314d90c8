# krib/db/crud_properties.py
from typing import Tuple, List

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from krib.db.models import Property


async def list_properties(
    db: AsyncSession,
    filters: dict = None,
    page: int = 1,
    per_page: int = 20,
) -> Tuple[List[Property], int]:
    """
    Public listing: ALWAYS only active properties.
    """
    filters = filters or {}
    stmt = select(Property)

    where_clauses = [Property.is_active.is_(True)]

    if filters.get("city"):
        where_clauses.append(Property.city == filters["city"])
    if filters.get("emirate"):
        where_clauses.append(Property.emirate == filters["emirate"])
    if filters.get("min_price") is not None:
        where_clauses.append(Property.base_price >= filters["min_price"])
    if filters.get("max_price") is not None:
        where_clauses.append(Property.base_price <= filters["max_price"])
    if filters.get("guests") is not None:
        where_clauses.append(Property.guests >= filters["guests"])

    stmt = stmt.where(and_(*where_clauses))

    sort = filters.get("sort")
    if sort == "price_asc":
        stmt = stmt.order_by(Property.base_price.asc())
    elif sort == "price_desc":
        stmt = stmt.order_by(Property.base_price.desc())
    else:
        # default: recent first
        stmt = stmt.order_by(Property.id.desc())

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await db.execute(count_stmt)).scalar_one()

    offset = (page - 1) * per_page
    res = await db.execute(stmt.offset(offset).limit(per_page))
    return list(res.scalars().all()), int(total)


async def get_property(
    db: AsyncSession,
    prop_id: int,
    *,
    for_update: bool = False,
) -> Property | None:
    """
    for_update=True takes a row lock so concurrent bookings of the same
    property serialise (no-op on SQLite).
    """
    stmt = select(Property).where(Property.id == prop_id)
    if for_update:
        stmt = stmt.with_for_update()
    res = await db.execute(stmt)
    return res.scalars().first()


async def list_properties_for_host(db: AsyncSession, host_id: int) -> List[Property]:
    """
    Host dashboard: ALL their properties, active or not.
    """
    res = await db.execute(
        select(Property)
        .where(Property.host_id == host_id)
        .order_by(Property.id.desc())
    )
    return list(res.scalars().all())


async def create_property(db: AsyncSession, **kwargs) -> Property:
    prop = Property(**kwargs)
    db.add(prop)
    await db.commit()
    await db.refresh(prop)
    return prop


async def update_property(db: AsyncSession, prop: Property, data: dict) -> Property:
    for k, v in data.items():
        if v is not None:
            setattr(prop, k, v)
    db.add(prop)
    await db.commit()
    await db.refresh(prop)
    return prop


async def delete_property(db: AsyncSession, prop: Property):
    await db.delete(prop)
    await db.commit()
    return True
