# scripts/seed.py
import asyncio
import random
from decimal import Decimal

from krib.core.config import get_settings
from krib.core.enums import UserRole
from krib.db.base import Base
from krib.db.crud_properties import create_property
from krib.db.crud_users import create_user, get_user_by_email
from krib.db.session import build_engine, build_session_factory

CITIES = [
    ("Dubai Marina", "Dubai"),
    ("Downtown Dubai", "Dubai"),
    ("Al Reem Island", "Abu Dhabi"),
    ("Al Majaz", "Sharjah"),
]


async def seed():
    engine = build_engine(get_settings())
    session_factory = build_session_factory(engine)

    # create tables (if migrations not run)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_factory() as db:
        if not await get_user_by_email(db, "admin@krib.ae"):
            await create_user(db, name="Admin", email="admin@krib.ae", password="password123",
                              phone="+971500000000", role=UserRole.ADMIN.value)

        hosts = []
        for i in range(3):
            email = f"host{i}@krib.ae"
            host = await get_user_by_email(db, email)
            if not host:
                host = await create_user(db, name=f"Host {i}", email=email, password="password123",
                                         phone=f"+97150111000{i}", role=UserRole.HOST.value)
            hosts.append(host)

        for i in range(20):
            city, emirate = random.choice(CITIES)
            await create_property(
                db,
                host_id=random.choice(hosts).id,
                title=f"Apartment {i}",
                description="Furnished apartment",
                city=city,
                emirate=emirate,
                base_price=Decimal(400 + i * 25),
                cleaning_fee=Decimal(100),
                security_deposit=Decimal(1000) if i % 2 else None,
                guests=random.randint(2, 6),
                is_instant_book=i % 3 == 0,
            )
    await engine.dispose()
    print("Seed complete")

if __name__ == "__main__":
    asyncio.run(seed())
