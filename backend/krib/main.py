import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from krib.core.config import Settings, get_settings
from krib.core.errors import register_exception_handlers
from krib.core.logger import configure_logging
from krib.db.base import Base
from krib.db.repository import SqlBookingRepository
from krib.db.session import build_engine, build_session_factory
from krib.services.booking_service import BookingService
from krib.api.routers import (
    auth as auth_router,
    users as users_router,
    properties as properties_router,
    bookings as bookings_router,
    host as host_router,
    payments as payments_router,
)

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the app. Engine, repository and booking service are created
    here once and shared through app.state.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    repository = SqlBookingRepository(session_factory)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database ready; Krib API started")
        yield
        await engine.dispose()

    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

    # ---------------------------
    # CORS
    # ---------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.booking_repository = repository
    app.state.booking_service = BookingService(repository=repository, settings=settings)

    # ---------------------------
    # Routers
    # ---------------------------
    app.include_router(auth_router.router, prefix="/api/auth", tags=["auth"])
    app.include_router(users_router.router, prefix="/api/users", tags=["users"])
    app.include_router(properties_router.router, prefix="/api", tags=["properties"])
    app.include_router(bookings_router.router, prefix="/api/bookings", tags=["bookings"])
    app.include_router(host_router.router, prefix="/api/host", tags=["host"])
    app.include_router(payments_router.router, prefix="/api/payments", tags=["payments"])

    # ---------------------------
    # Health check
    # ---------------------------
    @app.get("/ping")
    async def ping():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("krib.main:app", host="0.0.0.0", port=8000, reload=True)
