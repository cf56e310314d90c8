# krib/core/errors.py
"""
Domain errors raised by the service layer.

Each carries the HTTP status it maps to; the handlers registered in
krib.main render them as {"error": message}.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class KribError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BookingValidationError(KribError):
    """Dates or guest count fail a booking rule."""


class PropertyUnavailableError(KribError):
    """Property exists but is not accepting bookings."""


class DatesUnavailableError(KribError):
    """Requested stay overlaps a booking that holds those dates."""


class InvalidStatusTransitionError(KribError):
    pass


class NotFoundError(KribError):
    status_code = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(KribError):
    status_code = status.HTTP_403_FORBIDDEN


async def krib_error_handler(request: Request, exc: KribError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid data", "details": jsonable_encoder(exc.errors())},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(KribError, krib_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
