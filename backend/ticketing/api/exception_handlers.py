"""
Translate engine errors into JSON responses.

Typed inventory errors carry their own status and code. Anything else is an
internal error and is reported without the underlying message, so storage
details never reach clients.
"""

from typing import Any, Callable, Coroutine

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.responses import Response

from ticketing.core.exceptions import SeatInventoryError, UnauthorizedError
from ticketing.core.logging import get_logger

logger = get_logger(__name__)

ExceptionHandler = Callable[[Request, Exception], Coroutine[Any, Any, Response]]


async def seat_inventory_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, SeatInventoryError) else SeatInventoryError(str(exc))
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(error, UnauthorizedError) else None
    return JSONResponse(
        status_code=error.status_code,
        content={"detail": error.message, "code": error.code},
        headers=headers,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": "internal_error"},
    )


EXCEPTION_HANDLERS: dict[type[Exception], ExceptionHandler] = {
    SeatInventoryError: seat_inventory_error_handler,
    Exception: unhandled_error_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
