"""Map errors to the JSON envelope clients expect: ``{success: false, error}``."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from stockpile.errors import RateLimitedError, StockpileError, UnauthenticatedError, ValidationError
from stockpile.validation import format_error

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    message: str,
    errors: list[str] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    content: dict = {"success": False, "error": message}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def stockpile_error_handler(_: Request, exc: StockpileError) -> JSONResponse:
    """Handle every domain error with the status it declares."""
    headers = None
    errors = None
    if isinstance(exc, UnauthenticatedError):
        headers = {"WWW-Authenticate": "Bearer"}
    elif isinstance(exc, ValidationError):
        errors = exc.errors
    elif isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after)}
    return error_response(exc.status_code, exc.message, errors=errors, headers=headers)


async def request_validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query/path parameters get the same shape as field validation."""
    errors = [format_error(error) for error in exc.errors()]
    return error_response(ValidationError.status_code, ValidationError.default_message, errors=errors)


async def unhandled_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unexpected error: {exc}")
    return error_response(500, "An unexpected error occurred")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StockpileError, stockpile_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
