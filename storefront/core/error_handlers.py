import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.core.config import settings
from storefront.core.exceptions import APIError
from storefront.utils.response import error, validation_errors_by_field

logger = structlog.get_logger()


async def handle_api_error(request: Request, exc: APIError):
    return error(status_code=exc.status_code, message=exc.message, errors=exc.errors)


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, str):
        message, errors = exc.detail, []
    elif isinstance(exc.detail, dict):
        message = exc.detail.get("message", "Request failed")
        errors = exc.detail.get("errors", [])
    else:
        message, errors = "Request failed", []

    response = error(status_code=exc.status_code, message=message, errors=errors)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def handle_validation_error(request: Request, exc):
    # RequestValidationError for declared bodies, ValidationError for payloads parsed by hand.
    return error(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation failed",
        errors=validation_errors_by_field(exc.errors()),
    )


async def handle_rate_limit(request: Request, exc: RateLimitExceeded):
    logger.warning("rate_limit_exceeded", path=request.url.path, limit=str(exc.detail))
    return error(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        message="Too many requests. Please try again later.",
    )


async def handle_unexpected(request: Request, exc: Exception):
    logger.exception("unhandled_exception", error_type=type(exc).__name__, path=request.url.path)

    message = "Internal server error"
    if settings.DEBUG and settings.ENVIRONMENT != "production":
        message = f"{message}: {exc}"
    return error(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, message=message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, handle_api_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(RateLimitExceeded, handle_rate_limit)
    app.add_exception_handler(Exception, handle_unexpected)
