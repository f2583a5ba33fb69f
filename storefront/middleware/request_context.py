"""HTTP middleware applied to every request: correlation id, timing, access log, security headers."""

import time
import uuid

import structlog
from fastapi import FastAPI, Request

from storefront.core.config import settings

CORRELATION_HEADER = "X-Correlation-ID"
PROCESS_TIME_HEADER = "X-Process-Time"

logger = structlog.get_logger()


async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "no-referrer"
    if settings.ENVIRONMENT == "production":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


async def access_log(request: Request, call_next):
    started = time.perf_counter()
    logger.info(
        "request_started",
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None,
    )

    response = await call_next(request)

    elapsed = time.perf_counter() - started
    response.headers[PROCESS_TIME_HEADER] = f"{elapsed:.6f}"
    logger.info(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(elapsed * 1000, 2),
    )
    return response


async def correlation_id(request: Request, call_next):
    value = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
    request.state.correlation_id = value
    structlog.contextvars.bind_contextvars(correlation_id=value)
    try:
        response = await call_next(request)
    finally:
        structlog.contextvars.unbind_contextvars("correlation_id")

    response.headers[CORRELATION_HEADER] = value
    return response


def install(app: FastAPI) -> None:
    # Last registered runs first: the correlation id is bound before the access log line.
    for middleware in (security_headers, access_log, correlation_id):
        app.middleware("http")(middleware)
