"""Middleware and exception handlers for the FastAPI application.

Domain errors raised by the onboarding and billing services are mapped to HTTP status
codes here, so endpoints never build error responses themselves.
"""

import time
import traceback
import uuid
from typing import Union

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from clubhost.core.config import settings
from clubhost.core.exceptions import (
    ClubhostException,
    ExternalServiceError,
    InvalidStateError,
    NotFoundException,
    PermissionException,
    SlugUnavailableError,
    TransactionContentionError,
    WebhookSignatureError,
    unpack_validation_error,
)
from clubhost.core.logging import logger

# Status codes for the ClubhostException subclasses without a dedicated handler
STATUS_BY_EXCEPTION: dict[type[ClubhostException], int] = {
    SlugUnavailableError: 409,
    InvalidStateError: 400,
    WebhookSignatureError: 400,
    TransactionContentionError: 500,
}


def _detail(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


async def add_request_id(request: Request, call_next: callable) -> Response:
    """Tag the request with a fresh id and echo it in the ``X-Request-ID`` header."""
    request.state.request_id = str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


async def log_requests(request: Request, call_next: callable) -> Response:
    """Log method, path, status code and duration of every request."""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} in {elapsed:.3f}s"
    )
    return response


async def exception_logging_middleware(request: Request, call_next: callable) -> Response:
    """Turn an exception no handler claimed into a JSON 500.

    The stack trace is part of the response only during local development or with
    ``DEBUG`` on.
    """
    try:
        return await call_next(request)
    except Exception as exc:
        trace = traceback.format_exc()
        logger.error(f"Unhandled exception on {request.url.path}: {exc}\n{trace}")

        content = {"detail": f"Internal Server Error: {exc.__class__.__name__}: {exc}"}
        if settings.LOCAL_DEVELOPMENT or settings.DEBUG:
            content["trace"] = trace
        return JSONResponse(status_code=500, content=content)


async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    """Answer 422 with one entry per invalid field.

    Example body: ``{"errors": [{"body.name": "String should have at most 120 characters"}]}``.
    """
    errors = unpack_validation_error(exc)
    logger.warning(f"Validation error on {request.method} {request.url.path}: {errors}")
    return JSONResponse(status_code=422, content=errors)


async def permission_exception_handler(request: Request, exc: PermissionException) -> JSONResponse:
    """Answer 403, e.g. when a user acts on a club they do not host."""
    return _detail(403, exc)


async def not_found_exception_handler(request: Request, exc: NotFoundException) -> JSONResponse:
    """Answer 404 for missing users and clubs."""
    return _detail(404, exc)


async def external_service_exception_handler(
    request: Request, exc: ExternalServiceError
) -> JSONResponse:
    """Answer 502 when Stripe fails or is not configured."""
    logger.error(f"External service failure on {request.url.path}: {exc}")
    return _detail(502, exc)


async def clubhost_exception_handler(request: Request, exc: ClubhostException) -> JSONResponse:
    """Map the remaining domain errors through ``STATUS_BY_EXCEPTION``, 500 otherwise."""
    status_code = STATUS_BY_EXCEPTION.get(type(exc), 500)
    if status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc}")
    return _detail(status_code, exc)
