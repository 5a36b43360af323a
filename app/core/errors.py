"""Service error taxonomy and FastAPI exception handlers.

Synchronous rejections (invalid URL, rate limit, unknown id) surface to the
HTTP caller through ``register_exception_handlers``.  Provider failures
inside a queued job are caught by the dispatcher and stored as the
request's failure reason instead.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for all errors raised by the analysis service."""

    code = "unknown"
    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidArgumentError(ServiceError):
    """Unsupported platform or malformed URL."""

    code = "invalid_argument"
    status_code = 400


class PermissionDeniedError(ServiceError):
    """Submission rejected, e.g. anonymous daily limit reached."""

    code = "permission_denied"
    status_code = 403


class NotFoundError(ServiceError):
    code = "not_found"
    status_code = 404


class InternalError(ServiceError):
    code = "internal"
    status_code = 500


class ScrapeError(InternalError):
    """Scrape provider failed, returned a non-success status or no item."""


class AnalysisError(InternalError):
    """LLM call failed or its output violated the response schema.

    Carries the serialized outbound request and the raw inbound text (either
    may be empty) so they can be stored for audit regardless of outcome.
    """

    def __init__(
        self,
        message: str,
        raw_request: str = "",
        raw_response: str = "",
    ) -> None:
        super().__init__(message)
        self.raw_request = raw_request
        self.raw_response = raw_response


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render a ``ServiceError`` as ``{"error_code", "detail"}``."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "service_error",
        extra={
            "path": request.url.path,
            "error_code": exc.code,
            "error_message": exc.message,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error_code": exc.code, "detail": exc.message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)  # type: ignore[arg-type]
