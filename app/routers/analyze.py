"""Submission and result endpoints.

POST /analyze               -- submit a link, returns a tracking handle (202).
GET  /analyze/{tracking_id} -- status and, once completed, the full result.
GET  /posts/{content_id}    -- same, keyed by the platform's content id.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Header, Request

from app.core.errors import InternalError, InvalidArgumentError, ServiceError
from app.models.analyze_request import Submitter
from app.models.queue import SubmitRequest, SubmitResponse
from app.models.result import AnalysisStatusResponse
from app.services.ingest import submit
from app.services.results import get_analyze_result, get_post_result

logger = logging.getLogger(__name__)

router = APIRouter()


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _submitter(request: Request, user_id: str | None) -> Submitter:
    parsed: UUID | None = None
    if user_id:
        try:
            parsed = UUID(user_id)
        except ValueError as exc:
            raise InvalidArgumentError("X-User-Id must be a UUID") from exc
    return Submitter(user_id=parsed, ip=_client_ip(request))


@router.post("/analyze", status_code=202, response_model=SubmitResponse)
def submit_analysis(
    body: SubmitRequest,
    request: Request,
    x_user_id: str | None = Header(default=None),
) -> SubmitResponse:
    """Accept a link for analysis.

    400 for unsupported links, 403 when the anonymous daily limit is hit.
    """
    submitter = _submitter(request, x_user_id)
    try:
        return submit(body.url, submitter)
    except ServiceError:
        raise
    except Exception as exc:
        logger.error(
            "submit_analysis_failed",
            extra={"url": body.url, "error_message": str(exc)},
        )
        raise InternalError(f"Submission failed: {exc}") from exc


@router.get("/analyze/{tracking_id}", response_model=AnalysisStatusResponse)
def analysis_status(tracking_id: UUID) -> AnalysisStatusResponse:
    try:
        return get_analyze_result(tracking_id)
    except ServiceError:
        raise
    except Exception as exc:
        logger.error(
            "analysis_status_failed",
            extra={"tracking_id": str(tracking_id), "error_message": str(exc)},
        )
        raise InternalError(f"Failed to load analysis: {exc}") from exc


@router.get("/posts/{content_id}", response_model=AnalysisStatusResponse)
def post_status(content_id: str) -> AnalysisStatusResponse:
    try:
        return get_post_result(content_id)
    except ServiceError:
        raise
    except Exception as exc:
        logger.error(
            "post_status_failed",
            extra={"content_id": content_id, "error_message": str(exc)},
        )
        raise InternalError(f"Failed to load post: {exc}") from exc
