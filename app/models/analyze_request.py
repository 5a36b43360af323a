"""Pydantic models for the ``analyze_requests`` table.

One row per (submitter, content) pair.  ``llm_request`` / ``llm_response``
hold the raw provider exchange for debugging.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.models.enums import RequestStatus


class AnalyzeRequestCreate(BaseModel):
    """Payload for inserting a new analyze request."""
    user_id: UUID | None = None
    user_ip: str
    link: str
    post_id: str | None = None
    status: RequestStatus = RequestStatus.pending


class AnalyzeRequest(BaseModel):
    """Full analyze_requests record returned from the database."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID | None = None
    user_ip: str
    link: str
    post_id: str | None = None
    status: RequestStatus = RequestStatus.pending
    fail_reason: str | None = None
    llm_request: str | None = None
    llm_response: str | None = None
    created_at: datetime
    updated_at: datetime


class Submitter(BaseModel):
    """Who is submitting: an optional authenticated user plus the client IP."""
    user_id: UUID | None = None
    ip: str

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    def owns(self, request: AnalyzeRequest) -> bool:
        """Return True if *request* was made by this submitter."""
        if self.user_id is not None:
            return request.user_id == self.user_id
        return request.user_id is None and request.user_ip == self.ip
