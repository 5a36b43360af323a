"""Pydantic models for the ``posts`` table.

A post is keyed by the platform's short code, derived deterministically
from the submitted URL, so repeated submissions converge on one row.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.models.enums import RequestStatus


class PostUpsert(BaseModel):
    """Payload for upserting a post (conflict on id)."""
    id: str
    link: str
    channel_id: UUID | None = None
    status: RequestStatus = RequestStatus.pending
    fail_reason: str | None = None

    image_url: str | None = None
    video_url: str | None = None

    user_name: str = ""
    user_anchor: str = ""
    user_profile_link: str = ""
    user_profile_image: str = ""

    like_count: int = 0
    comment_count: int = 0
    video_view_count: int = 0
    video_play_count: int = 0
    post_date: datetime | None = None


class Post(BaseModel):
    """Full post record returned from the database."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    link: str
    channel_id: UUID | None = None
    status: RequestStatus = RequestStatus.pending
    fail_reason: str | None = None

    image_url: str | None = None
    video_url: str | None = None

    user_name: str = ""
    user_anchor: str = ""
    user_profile_link: str = ""
    user_profile_image: str = ""

    like_count: int = 0
    comment_count: int = 0
    video_view_count: int = 0
    video_play_count: int = 0
    post_date: datetime | None = None

    created_at: datetime
    updated_at: datetime
