"""Pydantic models for the ``channels`` and ``channel_histories`` tables.

Channel histories are append-only snapshots; a channel's current stats are
its latest snapshot by ``created_at``.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.models.enums import SocialPlatform


class ChannelCreate(BaseModel):
    """Payload for inserting a channel (unique on handle)."""
    handle: str
    full_name: str = ""
    platform: SocialPlatform = SocialPlatform.instagram


class Channel(BaseModel):
    """Full channel record returned from the database."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    handle: str
    full_name: str = ""
    platform: SocialPlatform = SocialPlatform.instagram
    created_at: datetime
    updated_at: datetime


class ChannelHistoryCreate(BaseModel):
    """Payload for appending a channel stats snapshot."""
    channel_id: UUID
    followers_count: int = 0
    following_count: int = 0
    media_count: int = 0
    average_likes: float = 0.0
    average_comments: float = 0.0
    average_video_views: float = 0.0
    average_video_plays: float = 0.0


class ChannelHistory(BaseModel):
    """Full channel_histories record returned from the database."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    channel_id: UUID
    followers_count: int = 0
    following_count: int = 0
    media_count: int = 0
    average_likes: float = 0.0
    average_comments: float = 0.0
    average_video_views: float = 0.0
    average_video_plays: float = 0.0
    created_at: datetime
