"""Enum types mirroring the PostgreSQL enums and queue vocabulary."""

from enum import Enum


class SocialPlatform(str, Enum):
    """Source platform of a submitted link."""
    instagram = "instagram"
    twitter = "twitter"
    youtube = "youtube"
    tiktok = "tiktok"
    unknown = "unknown"


class RequestStatus(str, Enum):
    """Lifecycle of an analyze request and of its post."""
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"


IN_FLIGHT_STATUSES: frozenset[RequestStatus] = frozenset(
    {RequestStatus.pending, RequestStatus.processing}
)


class ContentType(str, Enum):
    """Kind tag of a ``post_contents`` row."""
    caption = "caption"
    summary = "summary"
    transcript = "transcript"
    trend_metadata = "trendMetadata"
    giveaway = "giveaway"
    key_point = "keyPoint"


class ScopeLevel(str, Enum):
    """Geographic reach of a topic as judged by the LLM."""
    local = "Local"
    national = "National"
    global_ = "Global"


class JobKind(str, Enum):
    """Work queue class: full analysis or stats refresh + re-score."""
    fresh = "fresh"
    renew = "renew"
