"""Read-side response models for ``/analyze/{id}`` and ``/posts/{id}``.

Field names are camelCase on the wire.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.enums import RequestStatus
from app.models.post_analysis import PostAnalysisCaptions, PostAnalysisMetric


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PostView(_CamelModel):
    id: str
    link: str
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
    updated_at: datetime | None = None


class ChannelView(_CamelModel):
    """Author stats from the latest history snapshot.

    Engagement rates are ``None`` when the follower count is zero.
    """
    handle: str
    full_name: str = ""
    followers_count: int = 0
    following_count: int = 0
    media_count: int = 0
    average_likes: float = 0.0
    average_comments: float = 0.0
    average_video_views: float = 0.0
    average_video_plays: float = 0.0
    average_engagement_rate: float | None = None


class TranscriptView(_CamelModel):
    text: str
    language: str = ""
    timestamp: str = ""
    speaker: str = ""
    emotion: str = ""


class GiveawayView(_CamelModel):
    prize: str = ""
    requirements: str = ""
    deadline: str = ""


class AnalysisView(_CamelModel):
    viral_score: float = 0.0
    big_idea: str = ""
    why_viral: str = ""
    audience_sentiment: str = ""
    sentiment_score: int = 0
    scope_level: str = ""
    scope_confidence: int = 0
    metrics: list[PostAnalysisMetric] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    hook_ideas: list[str] = Field(default_factory=list)
    script_ideas: list[str] = Field(default_factory=list)
    captions: PostAnalysisCaptions = Field(default_factory=PostAnalysisCaptions)
    hashtags: list[str] = Field(default_factory=list)


class PostResult(_CamelModel):
    """Everything stored for one completed post."""
    post: PostView
    channel: ChannelView | None = None
    engagement_rate: float | None = None
    caption: str = ""
    caption_language: str = ""
    summary: str = ""
    transcript: list[TranscriptView] = Field(default_factory=list)
    key_points: list[str] = Field(default_factory=list)
    trend_metadata: str = ""
    giveaway: GiveawayView | None = None
    analysis: AnalysisView | None = None


class AnalysisStatusResponse(_CamelModel):
    """Status of a tracking id or a content id, with the result once done."""
    tracking_id: UUID | None = None
    content_id: str | None = None
    status: RequestStatus
    fail_reason: str | None = None
    result: PostResult | None = None
