"""Read side: status and stored results by tracking id or content id."""

from __future__ import annotations

import logging
from uuid import UUID

from app.core.errors import NotFoundError
from app.models.enums import ContentType, RequestStatus
from app.models.post import Post
from app.models.post_content import GiveawayMetadata, SegmentMetadata
from app.models.result import (
    AnalysisStatusResponse,
    AnalysisView,
    ChannelView,
    GiveawayView,
    PostResult,
    PostView,
    TranscriptView,
)
from app.services.store import (
    find_channel,
    find_post,
    find_post_analysis,
    find_request,
    latest_channel_history,
    list_post_contents,
)
from app.services.video_analysis import engagement_rate

logger = logging.getLogger(__name__)


def build_post_result(post: Post) -> PostResult:
    """Assemble the stored post, author stats, content and analysis."""
    result = PostResult(post=PostView(**post.model_dump()))

    followers = 0
    if post.channel_id is not None:
        channel = find_channel(post.channel_id)
        history = latest_channel_history(post.channel_id)
        if channel is not None:
            view = ChannelView(handle=channel.handle, full_name=channel.full_name)
            if history is not None:
                followers = history.followers_count
                view = view.model_copy(update={
                    "followers_count": history.followers_count,
                    "following_count": history.following_count,
                    "media_count": history.media_count,
                    "average_likes": history.average_likes,
                    "average_comments": history.average_comments,
                    "average_video_views": history.average_video_views,
                    "average_video_plays": history.average_video_plays,
                    "average_engagement_rate": engagement_rate(
                        history.average_likes, history.average_comments, followers
                    ),
                })
            result.channel = view

    result.engagement_rate = engagement_rate(post.like_count, post.comment_count, followers)

    for content in list_post_contents(post.id):
        if content.type is ContentType.caption:
            result.caption = content.text
            result.caption_language = content.language
        elif content.type is ContentType.summary:
            result.summary = content.text
        elif content.type is ContentType.transcript:
            meta = content.metadata if isinstance(content.metadata, SegmentMetadata) else SegmentMetadata()
            result.transcript.append(TranscriptView(
                text=content.text,
                language=content.language,
                timestamp=meta.timestamp,
                speaker=meta.speaker,
                emotion=meta.emotion,
            ))
        elif content.type is ContentType.key_point:
            result.key_points.append(content.text)
        elif content.type is ContentType.trend_metadata:
            result.trend_metadata = content.text
        elif content.type is ContentType.giveaway and isinstance(content.metadata, GiveawayMetadata):
            result.giveaway = GiveawayView(**content.metadata.model_dump())

    analysis = find_post_analysis(post.id)
    if analysis is not None:
        result.analysis = AnalysisView(**analysis.model_dump())
    return result


def get_analyze_result(tracking_id: UUID) -> AnalysisStatusResponse:
    """Return the status of *tracking_id*, with the result once completed.

    Raises ``NotFoundError`` for an unknown tracking id.
    """
    request = find_request(tracking_id)
    if request is None:
        raise NotFoundError(f"Analyze request {tracking_id} not found")

    response = AnalysisStatusResponse(
        tracking_id=request.id,
        content_id=request.post_id,
        status=request.status,
        fail_reason=request.fail_reason if request.status is RequestStatus.failed else None,
    )
    if request.status is RequestStatus.completed and request.post_id:
        post = find_post(request.post_id)
        if post is not None:
            response.result = build_post_result(post)
    return response


def get_post_result(content_id: str) -> AnalysisStatusResponse:
    """Return the status of the post keyed by *content_id*.

    Raises ``NotFoundError`` when no such post was ever submitted.
    """
    post = find_post(content_id)
    if post is None:
        raise NotFoundError(f"Post {content_id} not found")

    response = AnalysisStatusResponse(
        content_id=post.id,
        status=post.status,
        fail_reason=post.fail_reason if post.status is RequestStatus.failed else None,
    )
    if post.status is RequestStatus.completed:
        response.result = build_post_result(post)
    return response
