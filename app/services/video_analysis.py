"""Analysis orchestration: engagement context + LLM call.

Builds the context the LLM needs to judge a post against its author's
baseline (engagement stats, peer averages, co-authors, comment sample,
timing, region) and invokes the video analysis.

Engagement rate is ``(likes + comments) / followers * 100``.  With zero
followers the rate is unavailable and is left out of the context rather
than sent as ``inf``/``nan``.
"""

from __future__ import annotations

import logging

from app.core.config import settings
from app.core.errors import AnalysisError
from app.models.enums import SocialPlatform
from app.models.llm import AnalysisOutcome
from app.models.scraping import ScrapeResult
from app.services.language import detect_language
from app.services.llm import analyze_video
from app.services.scraping import compute_peer_averages

logger = logging.getLogger(__name__)


def engagement_rate(likes: float, comments: float, followers: int) -> float | None:
    """Return the engagement rate in percent, or ``None`` without followers."""
    if followers <= 0:
        return None
    return (likes + comments) / followers * 100


def _followers(scrape: ScrapeResult) -> int:
    if scrape.profile is not None:
        return scrape.profile.followers_count
    if scrape.history is not None:
        return scrape.history.followers_count
    return 0


def build_engagement_stats(scrape: ScrapeResult) -> dict[str, float]:
    """Counters of the target post, plus its engagement rate when available."""
    primary = scrape.primary
    followers = _followers(scrape)
    stats: dict[str, float] = {
        "likes": primary.like_count,
        "comments": primary.comment_count,
        "views": primary.video_view_count,
        "plays": primary.video_play_count,
        "followers": followers,
    }
    rate = engagement_rate(primary.like_count, primary.comment_count, followers)
    if rate is not None:
        stats["engagement_rate"] = round(rate, 4)
    return stats


def build_average_stats(scrape: ScrapeResult) -> dict[str, float]:
    """Peer-sample averages, or an empty map when there is no usable baseline.

    An empty sample or one with zero aggregate likes would present a
    misleading baseline, so both yield ``{}``.
    """
    peers = scrape.peers
    if len(peers) < 1 or sum(p.like_count for p in peers) == 0:
        return {}

    averages = compute_peer_averages(peers)
    stats = {
        "average_likes": round(averages["average_likes"], 2),
        "average_comments": round(averages["average_comments"], 2),
        "average_views": round(averages["average_video_views"], 2),
        "average_plays": round(averages["average_video_plays"], 2),
    }
    rate = engagement_rate(
        averages["average_likes"], averages["average_comments"], _followers(scrape)
    )
    if rate is not None:
        stats["average_engagement_rate"] = round(rate, 4)
    return stats


def analyze(scrape: ScrapeResult) -> AnalysisOutcome:
    """Analyze the scraped post with the LLM.

    Raises ``AnalysisError`` when the post has no video or the LLM call
    fails; the error carries the raw exchange when one happened.
    """
    primary = scrape.primary
    if not primary.video_url:
        raise AnalysisError(f"Post {primary.short_code} has no video to analyze")

    caption_language = detect_language(primary.caption)
    stats = build_engagement_stats(scrape)
    average_stats = build_average_stats(scrape)

    logger.info(
        "analysis_context_built",
        extra={
            "post_id": primary.short_code,
            "caption_language": caption_language,
            "has_baseline": bool(average_stats),
            "comments_sampled": min(len(primary.comments), settings.COMMENT_SAMPLE_SIZE),
        },
    )

    return analyze_video(
        platform=SocialPlatform.instagram.value.capitalize(),
        video_url=primary.video_url,
        caption=primary.caption,
        caption_language=caption_language,
        coauthors=primary.coauthors,
        comments=primary.comments[: settings.COMMENT_SAMPLE_SIZE],
        stats=stats,
        average_stats=average_stats,
        published_at=primary.posted_at,
        region=settings.TARGET_REGION,
    )
