"""Apify-based Instagram scraping service.

Fetches the target post and a sample of its author's recent posts via Apify
actors, writes the scraped fields onto the ``posts`` row as soon as they are
known, and appends a ``channel_histories`` snapshot with rolling averages.

There is no retry inside this module; a failed actor run surfaces as
``ScrapeError`` and the job decides what to do with it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from apify_client import ApifyClient

from app.core.config import settings
from app.core.constants import INSTAGRAM_PROFILE_URL, INSTAGRAM_REEL_URL
from app.core.errors import ScrapeError
from app.models.channel import ChannelCreate, ChannelHistoryCreate
from app.models.enums import SocialPlatform
from app.models.post import Post
from app.models.scraping import ScrapedItem, ScrapedProfile, ScrapeResult
from app.services.store import (
    append_channel_history,
    find_channel,
    resolve_channel,
    update_post,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Apify client helper
# ---------------------------------------------------------------------------

def _get_apify_client() -> ApifyClient:
    """Return a configured Apify client."""
    return ApifyClient(settings.APIFY_TOKEN)


def _run_actor(actor_id: str, run_input: dict[str, Any]) -> list[dict[str, Any]]:
    """Run *actor_id* to completion and return its dataset items.

    Raises ``ScrapeError`` on transport failure, on a run that does not end
    ``SUCCEEDED`` (including a timeout), and on provider error items.
    """
    try:
        apify = _get_apify_client()
        run_result = apify.actor(actor_id).call(
            run_input=run_input,
            timeout_secs=settings.SCRAPE_TIMEOUT_SECONDS,
        )
        if run_result is None or run_result.get("status") != "SUCCEEDED":
            status = run_result.get("status") if run_result else "UNKNOWN"
            raise ScrapeError(f"Apify actor {actor_id} finished with status {status}")
        items: list[dict[str, Any]] = list(
            apify.dataset(run_result["defaultDatasetId"]).iterate_items()
        )
    except ScrapeError:
        raise
    except Exception as exc:
        logger.error(
            "apify_actor_failed",
            extra={"actor_id": actor_id, "error_message": str(exc)},
        )
        raise ScrapeError(f"Apify actor {actor_id} failed: {exc}") from exc

    for item in items:
        if item.get("error"):
            detail = item.get("errorDescription") or item["error"]
            raise ScrapeError(f"Apify actor {actor_id} returned an error: {detail}")
    return items


# ---------------------------------------------------------------------------
# Apify -> Pydantic mappers
# ---------------------------------------------------------------------------

def _parse_timestamp(raw: Any) -> datetime | None:
    if not raw:
        return None
    if isinstance(raw, str):
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except (ValueError, TypeError):
            return None
    if isinstance(raw, (int, float)):
        return datetime.fromtimestamp(raw, tz=timezone.utc)
    return None


def _as_int(raw: Any) -> int:
    try:
        return int(raw or 0)
    except (TypeError, ValueError):
        return 0


def _map_apify_item(item: dict[str, Any]) -> ScrapedItem:
    """Map a single Apify instagram-scraper result to a ``ScrapedItem``."""
    coauthors = [
        str(c.get("username"))
        for c in item.get("coauthorProducers") or []
        if isinstance(c, dict) and c.get("username")
    ]
    comments = [
        str(c.get("text"))
        for c in item.get("latestComments") or []
        if isinstance(c, dict) and c.get("text")
    ]

    return ScrapedItem(
        short_code=item.get("shortCode") or "",
        url=item.get("url") or "",
        caption=item.get("caption") or "",
        owner_username=item.get("ownerUsername") or "",
        owner_full_name=item.get("ownerFullName") or "",
        like_count=_as_int(item.get("likesCount")),
        comment_count=_as_int(item.get("commentsCount")),
        video_view_count=_as_int(item.get("videoViewCount")),
        video_play_count=_as_int(item.get("videoPlayCount")),
        video_url=item.get("videoUrl"),
        display_url=item.get("displayUrl"),
        posted_at=_parse_timestamp(item.get("timestamp")),
        coauthors=coauthors,
        comments=comments,
        raw_data=item,
    )


def _map_apify_profile(item: dict[str, Any]) -> ScrapedProfile:
    """Map an Apify instagram-profile-scraper result to a ``ScrapedProfile``."""
    return ScrapedProfile(
        username=item.get("username") or "",
        full_name=item.get("fullName") or "",
        followers_count=_as_int(item.get("followersCount")),
        following_count=_as_int(item.get("followsCount")),
        media_count=_as_int(item.get("postsCount")),
        profile_pic_url=item.get("profilePicUrl") or "",
    )


# ---------------------------------------------------------------------------
# Provider calls
# ---------------------------------------------------------------------------

def get_item(shortcode: str) -> ScrapedItem:
    """Fetch one post by its short code."""
    items = _run_actor(
        settings.APIFY_POST_ACTOR_ID,
        {
            "directUrls": [INSTAGRAM_REEL_URL.format(shortcode=shortcode)],
            "resultsType": "posts",
            "resultsLimit": 1,
        },
    )
    if not items:
        raise ScrapeError(f"Scrape provider returned no item for {shortcode}")
    return _map_apify_item(items[0])


def get_author_recent_items(handle: str, count: int) -> list[ScrapedItem]:
    """Fetch up to *count* of *handle*'s most recent posts."""
    items = _run_actor(
        settings.APIFY_POST_ACTOR_ID,
        {
            "directUrls": [INSTAGRAM_PROFILE_URL.format(handle=handle)],
            "resultsType": "posts",
            "resultsLimit": count,
        },
    )
    return [_map_apify_item(item) for item in items[:count]]


def get_author_profile(handle: str) -> ScrapedProfile | None:
    """Fetch *handle*'s profile counters, or ``None`` if the actor found nothing."""
    items = _run_actor(settings.APIFY_PROFILE_ACTOR_ID, {"usernames": [handle]})
    if not items:
        return None
    return _map_apify_profile(items[0])


# ---------------------------------------------------------------------------
# Averages
# ---------------------------------------------------------------------------

def compute_peer_averages(peers: list[ScrapedItem]) -> dict[str, float]:
    """Arithmetic means of the peer counters; all zero for an empty sample."""
    if not peers:
        return {
            "average_likes": 0.0,
            "average_comments": 0.0,
            "average_video_views": 0.0,
            "average_video_plays": 0.0,
        }
    n = len(peers)
    return {
        "average_likes": sum(p.like_count for p in peers) / n,
        "average_comments": sum(p.comment_count for p in peers) / n,
        "average_video_views": sum(p.video_view_count for p in peers) / n,
        "average_video_plays": sum(p.video_play_count for p in peers) / n,
    }


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

def fetch_and_update(post: Post) -> ScrapeResult:
    """Scrape *post* and its author, persisting progress as it goes.

    1. Fetch the target item (failure propagates as ``ScrapeError``).
    2. Write author fields, media URLs, post date and counters to the post.
    3. Link the author's channel, creating it on first sight.
    4. Fetch the author's profile and recent items, append one history
       snapshot with the sample averages.

    A failure in steps 3-4 does not undo step 2; it is reported through
    ``ScrapeResult.peer_error``.
    """
    logger.info("scrape_started", extra={"post_id": post.id})

    primary = get_item(post.id)
    handle = primary.owner_username

    # Partial writes only: the job owns the post's status meanwhile.
    stored = update_post(post.id, {
        "user_name": primary.owner_full_name or handle,
        "user_anchor": handle,
        "user_profile_link": INSTAGRAM_PROFILE_URL.format(handle=handle) if handle else "",
        "image_url": primary.display_url,
        "video_url": primary.video_url,
        "like_count": primary.like_count,
        "comment_count": primary.comment_count,
        "video_view_count": primary.video_view_count,
        "video_play_count": primary.video_play_count,
        "post_date": primary.posted_at.isoformat() if primary.posted_at else None,
    })

    result = ScrapeResult(primary=primary)
    if not handle:
        result.peer_error = "Scraped item has no author handle"
        logger.warning("scrape_missing_author", extra={"post_id": post.id})
        return result

    try:
        channel = find_channel(stored.channel_id) if stored.channel_id else None
        if channel is None:
            channel = resolve_channel(ChannelCreate(
                handle=handle,
                full_name=primary.owner_full_name,
                platform=SocialPlatform.instagram,
            ))
            update_post(post.id, {"channel_id": str(channel.id)})
        result.channel = channel

        profile = get_author_profile(handle)
        if profile is not None and profile.profile_pic_url:
            update_post(post.id, {"user_profile_image": profile.profile_pic_url})
        peers = [
            p for p in get_author_recent_items(handle, settings.PEER_SAMPLE_SIZE)
            if p.short_code != primary.short_code
        ]
        result.profile = profile
        result.peers = peers

        result.history = append_channel_history(ChannelHistoryCreate(
            channel_id=channel.id,
            followers_count=profile.followers_count if profile else 0,
            following_count=profile.following_count if profile else 0,
            media_count=profile.media_count if profile else 0,
            **compute_peer_averages(peers),
        ))
    except Exception as exc:
        result.peer_error = str(exc)
        logger.warning(
            "scrape_author_failed",
            extra={
                "post_id": post.id,
                "handle": handle,
                "error_message": str(exc),
            },
        )

    logger.info(
        "scrape_completed",
        extra={
            "post_id": post.id,
            "handle": handle,
            "peers_count": len(result.peers),
            "peer_error": result.peer_error,
        },
    )
    return result
