"""Submission entry point.

``submit`` classifies the link, derives its content identifier, applies the
anonymous daily limit, attaches or reuses the submitter's tracking record,
and decides between returning a cached result, queuing a renew job, or
queuing a fresh analysis.

The tracking record is written before the job is pushed.  If the push is
lost (Redis down, process crash in between) the record stays ``pending``
and the requeue sweep in ``app.scheduler.jobs`` pushes it again.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlsplit

from app.core.config import settings
from app.core.constants import (
    PLATFORM_ESTIMATE_SECONDS,
    PLATFORM_PATTERNS,
    SUPPORTED_PLATFORMS,
)
from app.core.errors import InvalidArgumentError, PermissionDeniedError
from app.db.queue import enqueue
from app.models.analyze_request import AnalyzeRequest, AnalyzeRequestCreate, Submitter
from app.models.enums import IN_FLIGHT_STATUSES, JobKind, RequestStatus, SocialPlatform
from app.models.post import Post, PostUpsert
from app.models.queue import QueueJob, SubmitResponse
from app.services.store import (
    count_requests_by_ip,
    find_post,
    insert_request,
    list_requests_by_post,
    set_post_status,
    set_request_status,
    upsert_post,
)

logger = logging.getLogger(__name__)

_COMPILED_PATTERNS = {
    platform: re.compile(pattern, re.IGNORECASE)
    for platform, pattern in PLATFORM_PATTERNS.items()
}


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------

def canonicalize_url(url: str) -> str:
    """Drop the query string, fragment and trailing slash.

    YouTube watch links keep their ``v`` parameter since it is the id.
    """
    text = url.strip()
    parts = urlsplit(text if "://" in text else f"https://{text}")
    base = text.split("#", 1)[0].split("?", 1)[0].rstrip("/")
    if parts.path.rstrip("/") == "/watch" and "youtube.com" in parts.netloc.lower():
        video_ids = parse_qs(parts.query).get("v")
        if video_ids:
            return f"{base}?v={video_ids[0]}"
    return base


def _match(url: str) -> tuple[SocialPlatform, str | None]:
    canonical = canonicalize_url(url)
    for platform, pattern in _COMPILED_PATTERNS.items():
        match = pattern.search(canonical)
        if match:
            return platform, match.group(1)
    return SocialPlatform.unknown, None


def classify_platform(url: str) -> SocialPlatform:
    """Return the platform a link points to, or ``unknown``."""
    return _match(url)[0]


def derive_content_id(url: str) -> str | None:
    """Return the platform's own id for the linked content.

    A pure function of the canonical URL: query string and trailing slash
    do not change the result.
    """
    return _match(url)[1]


def estimate_seconds(platform: SocialPlatform) -> int:
    return PLATFORM_ESTIMATE_SECONDS.get(platform, 0)


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------

def _day_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def _is_fresh(post: Post, now: datetime) -> bool:
    updated_at = post.updated_at
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    return updated_at > now - timedelta(hours=settings.FRESHNESS_WINDOW_HOURS)


def _check_rate_limit(submitter: Submitter, now: datetime) -> None:
    start, end = _day_bounds(now)
    count = count_requests_by_ip(submitter.ip, start, end)
    if count >= settings.ANONYMOUS_DAILY_LIMIT:
        logger.info(
            "submission_rate_limited",
            extra={"user_ip": submitter.ip, "count": count},
        )
        raise PermissionDeniedError(
            "Daily limit for anonymous analyses reached; sign in or try again tomorrow"
        )


def submit(url: str, submitter: Submitter, now: datetime | None = None) -> SubmitResponse:
    """Accept *url* for analysis and return a tracking handle with an estimate.

    Raises ``InvalidArgumentError`` for unsupported or unrecognized links and
    ``PermissionDeniedError`` when an anonymous submitter exceeds the daily
    limit for content not analyzed before.
    """
    now = now or datetime.now(timezone.utc)

    platform, content_id = _match(url)
    if platform is SocialPlatform.unknown or content_id is None:
        raise InvalidArgumentError("Unrecognized link; expected a supported post URL")
    if platform not in SUPPORTED_PLATFORMS:
        raise InvalidArgumentError(
            f"Unsupported platform {platform.value}; only Instagram reels are supported for now"
        )

    post = find_post(content_id)
    if post is None and submitter.is_anonymous:
        _check_rate_limit(submitter, now)

    link = canonicalize_url(url)
    requests = list_requests_by_post(content_id) if post is not None else []
    own = next((r for r in requests if submitter.owns(r)), None)
    others_in_flight = any(
        r.status in IN_FLIGHT_STATUSES for r in requests if r is not own
    )

    if post is None:
        post = upsert_post(PostUpsert(id=content_id, link=link))

    if post.status is RequestStatus.completed:
        if _is_fresh(post, now):
            request = _cached_request(own, submitter, link, content_id)
            logger.info(
                "submission_served_from_cache",
                extra={"tracking_id": str(request.id), "post_id": content_id},
            )
            return SubmitResponse(tracking_id=request.id, estimated_seconds=0)
        kind = JobKind.renew
        estimate = settings.RENEW_ESTIMATE_SECONDS
    else:
        kind = JobKind.fresh
        estimate = estimate_seconds(platform)
        if post.status is RequestStatus.failed:
            set_post_status(content_id, RequestStatus.pending)

    request, already_queued = _pending_request(own, submitter, link, content_id)
    if already_queued or others_in_flight:
        logger.info(
            "submission_joined_in_flight_job",
            extra={"tracking_id": str(request.id), "post_id": content_id},
        )
        return SubmitResponse(tracking_id=request.id, estimated_seconds=estimate)

    job = QueueJob(
        tracking_id=request.id,
        content_id=content_id,
        source_url=link,
        platform=platform,
    )
    try:
        enqueue(kind, job)
    except Exception as exc:
        # The record stays pending; the requeue sweep will push it.
        logger.error(
            "enqueue_failed",
            extra={
                "tracking_id": str(request.id),
                "post_id": content_id,
                "error_message": str(exc),
            },
        )

    return SubmitResponse(tracking_id=request.id, estimated_seconds=estimate)


def _cached_request(
    own: AnalyzeRequest | None,
    submitter: Submitter,
    link: str,
    content_id: str,
) -> AnalyzeRequest:
    """Return a completed tracking record for a post whose result is fresh."""
    if own is None:
        return insert_request(AnalyzeRequestCreate(
            user_id=submitter.user_id,
            user_ip=submitter.ip,
            link=link,
            post_id=content_id,
            status=RequestStatus.completed,
        ))
    if own.status is RequestStatus.failed:
        set_request_status(own.id, RequestStatus.completed)
    return own


def _pending_request(
    own: AnalyzeRequest | None,
    submitter: Submitter,
    link: str,
    content_id: str,
) -> tuple[AnalyzeRequest, bool]:
    """Return ``(request, already_queued)`` with the request in ``pending``.

    A request already pending or processing is reused untouched; a finished
    one is explicitly re-queued.
    """
    if own is None:
        request = insert_request(AnalyzeRequestCreate(
            user_id=submitter.user_id,
            user_ip=submitter.ip,
            link=link,
            post_id=content_id,
        ))
        return request, False
    if own.status in IN_FLIGHT_STATUSES:
        return own, True
    set_request_status(own.id, RequestStatus.pending)
    return own.model_copy(update={"status": RequestStatus.pending}), False
