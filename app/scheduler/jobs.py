"""APScheduler job definitions and scheduler management.

One interval job, ``requeue_stale_requests``: a request that stays
``pending`` past ``PENDING_REQUEUE_AFTER_MINUTES`` lost its queue message
(crash between write and push, Redis flush) and is pushed again.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.db.queue import enqueue, queued_content_ids
from app.models.analyze_request import AnalyzeRequest
from app.models.enums import JobKind, RequestStatus
from app.models.queue import QueueJob
from app.services.ingest import classify_platform
from app.services.store import find_post, list_stale_pending_requests, update_request

logger = logging.getLogger(__name__)

# Module-level scheduler instance (singleton)
scheduler = BackgroundScheduler()


def requeue_stale_requests(now: datetime | None = None) -> int:
    """Push stale pending requests back onto their queue.

    A post that is ``processing`` or already has a message waiting is
    skipped: its running or queued job settles every in-flight request.
    A request whose post is already completed goes to the renew queue.
    Returns the number of jobs pushed.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(minutes=settings.PENDING_REQUEUE_AFTER_MINUTES)
    stale = list_stale_pending_requests(cutoff)
    if not stale:
        return 0

    by_post: dict[str, list[AnalyzeRequest]] = {}
    for request in stale:
        if request.post_id:
            by_post.setdefault(request.post_id, []).append(request)

    queued = queued_content_ids()
    requeued = 0
    for post_id, requests in by_post.items():
        request = requests[0]
        post = find_post(post_id)
        if post_id in queued or (post is not None and post.status is RequestStatus.processing):
            logger.info(
                "requeue_skipped_in_flight",
                extra={"post_id": post_id, "requests": len(requests)},
            )
            continue
        kind = (
            JobKind.renew
            if post is not None and post.status is RequestStatus.completed
            else JobKind.fresh
        )
        job = QueueJob(
            tracking_id=request.id,
            content_id=post_id,
            source_url=request.link,
            platform=classify_platform(request.link),
        )
        try:
            enqueue(kind, job)
            # Touch the rows so the next sweep waits another full period.
            for attached in requests:
                update_request(attached.id, {"status": RequestStatus.pending.value})
            requeued += 1
        except Exception as exc:
            logger.error(
                "requeue_failed",
                extra={"tracking_id": str(request.id), "error_message": str(exc)},
            )

    logger.info(
        "stale_requests_requeued",
        extra={"stale_count": len(stale), "requeued_count": requeued},
    )
    return requeued


def _requeue_job() -> None:
    """Wrapper that APScheduler calls on each interval tick."""
    try:
        requeue_stale_requests()
    except Exception as exc:
        logger.error("requeue_job_failed", extra={"error_message": str(exc)})


def start_scheduler() -> None:
    """Configure and start the background scheduler."""
    scheduler.add_job(
        _requeue_job,
        IntervalTrigger(minutes=settings.REQUEUE_INTERVAL_MINUTES),
        id="requeue_stale_requests",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        "scheduler_started",
        extra={"interval_minutes": settings.REQUEUE_INTERVAL_MINUTES},
    )


def shutdown_scheduler() -> None:
    """Shutdown the scheduler; called during FastAPI lifespan cleanup."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")


def is_scheduler_running() -> bool:
    """Check if the scheduler is currently running."""
    return scheduler.running
