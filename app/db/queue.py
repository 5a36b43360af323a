"""Redis-backed work queue.

Two Redis lists, one per job class.  Producers ``LPUSH`` and the single
consumer ``BRPOP``s, which yields FIFO order per list.  When both lists hold
messages the fresh queue is drained first.
"""

from __future__ import annotations

import logging

import redis
from pydantic import ValidationError

from app.core.config import settings
from app.models.enums import JobKind
from app.models.queue import QueueJob

logger = logging.getLogger(__name__)

_client: redis.Redis | None = None


def get_redis() -> redis.Redis:
    """Return the singleton Redis client, creating it on first call."""
    global _client
    if _client is None:
        _client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _client


def queue_key(kind: JobKind) -> str:
    """Return the Redis list name for *kind*."""
    if kind is JobKind.renew:
        return f"{settings.QUEUE_KEY_PREFIX}post_renew_queue"
    return f"{settings.QUEUE_KEY_PREFIX}post_queue"


def enqueue(kind: JobKind, job: QueueJob) -> None:
    """Push *job* onto the queue for *kind*.

    Raises ``redis.RedisError`` when the push fails.
    """
    get_redis().lpush(queue_key(kind), job.to_payload())
    logger.info(
        "job_enqueued",
        extra={
            "queue": queue_key(kind),
            "tracking_id": str(job.tracking_id),
            "content_id": job.content_id,
        },
    )


def pop(timeout_seconds: int) -> tuple[str, str] | None:
    """Block up to *timeout_seconds* for the next message.

    Returns ``(queue_key, payload)`` or ``None`` on timeout.
    """
    result = get_redis().brpop(
        [queue_key(JobKind.fresh), queue_key(JobKind.renew)],
        timeout=timeout_seconds,
    )
    if result is None:
        return None
    key, payload = result
    return key, payload


def queued_content_ids() -> set[str]:
    """Return the content ids with a message waiting in either queue.

    Unparseable messages are skipped; the dispatcher drops those anyway.
    """
    client = get_redis()
    content_ids: set[str] = set()
    for kind in JobKind:
        for payload in client.lrange(queue_key(kind), 0, -1):
            try:
                job = QueueJob.model_validate_json(payload)
            except ValidationError:
                continue
            if job.content_id:
                content_ids.add(job.content_id)
    return content_ids
