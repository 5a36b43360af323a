"""Queue consumer: pops jobs and runs the analysis pipeline.

A single consumer processes one job to completion before popping the next.
Delivery is at-most-once from the dispatcher's side: a job that fails is
recorded as failed and never retried automatically.  Success or failure is
applied to every in-flight request attached to the same post, so concurrent
submitters share one pipeline run.
"""

from __future__ import annotations

import logging
import threading
import time
from uuid import uuid4

from pydantic import ValidationError

from app.core.config import settings
from app.core.errors import AnalysisError, ServiceError
from app.db.queue import pop, queue_key
from app.models.analyze_request import AnalyzeRequest
from app.models.enums import IN_FLIGHT_STATUSES, JobKind, RequestStatus
from app.models.post import Post
from app.models.queue import QueueJob
from app.services.normalizer import normalize
from app.services.scoring import score_metrics
from app.services.scraping import fetch_and_update
from app.services.store import (
    find_post,
    find_post_analysis,
    find_request,
    replace_post_contents,
    set_in_flight_requests_status,
    set_post_status,
    set_request_status,
    update_request,
    update_viral_score,
    upsert_post_analysis,
)
from app.services.video_analysis import analyze

logger = logging.getLogger(__name__)


def failure_reason(exc: Exception) -> str:
    """Human-readable reason stored on a failed request."""
    if isinstance(exc, ServiceError):
        return exc.message
    return f"{type(exc).__name__}: {exc}"


class QueueDispatcher:
    """Blocking consumer of the fresh and renew queues."""

    def __init__(self, pop_timeout_seconds: int | None = None) -> None:
        self.pop_timeout_seconds = (
            pop_timeout_seconds
            if pop_timeout_seconds is not None
            else settings.QUEUE_POP_TIMEOUT_SECONDS
        )
        self._stop_event = threading.Event()

    # -- lifecycle ----------------------------------------------------------

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def run_forever(self) -> None:
        """Pop and handle messages until ``stop()`` is called.

        The pop is bounded by ``pop_timeout_seconds`` so a stop request is
        noticed within that delay.  Queue connection errors are logged and
        retried after a short pause.
        """
        logger.info("dispatcher_started", extra={"pop_timeout": self.pop_timeout_seconds})
        while not self._stop_event.is_set():
            try:
                message = pop(self.pop_timeout_seconds)
            except Exception as exc:
                logger.error("queue_pop_failed", extra={"error_message": str(exc)})
                self._stop_event.wait(self.pop_timeout_seconds)
                continue
            if message is None:
                continue
            key, payload = message
            self.handle_message(key, payload)
        logger.info("dispatcher_stopped")

    # -- message handling ---------------------------------------------------

    def handle_message(self, key: str, payload: str) -> None:
        """Process one popped message.  Never raises."""
        kinds = {queue_key(kind): kind for kind in JobKind}
        kind = kinds.get(key)
        if kind is None:
            logger.warning("unknown_queue_dropped", extra={"queue": key})
            return

        try:
            job = QueueJob.model_validate_json(payload)
        except ValidationError as exc:
            logger.error(
                "job_payload_invalid",
                extra={"queue": key, "error_message": str(exc)},
            )
            return

        try:
            request = find_request(job.tracking_id)
        except Exception as exc:
            logger.error(
                "job_lookup_failed",
                extra={"tracking_id": str(job.tracking_id), "error_message": str(exc)},
            )
            return
        if request is None:
            logger.warning("job_request_missing", extra={"tracking_id": str(job.tracking_id)})
            return
        if request.status not in IN_FLIGHT_STATUSES:
            # Already settled by an earlier job for the same post.
            logger.info(
                "job_request_settled",
                extra={"tracking_id": str(request.id), "status": request.status.value},
            )
            return

        post_id = job.content_id or request.post_id
        started = time.monotonic()
        try:
            post = find_post(post_id) if post_id else None
            if post is None:
                raise ServiceError(f"Post {post_id} not found for request {request.id}")
            set_request_status(request.id, RequestStatus.processing)
            if kind is JobKind.fresh:
                set_post_status(post.id, RequestStatus.processing)

            if kind is JobKind.renew:
                self.run_renew(request, post)
            else:
                self.run_fresh(request, post)
        except Exception as exc:
            reason = failure_reason(exc)
            logger.error(
                "job_failed",
                extra={
                    "queue": key,
                    "tracking_id": str(request.id),
                    "post_id": post_id,
                    "error_type": type(exc).__name__,
                    "error_message": reason,
                },
            )
            # A failed renew leaves the post on its last good result.
            self._finish(
                request, post_id, RequestStatus.failed, reason,
                update_post=kind is JobKind.fresh,
            )
            return

        self._finish(request, post_id, RequestStatus.completed, None)
        logger.info(
            "job_completed",
            extra={
                "queue": key,
                "tracking_id": str(request.id),
                "post_id": post_id,
                "duration_seconds": round(time.monotonic() - started, 2),
            },
        )

    def _finish(
        self,
        request: AnalyzeRequest,
        post_id: str | None,
        status: RequestStatus,
        reason: str | None,
        update_post: bool = True,
    ) -> None:
        try:
            set_request_status(request.id, status, reason)
            if post_id:
                if update_post:
                    set_post_status(post_id, status, reason)
                set_in_flight_requests_status(post_id, status, reason)
        except Exception as exc:
            logger.error(
                "job_status_update_failed",
                extra={
                    "tracking_id": str(request.id),
                    "status": status.value,
                    "error_message": str(exc),
                },
            )

    # -- pipelines ----------------------------------------------------------

    def run_fresh(self, request: AnalyzeRequest, post: Post) -> None:
        """Scrape, analyze, normalize and persist one post."""
        run_id = uuid4()
        scrape = fetch_and_update(post)
        stored = find_post(post.id) or post

        try:
            outcome = analyze(scrape)
        except AnalysisError as exc:
            if exc.raw_request or exc.raw_response:
                update_request(request.id, {
                    "llm_request": exc.raw_request or None,
                    "llm_response": exc.raw_response or None,
                })
            raise
        update_request(request.id, {
            "llm_request": outcome.raw_request,
            "llm_response": outcome.raw_response,
        })

        contents, analysis_row = normalize(stored, scrape.primary, outcome.result, run_id)
        replace_post_contents(post.id, run_id, contents)
        upsert_post_analysis(analysis_row)
        logger.info(
            "analysis_persisted",
            extra={
                "post_id": post.id,
                "run_id": str(run_id),
                "contents": len(contents),
                "viral_score": analysis_row.viral_score,
            },
        )

    def run_renew(self, request: AnalyzeRequest, post: Post) -> None:
        """Refresh counters and the author baseline, then re-score.

        Content rows are left untouched.  A post with no stored analysis
        gets the full pipeline instead.
        """
        existing = find_post_analysis(post.id)
        if existing is None:
            logger.info("renew_without_analysis", extra={"post_id": post.id})
            self.run_fresh(request, post)
            return

        fetch_and_update(post)
        viral_score = round(
            score_metrics(existing.metrics, existing.scope_confidence, existing.scope_level),
            2,
        )
        update_viral_score(post.id, viral_score)
        logger.info(
            "renew_completed",
            extra={"post_id": post.id, "viral_score": viral_score},
        )


# ---------------------------------------------------------------------------
# In-process runner (FastAPI lifespan)
# ---------------------------------------------------------------------------

_dispatcher: QueueDispatcher | None = None
_thread: threading.Thread | None = None


def start_dispatcher() -> None:
    """Start the dispatcher in a daemon thread."""
    global _dispatcher, _thread
    if _thread is not None and _thread.is_alive():
        return
    _dispatcher = QueueDispatcher()
    _thread = threading.Thread(
        target=_dispatcher.run_forever, name="queue-dispatcher", daemon=True
    )
    _thread.start()


def stop_dispatcher(timeout: float | None = None) -> None:
    """Ask the dispatcher to stop and wait for the current job to finish."""
    global _dispatcher, _thread
    if _dispatcher is not None:
        _dispatcher.stop()
    if _thread is not None:
        _thread.join(timeout=timeout)
    _dispatcher = None
    _thread = None


def is_dispatcher_running() -> bool:
    return _thread is not None and _thread.is_alive()
