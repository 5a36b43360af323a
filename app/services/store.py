"""Content store: table helpers over Supabase.

Every read and write of ``posts``, ``analyze_requests``, ``channels``,
``channel_histories``, ``post_contents`` and ``post_analyses`` goes through
this module.  Rows are last-writer-wins; there is no optimistic locking.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError

from app.db.supabase import get_supabase
from app.models.analyze_request import AnalyzeRequest, AnalyzeRequestCreate
from app.models.channel import (
    Channel,
    ChannelCreate,
    ChannelHistory,
    ChannelHistoryCreate,
)
from app.models.enums import IN_FLIGHT_STATUSES, RequestStatus
from app.models.post import Post, PostUpsert
from app.models.post_analysis import PostAnalysis, PostAnalysisCreate
from app.models.post_content import PostContent, PostContentCreate

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _first(result: Any) -> dict[str, Any] | None:
    data = result.data or []
    return data[0] if data else None


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

def find_post(post_id: str) -> Post | None:
    """Return the post keyed by *post_id* (the content identifier)."""
    client = get_supabase()
    row = _first(
        client.table("posts").select("*").eq("id", post_id).limit(1).execute()
    )
    return Post(**row) if row else None


def upsert_post(post: PostUpsert) -> Post:
    """Insert or update a post and return the stored row."""
    client = get_supabase()
    payload = post.model_dump(mode="json")
    payload["updated_at"] = _now_iso()
    row = _first(client.table("posts").upsert(payload, on_conflict="id").execute())
    if row is None:
        raise RuntimeError(f"Upsert of post {post.id} returned no row")
    return Post(**row)


def update_post(post_id: str, fields: dict[str, Any]) -> Post:
    """Write only *fields* onto one post and return the stored row.

    ``status`` and ``fail_reason`` are left alone unless named in *fields*.
    """
    client = get_supabase()
    row = _first(
        client.table("posts")
        .update({**fields, "updated_at": _now_iso()})
        .eq("id", post_id)
        .execute()
    )
    if row is None:
        raise RuntimeError(f"Update of post {post_id} matched no row")
    return Post(**row)


def set_post_status(
    post_id: str,
    status: RequestStatus,
    fail_reason: str | None = None,
) -> None:
    """Set a post's status; completing or re-queuing clears the failure reason."""
    client = get_supabase()
    client.table("posts").update({
        "status": status.value,
        "fail_reason": fail_reason,
        "updated_at": _now_iso(),
    }).eq("id", post_id).execute()


# ---------------------------------------------------------------------------
# Analyze requests
# ---------------------------------------------------------------------------

def find_request(request_id: UUID) -> AnalyzeRequest | None:
    client = get_supabase()
    row = _first(
        client.table("analyze_requests")
        .select("*")
        .eq("id", str(request_id))
        .limit(1)
        .execute()
    )
    return AnalyzeRequest(**row) if row else None


def list_requests_by_post(post_id: str) -> list[AnalyzeRequest]:
    """Return every request attached to *post_id*, most recently updated first."""
    client = get_supabase()
    result = (
        client.table("analyze_requests")
        .select("*")
        .eq("post_id", post_id)
        .order("updated_at", desc=True)
        .execute()
    )
    return [AnalyzeRequest(**row) for row in result.data or []]


def insert_request(request: AnalyzeRequestCreate) -> AnalyzeRequest:
    client = get_supabase()
    row = _first(
        client.table("analyze_requests")
        .insert(request.model_dump(mode="json"))
        .execute()
    )
    if row is None:
        raise RuntimeError("Insert of analyze request returned no row")
    return AnalyzeRequest(**row)


def update_request(request_id: UUID, fields: dict[str, Any]) -> None:
    """Apply a partial update to one request row."""
    client = get_supabase()
    client.table("analyze_requests").update(
        {**fields, "updated_at": _now_iso()}
    ).eq("id", str(request_id)).execute()


def set_request_status(
    request_id: UUID,
    status: RequestStatus,
    fail_reason: str | None = None,
) -> None:
    update_request(request_id, {"status": status.value, "fail_reason": fail_reason})


def set_in_flight_requests_status(
    post_id: str,
    status: RequestStatus,
    fail_reason: str | None = None,
) -> None:
    """Move every pending/processing request of *post_id* to *status*."""
    client = get_supabase()
    client.table("analyze_requests").update({
        "status": status.value,
        "fail_reason": fail_reason,
        "updated_at": _now_iso(),
    }).eq("post_id", post_id).in_(
        "status", [s.value for s in IN_FLIGHT_STATUSES]
    ).execute()


def count_requests_by_ip(ip: str, start: datetime, end: datetime) -> int:
    """Count requests created from *ip* in ``[start, end)``."""
    client = get_supabase()
    result = (
        client.table("analyze_requests")
        .select("id", count="exact")
        .eq("user_ip", ip)
        .gte("created_at", start.isoformat())
        .lt("created_at", end.isoformat())
        .execute()
    )
    if result.count is not None:
        return int(result.count)
    return len(result.data or [])


def list_stale_pending_requests(updated_before: datetime) -> list[AnalyzeRequest]:
    """Return pending requests not touched since *updated_before*."""
    client = get_supabase()
    result = (
        client.table("analyze_requests")
        .select("*")
        .eq("status", RequestStatus.pending.value)
        .lt("updated_at", updated_before.isoformat())
        .order("created_at")
        .execute()
    )
    return [AnalyzeRequest(**row) for row in result.data or []]


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------

def find_channel_by_handle(handle: str) -> Channel | None:
    client = get_supabase()
    row = _first(
        client.table("channels").select("*").eq("handle", handle).limit(1).execute()
    )
    return Channel(**row) if row else None


def find_channel(channel_id: UUID) -> Channel | None:
    client = get_supabase()
    row = _first(
        client.table("channels")
        .select("*")
        .eq("id", str(channel_id))
        .limit(1)
        .execute()
    )
    return Channel(**row) if row else None


def resolve_channel(channel: ChannelCreate) -> Channel:
    """Return the channel for ``channel.handle``, creating it if missing.

    Two jobs may both miss and try to insert the same handle; the loser
    hits the unique constraint and reads back the winner's row.
    """
    existing = find_channel_by_handle(channel.handle)
    if existing is not None:
        return existing

    client = get_supabase()
    try:
        row = _first(
            client.table("channels").insert(channel.model_dump(mode="json")).execute()
        )
    except APIError as exc:
        logger.info(
            "channel_insert_conflict",
            extra={"handle": channel.handle, "error_message": str(exc)},
        )
        row = None

    if row is not None:
        return Channel(**row)

    existing = find_channel_by_handle(channel.handle)
    if existing is None:
        raise RuntimeError(f"Channel {channel.handle} could not be created or found")
    return existing


def append_channel_history(history: ChannelHistoryCreate) -> ChannelHistory:
    """Append one immutable stats snapshot."""
    client = get_supabase()
    row = _first(
        client.table("channel_histories")
        .insert(history.model_dump(mode="json"))
        .execute()
    )
    if row is None:
        raise RuntimeError("Insert of channel history returned no row")
    return ChannelHistory(**row)


def latest_channel_history(channel_id: UUID) -> ChannelHistory | None:
    client = get_supabase()
    row = _first(
        client.table("channel_histories")
        .select("*")
        .eq("channel_id", str(channel_id))
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    )
    return ChannelHistory(**row) if row else None


# ---------------------------------------------------------------------------
# Contents and analyses
# ---------------------------------------------------------------------------

def replace_post_contents(
    post_id: str,
    run_id: UUID,
    contents: list[PostContentCreate],
) -> list[PostContent]:
    """Store *contents* as the post's content set, superseding earlier runs.

    The new rows go in with a single insert, so either all of them land or
    none do.  Rows of earlier runs are deleted only after that succeeds.
    """
    client = get_supabase()
    inserted: list[PostContent] = []
    if contents:
        result = (
            client.table("post_contents")
            .insert([c.model_dump(mode="json") for c in contents])
            .execute()
        )
        rows = result.data or []
        if len(rows) != len(contents):
            raise RuntimeError(
                f"Inserted {len(rows)} of {len(contents)} content rows for post {post_id}"
            )
        inserted = [PostContent(**row) for row in rows]

    client.table("post_contents").delete().eq("post_id", post_id).neq(
        "run_id", str(run_id)
    ).execute()
    return inserted


def list_post_contents(post_id: str) -> list[PostContent]:
    client = get_supabase()
    result = (
        client.table("post_contents")
        .select("*")
        .eq("post_id", post_id)
        .order("created_at")
        .execute()
    )
    return [PostContent(**row) for row in result.data or []]


def find_post_analysis(post_id: str) -> PostAnalysis | None:
    client = get_supabase()
    row = _first(
        client.table("post_analyses")
        .select("*")
        .eq("post_id", post_id)
        .limit(1)
        .execute()
    )
    return PostAnalysis(**row) if row else None


def upsert_post_analysis(analysis: PostAnalysisCreate) -> PostAnalysis:
    client = get_supabase()
    payload = analysis.model_dump(mode="json")
    payload["updated_at"] = _now_iso()
    row = _first(
        client.table("post_analyses").upsert(payload, on_conflict="post_id").execute()
    )
    if row is None:
        raise RuntimeError(f"Upsert of analysis for post {analysis.post_id} returned no row")
    return PostAnalysis(**row)


def update_viral_score(post_id: str, viral_score: float) -> None:
    client = get_supabase()
    client.table("post_analyses").update({
        "viral_score": viral_score,
        "updated_at": _now_iso(),
    }).eq("post_id", post_id).execute()
