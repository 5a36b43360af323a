"""Health check endpoint.

Reports database and queue connectivity plus dispatcher and scheduler
state.  Returns 503 when the database is unreachable.
"""

import logging
from typing import Any

from fastapi import APIRouter
from starlette.responses import JSONResponse

from app.db.queue import get_redis
from app.db.supabase import get_supabase
from app.scheduler.jobs import is_scheduler_running
from app.services.dispatcher import is_dispatcher_running

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health_check() -> Any:
    db_status = "disconnected"
    queue_status = "disconnected"

    try:
        client = get_supabase()
        result = client.table("posts").select("id").limit(1).execute()
        if result is not None:
            db_status = "connected"
    except Exception:
        logger.warning("Health check: Supabase connection failed", exc_info=True)

    try:
        if get_redis().ping():
            queue_status = "connected"
    except Exception:
        logger.warning("Health check: Redis connection failed", exc_info=True)

    payload: dict[str, str] = {
        "status": "ok" if db_status == queue_status == "connected" else "degraded",
        "database": db_status,
        "queue": queue_status,
        "dispatcher": "running" if is_dispatcher_running() else "stopped",
        "scheduler": "running" if is_scheduler_running() else "stopped",
    }

    if db_status != "connected":
        return JSONResponse(status_code=503, content=payload)

    return payload
