"""FastAPI application entry point.

Configures CORS, structured logging, error handlers, lifespan events
(APScheduler and the in-process queue dispatcher) and router registration.
"""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.logging import setup_logging
from app.routers import analyze, health
from app.scheduler.jobs import shutdown_scheduler, start_scheduler
from app.services.dispatcher import start_dispatcher, stop_dispatcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Start the scheduler and, when enabled, the dispatcher thread."""
    setup_logging()
    logger.info("Application starting up")
    start_scheduler()
    if settings.DISPATCHER_ENABLED:
        start_dispatcher()
    yield
    if settings.DISPATCHER_ENABLED:
        stop_dispatcher(timeout=settings.QUEUE_POP_TIMEOUT_SECONDS + 1)
    shutdown_scheduler()
    logger.info("Application shutting down")


app = FastAPI(
    title="Viral Analysis API",
    description="Scrapes short-form videos, scores their viral potential and stores the analysis",
    version="0.1.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# CORS Configuration
# ---------------------------------------------------------------------------
_raw_origins = settings.ALLOWED_ORIGINS.strip()
if _raw_origins == "*":
    _allowed_origins: list[str] = ["*"]
else:
    _allowed_origins = [o.strip() for o in _raw_origins.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Router Registration
# ---------------------------------------------------------------------------
app.include_router(health.router, tags=["Health"])
app.include_router(analyze.router, prefix="/api/v1", tags=["Analyze"])
