"""Shared test fixtures.

Seeds the required settings before ``app`` is imported, and provides a
``test_client`` for FastAPI plus model factories used across test modules.
"""

import os
from collections.abc import Generator
from datetime import datetime, timezone
from typing import Any
from unittest.mock import MagicMock, patch
from uuid import uuid4

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-key")
os.environ.setdefault("DISPATCHER_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_post(**overrides: Any):
    """Return a ``Post`` with sensible defaults."""
    from app.models.post import Post

    data: dict[str, Any] = {
        "id": "DAbc123xyz",
        "link": "https://www.instagram.com/reel/DAbc123xyz",
        "created_at": NOW,
        "updated_at": NOW,
    }
    data.update(overrides)
    return Post(**data)


def make_request(**overrides: Any):
    """Return an ``AnalyzeRequest`` with sensible defaults."""
    from app.models.analyze_request import AnalyzeRequest

    data: dict[str, Any] = {
        "id": uuid4(),
        "user_ip": "203.0.113.7",
        "link": "https://www.instagram.com/reel/DAbc123xyz",
        "post_id": "DAbc123xyz",
        "created_at": NOW,
        "updated_at": NOW,
    }
    data.update(overrides)
    return AnalyzeRequest(**data)


def make_apify_item(idx: int = 1, **overrides: Any) -> dict[str, Any]:
    """Return a realistic Apify instagram-scraper item."""
    item: dict[str, Any] = {
        "id": f"apify-post-{idx}",
        "shortCode": f"shortcode{idx}",
        "url": f"https://www.instagram.com/reel/shortcode{idx}/",
        "caption": f"Reel caption number {idx}",
        "ownerUsername": "creator.handle",
        "ownerFullName": "Creator Name",
        "likesCount": 100 * idx,
        "commentsCount": 10 * idx,
        "videoViewCount": 1000 * idx,
        "videoPlayCount": 2000 * idx,
        "videoUrl": f"https://cdn.example.com/video{idx}.mp4",
        "displayUrl": f"https://cdn.example.com/image{idx}.jpg",
        "timestamp": "2026-03-01T12:00:00Z",
        "coauthorProducers": [{"username": "partner.handle"}],
        "latestComments": [{"text": "so good"}, {"text": "where is this?"}],
    }
    item.update(overrides)
    return item


def make_analysis_payload(**overrides: Any) -> dict[str, Any]:
    """Return a valid LLM analysis object as a dict."""
    payload: dict[str, Any] = {
        "summary": {
            "big_idea": "Cheap travel hacks",
            "why_viral": "Relatable savings",
            "audience_sentiment": "Curious and positive",
            "sentiment_score": 78,
        },
        "content": {
            "hook": "You are overpaying for flights",
            "summary": "Three tricks to book cheaper flights.",
            "segments": [
                {
                    "speaker": "Creator",
                    "timestamp": "[00:01]",
                    "content": "Today I will show you how to save money on flights.",
                    "emotion": "happy",
                },
                {
                    "speaker": "Creator",
                    "timestamp": "[00:07]",
                    "content": "Hoje eu vou mostrar como economizar nas passagens.",
                    "emotion": "neutral",
                },
            ],
            "key_points": ["Book on Tuesdays", "Use incognito mode"],
            "trend_metadata": "Trending audio: upbeat lo-fi",
            "giveaway": {"is_detected": False, "prize": "", "requirements": "", "deadline": ""},
        },
        "analysis": {
            "scope": {"level": "Global", "confidence": 80},
            "metrics": [
                {"label": "Hook Strength", "score": 80, "explanation": "", "suggestion": ""},
                {"label": "Topic Potential", "score": 80, "explanation": "", "suggestion": ""},
                {"label": "Pacing", "score": 80, "explanation": "", "suggestion": ""},
                {"label": "Value Delivery", "score": 80, "explanation": "", "suggestion": ""},
                {"label": "Shareability", "score": 80, "explanation": "", "suggestion": ""},
                {"label": "CTA", "score": 80, "explanation": "", "suggestion": ""},
            ],
            "strengths": ["Clear hook"],
            "weaknesses": ["Long outro"],
        },
        "remix": {"hook_ideas": ["Stop overpaying"], "script_ideas": ["Price comparison"]},
        "publish": {
            "captions": {"casual": "c", "professional": "p", "viral": "v"},
            "hashtags": ["#travel"],
        },
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def mock_supabase_module() -> Generator[MagicMock, None, None]:
    """Patch the Supabase client at module level in the health router."""
    mock_client = MagicMock()
    mock_table = MagicMock()
    mock_select = MagicMock()
    mock_limit = MagicMock()

    mock_client.table.return_value = mock_table
    mock_table.select.return_value = mock_select
    mock_select.limit.return_value = mock_limit
    mock_limit.execute.return_value = MagicMock()  # non-None result

    with patch("app.routers.health.get_supabase", return_value=mock_client):
        yield mock_client


@pytest.fixture()
def mock_supabase_disconnected() -> Generator[MagicMock, None, None]:
    """Patch ``get_supabase`` to simulate a disconnected database."""
    with patch(
        "app.routers.health.get_supabase",
        side_effect=Exception("Connection refused"),
    ):
        yield MagicMock()


@pytest.fixture()
def mock_redis_module() -> Generator[MagicMock, None, None]:
    """Patch the Redis client in the health router."""
    mock_client = MagicMock()
    mock_client.ping.return_value = True
    with patch("app.routers.health.get_redis", return_value=mock_client):
        yield mock_client


@pytest.fixture()
def test_client() -> Generator[TestClient, None, None]:
    """Provide a FastAPI TestClient with the scheduler patched out."""
    from app.main import app

    with (
        patch("app.main.start_scheduler"),
        patch("app.main.shutdown_scheduler"),
        TestClient(app) as client,
    ):
        yield client
