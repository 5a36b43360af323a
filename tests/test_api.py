"""Endpoint tests for submission and result retrieval."""

from __future__ import annotations

from unittest.mock import patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from conftest import NOW, make_post, make_request

from app.core.errors import InvalidArgumentError, NotFoundError, PermissionDeniedError
from app.models.channel import Channel, ChannelHistory
from app.models.enums import ContentType, RequestStatus
from app.models.post_analysis import PostAnalysis
from app.models.post_content import GiveawayMetadata, PostContent, SegmentMetadata
from app.models.queue import SubmitResponse

REEL_URL = "https://www.instagram.com/reel/DAbc123xyz/"


class TestSubmitEndpoint:
    def test_returns_tracking_handle(self, test_client: TestClient) -> None:
        tracking_id = uuid4()
        with patch(
            "app.routers.analyze.submit",
            return_value=SubmitResponse(tracking_id=tracking_id, estimated_seconds=60),
        ) as submit:
            response = test_client.post("/api/v1/analyze", json={"url": REEL_URL})

        assert response.status_code == 202
        assert response.json() == {"trackingId": str(tracking_id), "estimatedSeconds": 60}
        url, submitter = submit.call_args.args
        assert url == REEL_URL
        assert submitter.is_anonymous

    def test_user_header_identifies_submitter(self, test_client: TestClient) -> None:
        user_id = uuid4()
        with patch(
            "app.routers.analyze.submit",
            return_value=SubmitResponse(tracking_id=uuid4(), estimated_seconds=0),
        ) as submit:
            test_client.post(
                "/api/v1/analyze",
                json={"url": REEL_URL},
                headers={"X-User-Id": str(user_id), "X-Forwarded-For": "198.51.100.9, 10.0.0.1"},
            )

        submitter = submit.call_args.args[1]
        assert submitter.user_id == user_id
        assert submitter.ip == "198.51.100.9"

    def test_malformed_user_header_is_400(self, test_client: TestClient) -> None:
        response = test_client.post(
            "/api/v1/analyze", json={"url": REEL_URL}, headers={"X-User-Id": "nope"}
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_argument"

    def test_invalid_link_is_400(self, test_client: TestClient) -> None:
        with patch(
            "app.routers.analyze.submit",
            side_effect=InvalidArgumentError("Unrecognized link"),
        ):
            response = test_client.post("/api/v1/analyze", json={"url": "https://example.com"})

        assert response.status_code == 400
        assert response.json() == {"error_code": "invalid_argument", "detail": "Unrecognized link"}

    def test_rate_limit_is_403(self, test_client: TestClient) -> None:
        with patch(
            "app.routers.analyze.submit",
            side_effect=PermissionDeniedError("Daily limit reached"),
        ):
            response = test_client.post("/api/v1/analyze", json={"url": REEL_URL})

        assert response.status_code == 403
        assert response.json()["error_code"] == "permission_denied"

    def test_store_failure_is_500(self, test_client: TestClient) -> None:
        with patch("app.routers.analyze.submit", side_effect=RuntimeError("db down")):
            response = test_client.post("/api/v1/analyze", json={"url": REEL_URL})

        assert response.status_code == 500
        assert response.json()["error_code"] == "internal"


class TestStatusEndpoints:
    def test_unknown_tracking_id_is_404(self, test_client: TestClient) -> None:
        with patch(
            "app.routers.analyze.get_analyze_result",
            side_effect=NotFoundError("Analyze request not found"),
        ):
            response = test_client.get(f"/api/v1/analyze/{uuid4()}")

        assert response.status_code == 404

    def test_failed_request_returns_reason_verbatim(self, test_client: TestClient) -> None:
        request = make_request(status=RequestStatus.failed, fail_reason="LLM returned 503: busy")
        with patch("app.services.results.find_request", return_value=request):
            response = test_client.get(f"/api/v1/analyze/{request.id}")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "failed"
        assert body["failReason"] == "LLM returned 503: busy"
        assert body["result"] is None

    def test_unknown_post_is_404(self, test_client: TestClient) -> None:
        with patch("app.services.results.find_post", return_value=None):
            response = test_client.get("/api/v1/posts/missing")

        assert response.status_code == 404
        assert response.json()["error_code"] == "not_found"


class TestResults:
    def _patch_store(self, post, history_followers: int = 1000):
        channel_id = post.channel_id
        contents = [
            PostContent(
                id=uuid4(), post_id=post.id, run_id=uuid4(), type=ContentType.caption,
                language="pt", text="Viagem barata", created_at=NOW,
            ),
            PostContent(
                id=uuid4(), post_id=post.id, run_id=uuid4(), type=ContentType.transcript,
                language="en", text="Hello there",
                metadata=SegmentMetadata(timestamp="[00:01]", speaker="Creator", emotion="happy"),
                created_at=NOW,
            ),
            PostContent(
                id=uuid4(), post_id=post.id, run_id=uuid4(), type=ContentType.key_point,
                language="en", text="Book early", created_at=NOW,
            ),
            PostContent(
                id=uuid4(), post_id=post.id, run_id=uuid4(), type=ContentType.giveaway,
                language="en", text="Prize: trip",
                metadata=GiveawayMetadata(prize="trip", requirements="follow", deadline="Friday"),
                created_at=NOW,
            ),
        ]
        return [
            patch("app.services.results.find_post", return_value=post),
            patch(
                "app.services.results.find_channel",
                return_value=Channel(
                    id=channel_id, handle="creator.handle", created_at=NOW, updated_at=NOW
                ),
            ),
            patch(
                "app.services.results.latest_channel_history",
                return_value=ChannelHistory(
                    id=uuid4(), channel_id=channel_id, followers_count=history_followers,
                    average_likes=40.0, average_comments=10.0, created_at=NOW,
                ),
            ),
            patch("app.services.results.list_post_contents", return_value=contents),
            patch(
                "app.services.results.find_post_analysis",
                return_value=PostAnalysis(
                    id=uuid4(), post_id=post.id, viral_score=72.5, created_at=NOW, updated_at=NOW
                ),
            ),
        ]

    def test_completed_post_returns_full_result(self) -> None:
        from app.services.results import get_post_result

        post = make_post(
            status=RequestStatus.completed, channel_id=uuid4(), like_count=90, comment_count=10
        )
        patches = self._patch_store(post)
        for p in patches:
            p.start()
        try:
            response = get_post_result(post.id)
        finally:
            for p in patches:
                p.stop()

        result = response.result
        assert response.status is RequestStatus.completed
        assert result is not None
        assert result.engagement_rate == pytest.approx(10.0)
        assert result.channel.average_engagement_rate == pytest.approx(5.0)
        assert result.caption == "Viagem barata"
        assert result.caption_language == "pt"
        assert result.transcript[0].speaker == "Creator"
        assert result.key_points == ["Book early"]
        assert result.giveaway.prize == "trip"
        assert result.analysis.viral_score == 72.5

    def test_zero_followers_omit_engagement_rates(self) -> None:
        from app.services.results import get_post_result

        post = make_post(status=RequestStatus.completed, channel_id=uuid4(), like_count=90)
        patches = self._patch_store(post, history_followers=0)
        for p in patches:
            p.start()
        try:
            result = get_post_result(post.id).result
        finally:
            for p in patches:
                p.stop()

        assert result.engagement_rate is None
        assert result.channel.average_engagement_rate is None

    def test_completed_request_serializes_camel_case(self, test_client: TestClient) -> None:
        post = make_post(status=RequestStatus.completed, channel_id=uuid4(), like_count=90)
        request = make_request(status=RequestStatus.completed)
        patches = [
            *self._patch_store(post),
            patch("app.services.results.find_request", return_value=request),
        ]
        for p in patches:
            p.start()
        try:
            response = test_client.get(f"/api/v1/analyze/{request.id}")
        finally:
            for p in patches:
                p.stop()

        body = response.json()
        assert response.status_code == 200
        assert body["trackingId"] == str(request.id)
        assert body["result"]["post"]["likeCount"] == 90
        assert body["result"]["analysis"]["viralScore"] == 72.5
        assert body["result"]["keyPoints"] == ["Book early"]

    def test_pending_post_has_no_result(self) -> None:
        from app.services.results import get_post_result

        with patch("app.services.results.find_post", return_value=make_post()):
            response = get_post_result("DAbc123xyz")

        assert response.status is RequestStatus.pending
        assert response.result is None
        assert response.fail_reason is None
