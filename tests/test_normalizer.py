"""Unit tests for content normalization and post content metadata rules."""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from pydantic import ValidationError

from conftest import make_analysis_payload, make_post

from app.models.enums import ContentType
from app.models.llm import VideoAnalysisResult
from app.models.post_content import GiveawayMetadata, PostContentCreate, SegmentMetadata
from app.models.scraping import ScrapedItem
from app.services.normalizer import build_analysis, build_contents, normalize

RUN_ID = uuid4()


def _fake_detect(text: str) -> str:
    if "Hoje" in text or "Viagem" in text:
        return "pt"
    return "en"


@pytest.fixture()
def detect() -> Generator[MagicMock, None, None]:
    with patch("app.services.normalizer.detect_language", side_effect=_fake_detect) as mock:
        yield mock


def _analysis(**content_overrides) -> VideoAnalysisResult:
    payload = make_analysis_payload()
    payload["content"].update(content_overrides)
    return VideoAnalysisResult.model_validate(payload)


def _by_type(rows: list[PostContentCreate], kind: ContentType) -> list[PostContentCreate]:
    return [row for row in rows if row.type is kind]


class TestBuildContents:
    def test_transcript_segments_keep_their_own_language(self, detect: MagicMock) -> None:
        rows = build_contents(make_post(), ScrapedItem(caption="Viagem barata"), _analysis(), RUN_ID)

        transcript = _by_type(rows, ContentType.transcript)
        assert [row.language for row in transcript] == ["en", "pt"]
        assert transcript[0].metadata == SegmentMetadata(
            timestamp="[00:01]", speaker="Creator", emotion="happy"
        )

    def test_caption_language_comes_from_scraped_caption(self, detect: MagicMock) -> None:
        rows = build_contents(make_post(), ScrapedItem(caption="Viagem barata"), _analysis(), RUN_ID)

        (caption,) = _by_type(rows, ContentType.caption)
        assert caption.text == "Viagem barata"
        assert caption.language == "pt"

    def test_every_row_carries_post_and_run(self, detect: MagicMock) -> None:
        rows = build_contents(make_post(id="XYZ"), ScrapedItem(caption="hi"), _analysis(), RUN_ID)

        assert rows
        assert {row.post_id for row in rows} == {"XYZ"}
        assert {row.run_id for row in rows} == {RUN_ID}

    def test_hook_is_stored_with_key_points(self, detect: MagicMock) -> None:
        rows = build_contents(make_post(), ScrapedItem(), _analysis(), RUN_ID)

        texts = [row.text for row in _by_type(rows, ContentType.key_point)]
        assert texts == [
            "Book on Tuesdays",
            "Use incognito mode",
            "You are overpaying for flights",
        ]

    def test_empty_caption_and_segments_are_skipped(self, detect: MagicMock) -> None:
        analysis = _analysis(segments=[{"content": ""}], summary="")
        rows = build_contents(make_post(), ScrapedItem(caption=""), analysis, RUN_ID)

        assert not _by_type(rows, ContentType.caption)
        assert not _by_type(rows, ContentType.summary)
        assert not _by_type(rows, ContentType.transcript)

    def test_no_giveaway_row_when_not_detected(self, detect: MagicMock) -> None:
        rows = build_contents(make_post(), ScrapedItem(), _analysis(), RUN_ID)
        assert not _by_type(rows, ContentType.giveaway)

    def test_giveaway_row_when_detected(self, detect: MagicMock) -> None:
        analysis = _analysis(giveaway={
            "is_detected": True,
            "prize": "Two plane tickets",
            "requirements": "Follow and tag a friend",
            "deadline": "March 31",
        })
        rows = build_contents(make_post(), ScrapedItem(), analysis, RUN_ID)

        (giveaway,) = _by_type(rows, ContentType.giveaway)
        assert giveaway.metadata == GiveawayMetadata(
            prize="Two plane tickets",
            requirements="Follow and tag a friend",
            deadline="March 31",
        )
        assert "Two plane tickets" in giveaway.text
        assert giveaway.language == "en"

    def test_trend_metadata_is_tagged_english(self, detect: MagicMock) -> None:
        rows = build_contents(make_post(), ScrapedItem(), _analysis(), RUN_ID)

        (trend,) = _by_type(rows, ContentType.trend_metadata)
        assert trend.language == "en"
        assert trend.metadata is None


class TestBuildAnalysis:
    def test_viral_score_is_derived_from_metrics(self) -> None:
        row = build_analysis(make_post(), _analysis())

        # all six metrics at 80, Global scope at confidence 80
        assert row.viral_score == pytest.approx(80.0)
        assert row.scope_level == "Global"
        assert row.scope_confidence == 80
        assert row.captions.viral == "v"
        assert row.hashtags == ["#travel"]
        assert [m.label for m in row.metrics][0] == "Hook Strength"

    def test_normalize_returns_both_parts(self, detect: MagicMock) -> None:
        rows, analysis = normalize(make_post(), ScrapedItem(caption="x"), _analysis(), RUN_ID)
        assert rows
        assert analysis.post_id == "DAbc123xyz"


class TestPostContentMetadata:
    def test_transcript_metadata_built_from_dict(self) -> None:
        row = PostContentCreate(
            post_id="p",
            run_id=RUN_ID,
            type="transcript",
            text="hello",
            metadata={"timestamp": "[00:01]", "speaker": "A", "emotion": "sad"},
        )
        assert isinstance(row.metadata, SegmentMetadata)
        assert row.metadata.emotion == "sad"

    def test_giveaway_metadata_built_from_dict(self) -> None:
        row = PostContentCreate(
            post_id="p",
            run_id=RUN_ID,
            type="giveaway",
            text="prize",
            metadata={"prize": "Phone", "requirements": "Follow", "deadline": "Friday"},
        )
        assert isinstance(row.metadata, GiveawayMetadata)

    def test_caption_rejects_metadata(self) -> None:
        with pytest.raises(ValidationError):
            PostContentCreate(
                post_id="p",
                run_id=RUN_ID,
                type="caption",
                text="hello",
                metadata=SegmentMetadata(),
            )

    def test_transcript_rejects_giveaway_metadata(self) -> None:
        with pytest.raises(ValidationError):
            PostContentCreate(
                post_id="p",
                run_id=RUN_ID,
                type="transcript",
                text="hello",
                metadata=GiveawayMetadata(prize="x"),
            )
