"""Unit tests for the viral score heuristic."""

from __future__ import annotations

import pytest

from app.models.post_analysis import PostAnalysisMetric
from app.services.scoring import (
    compute_viral_score,
    extract_canonical_scores,
    score_metrics,
)


def _score(**overrides: int | str) -> float:
    params: dict = {
        "topic": 80,
        "hook": 80,
        "pacing": 80,
        "value_delivery": 80,
        "shareability": 80,
        "cta": 80,
        "scope_confidence": 0,
        "scope": "Global",
    }
    params.update(overrides)
    return compute_viral_score(**params)


class TestComputeViralScore:
    def test_weighted_sum_of_equal_metrics(self) -> None:
        assert _score() == pytest.approx(80.0)

    def test_gate_applies_when_topic_below_threshold(self) -> None:
        # 80 - 0.20 * 30 = 74, then x0.6
        assert _score(topic=50) == pytest.approx(44.4)

    def test_gate_applies_when_shareability_below_threshold(self) -> None:
        # 80 - 0.15 * 30 = 75.5, then x0.6
        assert _score(shareability=50) == pytest.approx(45.3)

    def test_cta_penalty_with_low_shareability(self) -> None:
        """CTA 95 with shareability 65 is penalized but not gated."""
        # 20 + 16 + 12 + 12 + 9.75 + 9.5 = 79.25, then x0.85
        assert _score(cta=95, shareability=65) == pytest.approx(67.3625)

    def test_no_cta_penalty_when_shareability_high(self) -> None:
        # 80 + 0.10 * 15 = 81.5
        assert _score(cta=95, shareability=80) == pytest.approx(81.5)

    def test_scope_multiplier_applies_at_confidence_threshold(self) -> None:
        assert _score(scope="Local", scope_confidence=70) == pytest.approx(60.0)
        assert _score(scope="National", scope_confidence=90) == pytest.approx(72.0)
        assert _score(scope="Global", scope_confidence=90) == pytest.approx(80.0)

    def test_scope_ignored_below_confidence_threshold(self) -> None:
        assert _score(scope="Local", scope_confidence=69) == pytest.approx(80.0)

    def test_unknown_scope_level_is_neutral(self) -> None:
        assert _score(scope="Planetary", scope_confidence=100) == pytest.approx(80.0)

    def test_result_is_clamped(self) -> None:
        high = _score(
            topic=100, hook=100, pacing=100, value_delivery=100,
            shareability=100, cta=100,
        )
        low = _score(topic=0, hook=0, pacing=0, value_delivery=0, shareability=0, cta=0)
        assert high == pytest.approx(100.0)
        assert low == 0.0

    @pytest.mark.parametrize("field", ["topic", "hook", "pacing", "value_delivery", "shareability"])
    def test_raising_one_metric_never_lowers_the_score(self, field: str) -> None:
        scores = [_score(**{field: value}) for value in range(0, 101, 5)]
        assert scores == sorted(scores)

    def test_is_deterministic(self) -> None:
        assert _score(topic=73, cta=91) == _score(topic=73, cta=91)


class TestExtractCanonicalScores:
    def test_matches_labels_case_insensitively(self) -> None:
        metrics = [
            PostAnalysisMetric(label="HOOK STRENGTH", score=91),
            PostAnalysisMetric(label="Topic Potential", score=72),
            PostAnalysisMetric(label="Pacing", score=65),
            PostAnalysisMetric(label="Value Delivery", score=70),
            PostAnalysisMetric(label="Shareability", score=60),
            PostAnalysisMetric(label="Call to Action", score=40),
        ]
        assert extract_canonical_scores(metrics) == {
            "topic": 72,
            "hook": 91,
            "pacing": 65,
            "value_delivery": 70,
            "shareability": 60,
            "cta": 40,
        }

    def test_missing_metrics_default_to_zero(self) -> None:
        scores = extract_canonical_scores([PostAnalysisMetric(label="Hook", score=50)])
        assert scores["hook"] == 50
        assert scores["topic"] == 0
        assert scores["cta"] == 0

    def test_first_match_wins(self) -> None:
        metrics = [
            PostAnalysisMetric(label="Hook Strength", score=90),
            PostAnalysisMetric(label="Hook (second pass)", score=10),
        ]
        assert extract_canonical_scores(metrics)["hook"] == 90

    def test_specific_keyword_beats_potential(self) -> None:
        scores = extract_canonical_scores([
            PostAnalysisMetric(label="Potential Shareability", score=75),
            PostAnalysisMetric(label="Topic Potential", score=64),
        ])
        assert scores["shareability"] == 75
        assert scores["topic"] == 64

    def test_score_metrics_feeds_the_heuristic(self) -> None:
        metrics = [
            PostAnalysisMetric(label=label, score=80)
            for label in ("Hook", "Topic", "Pacing", "Value Delivery", "Shareability", "CTA")
        ]
        assert score_metrics(metrics, 80, "National") == pytest.approx(72.0)
