"""Viral score heuristic.

Pure and deterministic.  The order of operations matters: the CTA penalty
applies to the score after the gate and scope multipliers, not to the raw
weighted sum.
"""

from __future__ import annotations

from app.core.constants import (
    CTA_PENALTY_MULTIPLIER,
    CTA_PENALTY_SHAREABILITY_CEILING,
    CTA_PENALTY_THRESHOLD,
    GATE_MULTIPLIER,
    GATE_THRESHOLD,
    METRIC_LABEL_KEYWORDS,
    SCOPE_CONFIDENCE_THRESHOLD,
    SCOPE_MULTIPLIERS,
    WEIGHT_CTA,
    WEIGHT_HOOK,
    WEIGHT_PACING,
    WEIGHT_SHAREABILITY,
    WEIGHT_TOPIC,
    WEIGHT_VALUE_DELIVERY,
)
from app.models.enums import ScopeLevel
from app.models.post_analysis import PostAnalysisMetric


def _scope_multiplier(scope: str, scope_confidence: int) -> float:
    if scope_confidence < SCOPE_CONFIDENCE_THRESHOLD:
        return 1.0
    try:
        return SCOPE_MULTIPLIERS[ScopeLevel(scope)]
    except ValueError:
        return 1.0


def compute_viral_score(
    topic: int,
    hook: int,
    pacing: int,
    value_delivery: int,
    shareability: int,
    cta: int,
    scope_confidence: int,
    scope: str,
) -> float:
    """Return the viral score in ``[0, 100]``.

    1. Weighted sum of the six metrics.
    2. x0.6 when topic or shareability is below 60.
    3. x scope multiplier (Local 0.75, National 0.9, Global 1.0) when the
       scope confidence is at least 70.
    4. x0.85 when CTA is above 90 while shareability is below 70.
    5. Clamp.
    """
    score = (
        WEIGHT_HOOK * hook
        + WEIGHT_TOPIC * topic
        + WEIGHT_PACING * pacing
        + WEIGHT_VALUE_DELIVERY * value_delivery
        + WEIGHT_SHAREABILITY * shareability
        + WEIGHT_CTA * cta
    )

    if topic < GATE_THRESHOLD or shareability < GATE_THRESHOLD:
        score *= GATE_MULTIPLIER

    score *= _scope_multiplier(scope, scope_confidence)

    if cta > CTA_PENALTY_THRESHOLD and shareability < CTA_PENALTY_SHAREABILITY_CEILING:
        score *= CTA_PENALTY_MULTIPLIER

    return max(0.0, min(100.0, score))


def extract_canonical_scores(metrics: list[PostAnalysisMetric]) -> dict[str, int]:
    """Pick the six score inputs out of free-form metric labels.

    Matching is a case-insensitive substring test.  Each label maps to the
    first key in ``METRIC_LABEL_KEYWORDS`` it matches, so "Potential
    Shareability" feeds shareability, not topic.  The first metric seen for
    a key wins and missing keys default to 0.
    """
    scores = {key: 0 for key in METRIC_LABEL_KEYWORDS}
    found: set[str] = set()
    for metric in metrics:
        label = metric.label.lower()
        key = next(
            (
                key for key, needles in METRIC_LABEL_KEYWORDS.items()
                if any(needle in label for needle in needles)
            ),
            None,
        )
        if key is None or key in found:
            continue
        scores[key] = metric.score
        found.add(key)
    return scores


def score_metrics(
    metrics: list[PostAnalysisMetric],
    scope_confidence: int,
    scope: str,
) -> float:
    """Compute the viral score straight from a metric list."""
    scores = extract_canonical_scores(metrics)
    return compute_viral_score(
        topic=scores["topic"],
        hook=scores["hook"],
        pacing=scores["pacing"],
        value_delivery=scores["value_delivery"],
        shareability=scores["shareability"],
        cta=scores["cta"],
        scope_confidence=scope_confidence,
        scope=scope,
    )
