"""Content normalization.

Turns one scraped post plus one LLM verdict into typed, language-tagged
``post_contents`` rows and one ``post_analyses`` row.  Languages are
detected from each fragment's own text: a transcript may switch language
between segments, and the caption's language comes from the scraped
caption, not from anything the LLM claims.
"""

from __future__ import annotations

from uuid import UUID

from app.core.constants import DEFAULT_CONTENT_LANGUAGE
from app.models.enums import ContentType
from app.models.llm import VideoAnalysisResult
from app.models.post import Post
from app.models.post_analysis import (
    PostAnalysisCaptions,
    PostAnalysisCreate,
    PostAnalysisMetric,
)
from app.models.post_content import GiveawayMetadata, PostContentCreate, SegmentMetadata
from app.models.scraping import ScrapedItem
from app.services.language import detect_language
from app.services.scoring import score_metrics


def build_contents(
    post: Post,
    scrape_record: ScrapedItem,
    analysis: VideoAnalysisResult,
    run_id: UUID,
) -> list[PostContentCreate]:
    """Return the content rows for one pipeline run."""
    contents: list[PostContentCreate] = []

    def add(kind: ContentType, text: str, language: str, metadata=None) -> None:
        contents.append(PostContentCreate(
            post_id=post.id,
            run_id=run_id,
            type=kind,
            language=language,
            text=text,
            metadata=metadata,
        ))

    if scrape_record.caption:
        add(ContentType.caption, scrape_record.caption, detect_language(scrape_record.caption))

    content = analysis.content
    if content.summary:
        add(ContentType.summary, content.summary, detect_language(content.summary))

    for segment in content.segments:
        if not segment.content:
            continue
        add(
            ContentType.transcript,
            segment.content,
            detect_language(segment.content),
            SegmentMetadata(
                timestamp=segment.timestamp,
                speaker=segment.speaker,
                emotion=segment.emotion,
            ),
        )

    for point in content.key_points:
        if point:
            add(ContentType.key_point, point, detect_language(point))
    if content.hook:
        add(ContentType.key_point, content.hook, detect_language(content.hook))

    if content.trend_metadata:
        add(ContentType.trend_metadata, content.trend_metadata, DEFAULT_CONTENT_LANGUAGE)

    giveaway = content.giveaway
    if giveaway is not None and giveaway.is_detected:
        add(
            ContentType.giveaway,
            f"Prize: {giveaway.prize}\n"
            f"Requirements: {giveaway.requirements}\n"
            f"Deadline: {giveaway.deadline}",
            DEFAULT_CONTENT_LANGUAGE,
            GiveawayMetadata(
                prize=giveaway.prize,
                requirements=giveaway.requirements,
                deadline=giveaway.deadline,
            ),
        )

    return contents


def build_analysis(post: Post, analysis: VideoAnalysisResult) -> PostAnalysisCreate:
    """Return the analysis row, including the derived viral score."""
    metrics = [
        PostAnalysisMetric(
            label=m.label,
            score=m.score,
            explanation=m.explanation,
            suggestion=m.suggestion,
        )
        for m in analysis.analysis.metrics
    ]
    scope = analysis.analysis.scope
    summary = analysis.summary

    return PostAnalysisCreate(
        post_id=post.id,
        viral_score=round(score_metrics(metrics, scope.confidence, scope.level), 2),
        big_idea=summary.big_idea,
        why_viral=summary.why_viral,
        audience_sentiment=summary.audience_sentiment,
        sentiment_score=summary.sentiment_score,
        scope_level=scope.level,
        scope_confidence=scope.confidence,
        metrics=metrics,
        strengths=analysis.analysis.strengths,
        weaknesses=analysis.analysis.weaknesses,
        hook_ideas=analysis.remix.hook_ideas,
        script_ideas=analysis.remix.script_ideas,
        captions=PostAnalysisCaptions(**analysis.publish.captions.model_dump()),
        hashtags=analysis.publish.hashtags,
    )


def normalize(
    post: Post,
    scrape_record: ScrapedItem,
    analysis: VideoAnalysisResult,
    run_id: UUID,
) -> tuple[list[PostContentCreate], PostAnalysisCreate]:
    """Return ``(content_rows, analysis_row)`` for one completed analysis."""
    return (
        build_contents(post, scrape_record, analysis, run_id),
        build_analysis(post, analysis),
    )
