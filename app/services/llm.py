"""Gemini video analysis client.

One blocking ``generateContent`` call per video: the video is passed by URI,
the context payload is embedded in the prompt, and the model is asked for a
single JSON object matching ``VideoAnalysisResult``.  Anything short of a
valid object is an ``AnalysisError``; partial output is never accepted.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError

from app.core.config import settings
from app.core.errors import AnalysisError
from app.models.llm import AnalysisOutcome, VideoAnalysisResult

logger = logging.getLogger(__name__)

RFC1123 = "%a, %d %b %Y %H:%M:%S %Z"

ANALYSIS_PROMPT = """\
Act as a senior {platform} Content & Growth Analyst with a critical, data-driven mindset.
Your task is to analyze the provided {platform} video honestly and precisely.
Do NOT hype. Do NOT add extra sections. Do NOT invent fields.

You MUST return ONLY a valid JSON object that EXACTLY matches the schema below.

[CONTEXT DATA]:
- Video Caption: {caption}
- Caption Language: {caption_language}
- Co-Authors: {coauthors}
- Video Engagement Stats: {stats}
- Page Average Engagement Stats (last posts): {average_stats}
- Audience Comments (sample): {comments}
- Timing: Published at {published_at} (Current Time: {current_time})
- Target Region: {region}

MANDATORY ANALYSIS RULES
1. BASELINE COMPARISON: evaluate this post relative to the page's own averages.
   If views, likes or comments are BELOW the page average, reflect it negatively
   in scores, explanations and weaknesses. An empty average map means no baseline.
2. ENGAGEMENT QUALITY: distinguish CTA-driven comments (repeated single words)
   from organic engagement. A high comment count alone is not virality.
3. VALUE CLARITY: if the video delays real value to an external offer, reflect
   it in the Value Delivery score.
4. VIRALITY HONESTY: do not call content viral unless it clearly exceeds the page
   averages or reaches non-follower feeds.
5. TOPIC SCORING: consider the publish time ({published_at}), the target region
   ({region}) and any recognizable personalities in the frames. Score Topic 90+
   only if search confirms a current wave for that time and region; otherwise
   treat the topic as evergreen/saturated and score it 80 or lower.
6. SCOPE: judge the topic's reach as exactly one of Local, National or Global,
   with a 0-100 confidence.
7. TRANSCRIPT: split the spoken content into segments; keep each segment in the
   language it was spoken in.
8. GIVEAWAY: set giveaway.is_detected to true only if the video or caption runs
   a giveaway, and fill prize, requirements and deadline.

OUTPUT FORMAT (STRICT)
{{
  "summary": {{
    "big_idea": "The core message/value proposition.",
    "why_viral": "Whether it truly went viral or which trigger it relies on instead.",
    "audience_sentiment": "How the audience emotionally and cognitively reacted.",
    "sentiment_score": 0-100
  }},
  "content": {{
    "hook": "Analysis of the first 3 seconds.",
    "summary": "Two or three sentence summary of the video.",
    "segments": [
      {{"speaker": "Creator", "timestamp": "[MM:SS]", "content": "Spoken content",
        "emotion": "happy | sad | angry | neutral"}}
    ],
    "key_points": ["Main takeaways"],
    "trend_metadata": "Sound, challenge or event wave the video rides, if any.",
    "giveaway": {{"is_detected": false, "prize": "", "requirements": "", "deadline": ""}}
  }},
  "analysis": {{
    "scope": {{"level": "Local | National | Global", "confidence": 0-100}},
    "metrics": [
      {{"label": "Hook Strength | Topic Potential | Pacing | Value Delivery | Shareability | CTA",
        "score": 0-100, "explanation": "Rationale.", "suggestion": "Improvement."}}
    ],
    "strengths": ["..."],
    "weaknesses": ["..."]
  }},
  "remix": {{"hook_ideas": ["3 sharper hooks"], "script_ideas": ["3 alternative angles"]}},
  "publish": {{
    "captions": {{"casual": "...", "professional": "...", "viral": "..."}},
    "hashtags": ["5-10 relevant hashtags for the region"]
  }}
}}

Output ONLY valid JSON. No markdown, no commentary outside the JSON.
"""

_STRING = {"type": "STRING"}
_STRING_LIST = {"type": "ARRAY", "items": _STRING}

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "summary": {
            "type": "OBJECT",
            "properties": {
                "big_idea": _STRING,
                "why_viral": _STRING,
                "audience_sentiment": _STRING,
                "sentiment_score": {"type": "INTEGER"},
            },
        },
        "content": {
            "type": "OBJECT",
            "properties": {
                "hook": _STRING,
                "summary": _STRING,
                "segments": {
                    "type": "ARRAY",
                    "items": {
                        "type": "OBJECT",
                        "properties": {
                            "speaker": _STRING,
                            "timestamp": _STRING,
                            "content": _STRING,
                            "emotion": {
                                "type": "STRING",
                                "enum": ["happy", "sad", "angry", "neutral"],
                            },
                        },
                    },
                },
                "key_points": _STRING_LIST,
                "trend_metadata": _STRING,
                "giveaway": {
                    "type": "OBJECT",
                    "properties": {
                        "is_detected": {"type": "BOOLEAN"},
                        "prize": _STRING,
                        "requirements": _STRING,
                        "deadline": _STRING,
                    },
                },
            },
        },
        "analysis": {
            "type": "OBJECT",
            "properties": {
                "scope": {
                    "type": "OBJECT",
                    "properties": {
                        "level": {"type": "STRING", "enum": ["Local", "National", "Global"]},
                        "confidence": {"type": "INTEGER"},
                    },
                },
                "metrics": {
                    "type": "ARRAY",
                    "items": {
                        "type": "OBJECT",
                        "properties": {
                            "label": _STRING,
                            "score": {"type": "INTEGER"},
                            "explanation": _STRING,
                            "suggestion": _STRING,
                        },
                    },
                },
                "strengths": _STRING_LIST,
                "weaknesses": _STRING_LIST,
            },
        },
        "remix": {
            "type": "OBJECT",
            "properties": {"hook_ideas": _STRING_LIST, "script_ideas": _STRING_LIST},
        },
        "publish": {
            "type": "OBJECT",
            "properties": {
                "captions": {
                    "type": "OBJECT",
                    "properties": {
                        "casual": _STRING,
                        "professional": _STRING,
                        "viral": _STRING,
                    },
                },
                "hashtags": _STRING_LIST,
            },
        },
    },
    "required": ["summary", "content", "analysis", "remix", "publish"],
}


def _format_time(value: datetime | None) -> str:
    if value is None:
        return "unknown"
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(RFC1123)


def build_request_body(
    platform: str,
    video_url: str,
    caption: str,
    caption_language: str,
    coauthors: list[str],
    comments: list[str],
    stats: dict[str, float],
    average_stats: dict[str, float],
    published_at: datetime | None,
    region: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Return the ``generateContent`` body for one video."""
    prompt = ANALYSIS_PROMPT.format(
        platform=platform,
        caption=caption or "(none)",
        caption_language=caption_language or "unknown",
        coauthors="|".join(coauthors) or "(none)",
        stats=json.dumps(stats, sort_keys=True),
        average_stats=json.dumps(average_stats, sort_keys=True),
        comments="|".join(comments) or "(none)",
        published_at=_format_time(published_at),
        current_time=_format_time(now or datetime.now(timezone.utc)),
        region=region,
    )
    return {
        "contents": [
            {
                "parts": [
                    {
                        "file_data": {"file_uri": video_url, "mime_type": "video/mp4"},
                        "video_metadata": {"fps": 0.5},
                    },
                    {"text": prompt},
                ],
            },
        ],
        "tools": [{"google_search": {}}],
        "generation_config": {
            "temperature": 0.2,
            "response_schema": RESPONSE_SCHEMA,
        },
    }


def _strip_code_fences(text: str) -> str:
    return text.replace("```json", "").replace("```", "").strip()


def parse_response(raw_response: str, raw_request: str = "") -> VideoAnalysisResult:
    """Validate a ``generateContent`` response envelope into a result."""
    try:
        envelope = json.loads(raw_response)
    except json.JSONDecodeError as exc:
        raise AnalysisError(
            f"LLM response is not JSON: {exc}", raw_request, raw_response
        ) from exc

    if not isinstance(envelope, dict):
        raise AnalysisError("LLM response is not a JSON object", raw_request, raw_response)

    candidates = envelope.get("candidates") or []
    parts: list[Any] = []
    if candidates and isinstance(candidates[0], dict):
        parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
    if not text:
        error = envelope.get("error")
        if isinstance(error, dict) and error.get("message"):
            raise AnalysisError(error["message"], raw_request, raw_response)
        raise AnalysisError(
            "LLM returned no candidates and no error details", raw_request, raw_response
        )

    try:
        return VideoAnalysisResult.model_validate_json(_strip_code_fences(text))
    except ValidationError as exc:
        raise AnalysisError(
            f"LLM output failed schema validation: {exc.error_count()} error(s): "
            f"{exc.errors()[0]['msg']}",
            raw_request,
            raw_response,
        ) from exc


def analyze_video(
    platform: str,
    video_url: str,
    caption: str,
    caption_language: str,
    coauthors: list[str],
    comments: list[str],
    stats: dict[str, float],
    average_stats: dict[str, float],
    published_at: datetime | None,
    region: str,
) -> AnalysisOutcome:
    """Run the video analysis and return the parsed result with its raw exchange.

    Raises ``AnalysisError`` (carrying whatever raw text exists) on transport
    failure, non-2xx status, empty candidates or schema violation.
    """
    body = build_request_body(
        platform=platform,
        video_url=video_url,
        caption=caption,
        caption_language=caption_language,
        coauthors=coauthors,
        comments=comments,
        stats=stats,
        average_stats=average_stats,
        published_at=published_at,
        region=region,
    )
    raw_request = json.dumps(body)
    endpoint = f"{settings.LLM_BASE_URL}/v1beta/models/{settings.LLM_MODEL}:generateContent"

    logger.info(
        "llm_analysis_started",
        extra={"video_url": video_url, "model": settings.LLM_MODEL},
    )

    try:
        with httpx.Client(timeout=settings.LLM_TIMEOUT_SECONDS) as client:
            response = client.post(
                endpoint,
                headers={
                    "x-goog-api-key": settings.LLM_API_KEY,
                    "Content-Type": "application/json",
                },
                content=raw_request,
            )
    except httpx.HTTPError as exc:
        logger.error(
            "llm_request_failed",
            extra={"error_type": type(exc).__name__, "error_message": str(exc)},
        )
        raise AnalysisError(
            f"LLM request failed: {type(exc).__name__}: {exc}", raw_request
        ) from exc

    raw_response = response.text
    if response.status_code >= 400:
        raise AnalysisError(
            f"LLM returned {response.status_code}: {raw_response}",
            raw_request,
            raw_response,
        )

    result = parse_response(raw_response, raw_request)
    logger.info(
        "llm_analysis_completed",
        extra={
            "video_url": video_url,
            "segments": len(result.content.segments),
            "metrics": len(result.analysis.metrics),
        },
    )
    return AnalysisOutcome(raw_request=raw_request, raw_response=raw_response, result=result)
