"""Pydantic models for the ``post_analyses`` table.

One row per post, rewritten after each completed run.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PostAnalysisMetric(BaseModel):
    """A named quality metric as judged by the LLM."""
    label: str
    score: int = Field(default=0, ge=0, le=100)
    explanation: str = ""
    suggestion: str = ""


class PostAnalysisCaptions(BaseModel):
    """Publish-ready caption variants."""
    casual: str = ""
    professional: str = ""
    viral: str = ""


class PostAnalysisCreate(BaseModel):
    """Payload for upserting a post analysis (conflict on post_id)."""
    post_id: str
    viral_score: float = Field(default=0.0, ge=0.0, le=100.0)

    big_idea: str = ""
    why_viral: str = ""
    audience_sentiment: str = ""
    sentiment_score: int = 0

    scope_level: str = ""
    scope_confidence: int = 0

    metrics: list[PostAnalysisMetric] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)

    hook_ideas: list[str] = Field(default_factory=list)
    script_ideas: list[str] = Field(default_factory=list)

    captions: PostAnalysisCaptions = Field(default_factory=PostAnalysisCaptions)
    hashtags: list[str] = Field(default_factory=list)


class PostAnalysis(PostAnalysisCreate):
    """Full post_analyses record returned from the database."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime
