"""Response schema the video-analysis LLM is instructed to emit.

The five top-level sections are required; output that is missing one of
them, or that carries mistyped values, fails validation and the whole
analysis is rejected.
"""

from pydantic import BaseModel, Field


class AnalysisSummary(BaseModel):
    big_idea: str = ""
    why_viral: str = ""
    audience_sentiment: str = ""
    sentiment_score: int = 0


class TranscriptSegment(BaseModel):
    speaker: str = ""
    timestamp: str = ""
    content: str = ""
    emotion: str = ""


class GiveawayDetection(BaseModel):
    is_detected: bool = False
    prize: str = ""
    requirements: str = ""
    deadline: str = ""


class AnalysisContent(BaseModel):
    hook: str = ""
    summary: str = ""
    segments: list[TranscriptSegment] = Field(default_factory=list)
    key_points: list[str] = Field(default_factory=list)
    trend_metadata: str = ""
    giveaway: GiveawayDetection | None = None


class AnalysisScope(BaseModel):
    level: str = ""
    confidence: int = 0


class AnalysisMetric(BaseModel):
    label: str
    score: int = Field(ge=0, le=100)
    explanation: str = ""
    suggestion: str = ""


class AnalysisBody(BaseModel):
    scope: AnalysisScope = Field(default_factory=AnalysisScope)
    metrics: list[AnalysisMetric] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


class AnalysisRemix(BaseModel):
    hook_ideas: list[str] = Field(default_factory=list)
    script_ideas: list[str] = Field(default_factory=list)


class PublishCaptions(BaseModel):
    casual: str = ""
    professional: str = ""
    viral: str = ""


class AnalysisPublish(BaseModel):
    captions: PublishCaptions = Field(default_factory=PublishCaptions)
    hashtags: list[str] = Field(default_factory=list)


class VideoAnalysisResult(BaseModel):
    """Structured verdict for one video."""
    summary: AnalysisSummary
    content: AnalysisContent
    analysis: AnalysisBody
    remix: AnalysisRemix
    publish: AnalysisPublish


class AnalysisOutcome(BaseModel):
    """A parsed result together with the raw exchange that produced it."""
    raw_request: str
    raw_response: str
    result: VideoAnalysisResult
