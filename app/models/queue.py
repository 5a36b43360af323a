"""Work queue payload and ingest contracts."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import SocialPlatform


class QueueJob(BaseModel):
    """Message pushed to the fresh or renew queue (camelCase on the wire)."""
    model_config = ConfigDict(populate_by_name=True)

    tracking_id: UUID = Field(alias="trackingId")
    content_id: str | None = Field(default=None, alias="contentId")
    source_url: str = Field(alias="sourceUrl")
    platform: SocialPlatform

    def to_payload(self) -> str:
        return self.model_dump_json(by_alias=True)


class SubmitRequest(BaseModel):
    """Body of ``POST /analyze``."""
    url: str


class SubmitResponse(BaseModel):
    """Tracking handle plus a completion estimate in seconds."""
    model_config = ConfigDict(populate_by_name=True)

    tracking_id: UUID = Field(alias="trackingId")
    estimated_seconds: int = Field(alias="estimatedSeconds")
