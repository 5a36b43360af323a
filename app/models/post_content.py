"""Pydantic models for the ``post_contents`` table.

``metadata`` is a variant keyed by ``type``: transcript rows carry a
``SegmentMetadata``, giveaway rows a ``GiveawayMetadata``, every other kind
none.  The pairing is checked when the model is built, both for rows about
to be inserted and for rows read back from the database.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, model_validator

from app.models.enums import ContentType


class SegmentMetadata(BaseModel):
    """Transcript segment details."""
    timestamp: str = ""
    speaker: str = ""
    emotion: str = ""


class GiveawayMetadata(BaseModel):
    """Giveaway details detected in the video."""
    prize: str = ""
    requirements: str = ""
    deadline: str = ""


ContentMetadata = SegmentMetadata | GiveawayMetadata

METADATA_TYPES: dict[ContentType, type[BaseModel]] = {
    ContentType.transcript: SegmentMetadata,
    ContentType.giveaway: GiveawayMetadata,
}


class PostContentCreate(BaseModel):
    """Payload for inserting a content fragment.

    ``run_id`` groups the rows written by one pipeline run so a later run can
    supersede them as a whole.
    """
    post_id: str
    run_id: UUID
    type: ContentType
    language: str = ""
    text: str
    metadata: ContentMetadata | None = None

    @model_validator(mode="before")
    @classmethod
    def _build_metadata_variant(cls, data: Any) -> Any:
        if not isinstance(data, dict) or not isinstance(data.get("metadata"), dict):
            return data
        try:
            kind = ContentType(data.get("type"))
        except ValueError:
            return data
        variant = METADATA_TYPES.get(kind)
        if variant is None:
            return data
        return {**data, "metadata": variant.model_validate(data["metadata"])}

    @model_validator(mode="after")
    def _check_metadata_matches_type(self) -> "PostContentCreate":
        expected = METADATA_TYPES.get(self.type)
        if expected is None:
            if self.metadata is not None:
                raise ValueError(f"{self.type.value} content does not take metadata")
        elif self.metadata is not None and not isinstance(self.metadata, expected):
            raise ValueError(
                f"{self.type.value} content requires {expected.__name__} metadata"
            )
        return self


class PostContent(PostContentCreate):
    """Full post_contents record returned from the database."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
