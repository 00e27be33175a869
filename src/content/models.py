"""Content domain models: pure Pydantic v2 data types.

Every portfolio item (project, hackathon write-up, blog post) is a
ContentRecord.  The ordering layer only reads ``id``, ``collection_type``,
``display_order`` and ``created_at``; everything an editor types into the
admin forms lives in the opaque ``payload`` dict.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class CollectionType(StrEnum):
    """Kind of content record.  Records are never ordered across kinds."""

    PROJECT = "project"
    HACKATHON = "hackathon"
    BLOG = "blog"

    @property
    def collection_name(self) -> str:
        """Name of the store collection holding this kind."""
        return f"{self.value}s"


class ProjectPayload(BaseModel):
    """Fields of the project form."""

    title: str = ""
    short_description: str = ""
    detailed_description: str = ""
    technologies: list[str] = Field(default_factory=list)
    github_link: str = ""
    live_link: str = ""
    video_url: str = ""
    image_url: str = ""
    additional_images: list[str] = Field(default_factory=list)


class HackathonPayload(BaseModel):
    """Fields of the hackathon form."""

    title: str = ""
    description: str = ""
    date: str = ""
    team_size: str = ""
    position: str = ""
    project_title: str = ""
    project_description: str = ""
    technologies: list[str] = Field(default_factory=list)
    github_link: str = ""
    demo_link: str = ""
    image_url: str = ""
    certificate_url: str = ""


class BlogPayload(BaseModel):
    """Fields of the blog post form."""

    title: str = ""
    summary: str = ""
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    read_time: str = ""
    image_url: str = ""


PAYLOAD_MODELS: dict[CollectionType, type[BaseModel]] = {
    CollectionType.PROJECT: ProjectPayload,
    CollectionType.HACKATHON: HackathonPayload,
    CollectionType.BLOG: BlogPayload,
}


class ContentRecord(BaseModel):
    """One project, hackathon entry, or blog post as held by the store.

    ``display_order`` is the curated order key.  It is absent until the
    record is backfilled or swapped into by a reorder, and is neither
    required to be contiguous nor unique.  ``created_at`` is assigned by
    the store and never changes.
    """

    id: str
    collection_type: CollectionType
    display_order: int | None = Field(default=None, ge=0)
    created_at: datetime
    payload: dict[str, Any] = Field(default_factory=dict)

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def title(self) -> str:
        return str(self.payload.get("title", ""))

    @property
    def is_keyed(self) -> bool:
        return self.display_order is not None

    def typed_payload(self) -> BaseModel:
        """Validate the payload against this record's form model."""
        return PAYLOAD_MODELS[self.collection_type].model_validate(self.payload)
