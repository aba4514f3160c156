"""Artifact envelope, project and link models (pure data, no IO)."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Return the current timezone-aware UTC time."""
    return datetime.now(UTC)


def generate_id() -> str:
    """Generate a new opaque identifier (uuid4 string)."""
    return str(uuid.uuid4())


class ArtifactMetadata(BaseModel):
    """Audit metadata carried by every artifact. All fields required."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    created_by: str = Field(min_length=1)
    created_at: AwareDatetime
    modified_at: AwareDatetime
    modified_by: str = Field(min_length=1)


T = TypeVar("T")


class ArtifactEnvelope(BaseModel, Generic[T]):
    """Generic envelope: identity + type tag + schema version + audit + payload.

    ``type`` never changes after creation and ``schema_version`` only advances
    through the migration engine. Instances are immutable; writes are full
    replacements built with ``model_copy``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    project_id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    schema_version: str = Field(min_length=1)
    metadata: ArtifactMetadata
    data: T


# Untyped envelope as persisted: payload is a JSON object validated per type.
Artifact = ArtifactEnvelope[dict[str, Any]]


def is_of_type(artifact: ArtifactEnvelope[Any], type_tag: str) -> bool:
    """Structural check on ``artifact.type``; use before reading ``data``."""
    return artifact.type == type_tag


class LinkRelationship(StrEnum):
    """Closed set of directional link relationships."""

    CONTAINS = "contains"
    ASSESSES = "assesses"
    DERIVED_FROM = "derived_from"


class Link(BaseModel):
    """Directional relationship between two artifacts of one project."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    project_id: str = Field(min_length=1)
    source_id: str = Field(min_length=1)
    target_id: str = Field(min_length=1)
    relationship: LinkRelationship
    created_by: str = Field(min_length=1)
    created_at: AwareDatetime


class Project(BaseModel):
    """Owner of artifacts and links."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str | None = None
    owner_id: str = Field(min_length=1)
    created_at: AwareDatetime
    updated_at: AwareDatetime


class ProjectCreate(BaseModel):
    """Input for creating a project; id and timestamps are assigned by storage."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(min_length=1)
    description: str | None = None
    owner_id: str = Field(min_length=1)


class ProjectUpdate(BaseModel):
    """Partial project update; only fields that are set are applied."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None

    @field_validator("name")
    @classmethod
    def _name_not_cleared(cls, value: str | None) -> str | None:
        if value is None:
            raise ValueError("project name cannot be cleared; omit it to keep the current name.")
        return value

    def changes(self) -> dict[str, object]:
        """Return only the fields the caller explicitly set."""
        return self.model_dump(exclude_unset=True)
