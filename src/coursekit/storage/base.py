"""Storage adapter contract shared by every backing store."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from coursekit.artifacts.models import (
    Artifact,
    Link,
    Project,
    ProjectCreate,
    ProjectUpdate,
)
from coursekit.errors import ArtifactValidationError, CoreErrorCode


class StorageAdapter(Protocol):
    """Async CRUD over projects, artifacts and links.

    Contract shared by all implementations:

    - Reads of a missing id return ``None`` (or an empty list); they never
      raise ``NotFoundError``.
    - Updates and deletes of a missing id raise ``NotFoundError``.
    - Backend failures raise ``StorageError`` with the cause chained; the
      contract never retries.
    - Each call is one logical transaction; no partial write is visible.
    - ``save_artifact`` is a full-replace upsert. On update the stored
      ``created_by``/``created_at`` win over the caller's values and
      ``modified_at`` is set to the current time (never below the stored
      value). The artifact ``type`` cannot change.
    - ``delete_project`` removes the project's artifacts and links;
      ``delete_artifact`` leaves links that reference the artifact alone.
    - Concurrent saves of one id are last-write-wins.
    """

    async def get_projects(self) -> list[Project]:
        """Return all projects, most recently updated first."""
        ...

    async def get_project(self, project_id: str) -> Project | None:
        """Return one project or ``None``."""
        ...

    async def create_project(self, project: ProjectCreate) -> Project:
        """Create a project; storage assigns id and timestamps."""
        ...

    async def update_project(self, project_id: str, updates: ProjectUpdate) -> Project:
        """Apply name/description changes and bump ``updated_at``."""
        ...

    async def delete_project(self, project_id: str) -> None:
        """Delete a project with all of its artifacts and links."""
        ...

    async def get_artifacts(
        self, project_id: str, artifact_type: str | None = None
    ) -> list[Artifact]:
        """Return a project's artifacts, optionally filtered by type."""
        ...

    async def get_artifact(self, artifact_id: str) -> Artifact | None:
        """Return one artifact or ``None``."""
        ...

    async def save_artifact(self, artifact: Artifact) -> None:
        """Insert or fully replace an artifact by id."""
        ...

    async def delete_artifact(self, artifact_id: str) -> None:
        """Hard-delete one artifact."""
        ...

    async def get_links(self, project_id: str) -> list[Link]:
        """Return a project's links."""
        ...

    async def save_link(self, link: Link) -> None:
        """Insert or replace a link by id."""
        ...

    async def delete_link(self, link_id: str) -> None:
        """Hard-delete one link."""
        ...


def prepare_artifact_write(
    existing: Artifact | None, incoming: Artifact, now: datetime
) -> Artifact:
    """Apply the upsert metadata rules to an incoming artifact.

    Args:
        existing: Stored artifact with the same id, if any.
        incoming: Caller's full replacement.
        now: Current time from the adapter clock.

    Returns:
        Artifact to persist.

    Raises:
        ArtifactValidationError: If the update changes the artifact type.
    """
    if existing is None:
        return incoming
    if existing.type != incoming.type:
        raise ArtifactValidationError(
            f"Artifact {incoming.id!r} type cannot change from "
            f"{existing.type!r} to {incoming.type!r}",
            code=CoreErrorCode.TYPE_CHANGED,
            data={"artifact_id": incoming.id},
        )
    metadata = incoming.metadata.model_copy(
        update={
            "created_by": existing.metadata.created_by,
            "created_at": existing.metadata.created_at,
            "modified_at": max(now, existing.metadata.modified_at),
        }
    )
    return incoming.model_copy(update={"metadata": metadata})


def artifact_sort_key(artifact: Artifact) -> tuple[datetime, str]:
    """Deterministic listing order: creation time, then id."""
    return (artifact.metadata.created_at, artifact.id)
