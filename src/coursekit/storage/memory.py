"""In-process reference storage adapter (dict-backed, copies on every boundary)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from coursekit.artifacts.models import (
    Artifact,
    Link,
    Project,
    ProjectCreate,
    ProjectUpdate,
    generate_id,
    utc_now,
)
from coursekit.errors import NotFoundError
from coursekit.storage.base import artifact_sort_key, prepare_artifact_write

_LOGGER = logging.getLogger(__name__)


class InMemoryStorageAdapter:
    """Reference ``StorageAdapter``: state lives in dicts for one process.

    Every value crossing the boundary is deep-copied so callers can never
    observe or mutate stored state through a shared reference.
    """

    def __init__(self, *, clock: Callable[[], datetime] = utc_now) -> None:
        """Create an empty store.

        Args:
            clock: Source of the current time for audit timestamps.
        """
        self._clock = clock
        self._projects: dict[str, Project] = {}
        self._artifacts: dict[str, Artifact] = {}
        self._links: dict[str, Link] = {}

    async def get_projects(self) -> list[Project]:
        projects = sorted(
            self._projects.values(),
            key=lambda item: (item.updated_at, item.id),
            reverse=True,
        )
        return [project.model_copy(deep=True) for project in projects]

    async def get_project(self, project_id: str) -> Project | None:
        project = self._projects.get(project_id)
        return project.model_copy(deep=True) if project is not None else None

    async def create_project(self, project: ProjectCreate) -> Project:
        now = self._clock()
        created = Project(
            id=generate_id(),
            name=project.name,
            description=project.description,
            owner_id=project.owner_id,
            created_at=now,
            updated_at=now,
        )
        self._projects[created.id] = created
        return created.model_copy(deep=True)

    async def update_project(self, project_id: str, updates: ProjectUpdate) -> Project:
        existing = self._require_project(project_id)
        changes = updates.changes()
        changes["updated_at"] = max(self._clock(), existing.updated_at)
        updated = Project.model_validate(existing.model_dump() | changes)
        self._projects[project_id] = updated
        return updated.model_copy(deep=True)

    async def delete_project(self, project_id: str) -> None:
        self._require_project(project_id)
        # Build the survivor maps first so the cascade swaps in at once.
        artifacts = {
            key: value
            for key, value in self._artifacts.items()
            if value.project_id != project_id
        }
        links = {
            key: value
            for key, value in self._links.items()
            if value.project_id != project_id
        }
        del self._projects[project_id]
        self._artifacts = artifacts
        self._links = links
        _LOGGER.debug("deleted project %s with its artifacts and links", project_id)

    async def get_artifacts(
        self, project_id: str, artifact_type: str | None = None
    ) -> list[Artifact]:
        matches = [
            artifact
            for artifact in self._artifacts.values()
            if artifact.project_id == project_id
            and (artifact_type is None or artifact.type == artifact_type)
        ]
        return [
            artifact.model_copy(deep=True)
            for artifact in sorted(matches, key=artifact_sort_key)
        ]

    async def get_artifact(self, artifact_id: str) -> Artifact | None:
        artifact = self._artifacts.get(artifact_id)
        return artifact.model_copy(deep=True) if artifact is not None else None

    async def save_artifact(self, artifact: Artifact) -> None:
        self._require_project(artifact.project_id)
        stored = prepare_artifact_write(
            self._artifacts.get(artifact.id), artifact, self._clock()
        )
        self._artifacts[stored.id] = stored.model_copy(deep=True)
        _LOGGER.debug("saved artifact %s (%s)", stored.id, stored.type)

    async def delete_artifact(self, artifact_id: str) -> None:
        if artifact_id not in self._artifacts:
            raise NotFoundError(
                f"Artifact not found: {artifact_id!r}",
                data={"artifact_id": artifact_id},
            )
        del self._artifacts[artifact_id]

    async def get_links(self, project_id: str) -> list[Link]:
        links = [link for link in self._links.values() if link.project_id == project_id]
        return [
            link.model_copy(deep=True)
            for link in sorted(links, key=lambda item: (item.created_at, item.id))
        ]

    async def save_link(self, link: Link) -> None:
        self._require_project(link.project_id)
        self._links[link.id] = link.model_copy(deep=True)

    async def delete_link(self, link_id: str) -> None:
        if link_id not in self._links:
            raise NotFoundError(
                f"Link not found: {link_id!r}", data={"link_id": link_id}
            )
        del self._links[link_id]

    def _require_project(self, project_id: str) -> Project:
        project = self._projects.get(project_id)
        if project is None:
            raise NotFoundError(
                f"Project not found: {project_id!r}", data={"project_id": project_id}
            )
        return project
