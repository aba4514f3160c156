"""Decorator adapter: migrate on read, require current schema on write."""

from __future__ import annotations

import logging

from coursekit.artifacts.migrations import MigrationEngine
from coursekit.artifacts.models import (
    Artifact,
    Link,
    Project,
    ProjectCreate,
    ProjectUpdate,
)
from coursekit.artifacts.registry import TypeRegistry
from coursekit.errors import ArtifactValidationError, CoreErrorCode
from coursekit.storage.base import StorageAdapter

_LOGGER = logging.getLogger(__name__)


class MigratingStorageAdapter:
    """Wrap any ``StorageAdapter`` with the schema pipeline stage.

    Every artifact read passes through ``MigrationEngine.resolve_to_current``
    before a caller sees it, so callers only ever observe current payloads.
    Writes must already be current and valid; at-rest rows keep the version
    they were written with until they are rewritten.
    """

    def __init__(
        self,
        inner: StorageAdapter,
        registry: TypeRegistry,
        engine: MigrationEngine,
    ) -> None:
        """Wrap ``inner`` with migration and validation.

        Args:
            inner: Concrete backing adapter.
            registry: Registry providing current versions and payload models.
            engine: Migration engine bound to ``registry``.
        """
        self._inner = inner
        self._registry = registry
        self._engine = engine

    @property
    def inner(self) -> StorageAdapter:
        """The wrapped backing adapter."""
        return self._inner

    async def get_projects(self) -> list[Project]:
        return await self._inner.get_projects()

    async def get_project(self, project_id: str) -> Project | None:
        return await self._inner.get_project(project_id)

    async def create_project(self, project: ProjectCreate) -> Project:
        return await self._inner.create_project(project)

    async def update_project(self, project_id: str, updates: ProjectUpdate) -> Project:
        return await self._inner.update_project(project_id, updates)

    async def delete_project(self, project_id: str) -> None:
        await self._inner.delete_project(project_id)

    async def get_artifacts(
        self, project_id: str, artifact_type: str | None = None
    ) -> list[Artifact]:
        artifacts = await self._inner.get_artifacts(project_id, artifact_type)
        return [self._engine.resolve_to_current(artifact) for artifact in artifacts]

    async def get_artifact(self, artifact_id: str) -> Artifact | None:
        artifact = await self._inner.get_artifact(artifact_id)
        if artifact is None:
            return None
        return self._engine.resolve_to_current(artifact)

    async def save_artifact(self, artifact: Artifact) -> None:
        current = self._registry.current_version(artifact.type)
        if artifact.schema_version != current:
            raise ArtifactValidationError(
                f"Artifact {artifact.id!r} has schema {artifact.schema_version!r}; "
                f"writes require current {current!r} for {artifact.type!r}",
                code=CoreErrorCode.SCHEMA_NOT_CURRENT,
                data={
                    "artifact_id": artifact.id,
                    "type": artifact.type,
                    "schema_version": artifact.schema_version,
                    "current_version": current,
                },
            )
        self._registry.require_valid(artifact)
        await self._inner.save_artifact(artifact)
        _LOGGER.debug("validated write for artifact %s", artifact.id)

    async def delete_artifact(self, artifact_id: str) -> None:
        await self._inner.delete_artifact(artifact_id)

    async def get_links(self, project_id: str) -> list[Link]:
        return await self._inner.get_links(project_id)

    async def save_link(self, link: Link) -> None:
        await self._inner.save_link(link)

    async def delete_link(self, link_id: str) -> None:
        await self._inner.delete_link(link_id)
