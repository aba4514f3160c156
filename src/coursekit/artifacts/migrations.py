"""Migration engine: upgrade artifact payloads one schema version at a time.

Each artifact type is a small state machine whose states are schema version
strings. A registered transition is a pure function from the payload at one
version to the payload at the next. ``resolve_to_current`` walks transitions
until the type's current version and fails fast when a step is missing;
versions are never skipped or guessed.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from coursekit.artifacts.models import Artifact
from coursekit.artifacts.registry import TypeRegistry
from coursekit.errors import ArtifactValidationError, CoreErrorCode, MigrationError

_LOGGER = logging.getLogger(__name__)

type PayloadMigration = Callable[[Mapping[str, Any]], dict[str, Any]]


@dataclass(frozen=True)
class MigrationStep:
    """One registered transition for an artifact type."""

    artifact_type: str
    from_version: str
    to_version: str
    migrate: PayloadMigration


class MigrationEngine:
    """Registry of per-type transitions plus the resolve-to-current walk."""

    def __init__(self, registry: TypeRegistry) -> None:
        """Bind engine to the registry that knows current versions.

        Args:
            registry: Type registry used to look up current versions.
        """
        self._registry = registry
        self._steps: dict[tuple[str, str], MigrationStep] = {}

    def register(
        self,
        artifact_type: str,
        from_version: str,
        to_version: str,
        migrate: PayloadMigration,
    ) -> None:
        """Register the single outgoing transition from ``from_version``.

        Args:
            artifact_type: Type tag the transition applies to.
            from_version: Source schema version.
            to_version: Target schema version.
            migrate: Pure payload transformation.

        Raises:
            ValueError: If the transition is a self-loop or already registered.
        """
        if from_version == to_version:
            raise ValueError(
                f"Migration for {artifact_type!r} must change version, got {from_version!r}"
            )
        key = (artifact_type, from_version)
        if key in self._steps:
            raise ValueError(
                f"Migration already registered: {artifact_type!r} from {from_version!r}"
            )
        self._steps[key] = MigrationStep(
            artifact_type=artifact_type,
            from_version=from_version,
            to_version=to_version,
            migrate=migrate,
        )

    def steps(self, artifact_type: str) -> tuple[MigrationStep, ...]:
        """Return registered transitions for a type, ordered by source version."""
        return tuple(
            step
            for (kind, _), step in sorted(self._steps.items())
            if kind == artifact_type
        )

    def needs_migration(self, artifact: Artifact) -> bool:
        """True when the artifact is not at its type's current version."""
        return not self._registry.is_current(artifact)

    def resolve_to_current(self, artifact: Artifact) -> Artifact:
        """Upgrade an artifact to its type's current schema version.

        Already-current artifacts are returned unchanged. The input is never
        mutated.

        Args:
            artifact: Artifact at any registered or legacy version.

        Returns:
            Artifact at the current version.

        Raises:
            MigrationError: If the type is unknown, a transition is missing,
                the transitions loop, or a transition fails.
        """
        try:
            target = self._registry.current_version(artifact.type)
        except ArtifactValidationError as exc:
            raise MigrationError(
                f"Cannot migrate artifact {artifact.id!r}: {exc}",
                code=CoreErrorCode.UNKNOWN_TYPE,
                data={"artifact_id": artifact.id, "type": artifact.type},
            ) from exc
        if artifact.schema_version == target:
            return artifact

        version = artifact.schema_version
        data: dict[str, Any] = copy.deepcopy(artifact.data)
        visited = {version}
        while version != target:
            step = self._steps.get((artifact.type, version))
            if step is None:
                raise MigrationError(
                    f"No migration registered for {artifact.type!r} from "
                    f"{version!r} toward {target!r} (artifact {artifact.id!r})",
                    data={
                        "artifact_id": artifact.id,
                        "type": artifact.type,
                        "from_version": version,
                        "to_version": target,
                    },
                )
            try:
                data = step.migrate(data)
            except (KeyError, TypeError, ValueError) as exc:
                raise MigrationError(
                    f"Migration {artifact.type!r} {step.from_version} -> "
                    f"{step.to_version} failed for artifact {artifact.id!r}: {exc}",
                    code=CoreErrorCode.MIGRATION_FAILED,
                    data={"artifact_id": artifact.id, "type": artifact.type},
                ) from exc
            _LOGGER.debug(
                "migrated artifact %s (%s) %s -> %s",
                artifact.id,
                artifact.type,
                step.from_version,
                step.to_version,
            )
            version = step.to_version
            if version in visited:
                raise MigrationError(
                    f"Migration cycle for {artifact.type!r} at version {version!r}",
                    code=CoreErrorCode.MIGRATION_FAILED,
                    data={"artifact_id": artifact.id, "type": artifact.type},
                )
            visited.add(version)
        return artifact.model_copy(update={"schema_version": version, "data": data})
