"""Type registry: (type, schema_version) to payload model; validates payloads."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from coursekit.artifacts.models import (
    Artifact,
    ArtifactEnvelope,
    ArtifactMetadata,
    generate_id,
    utc_now,
)
from coursekit.errors import ArtifactValidationError, CoreErrorCode

M = TypeVar("M", bound=BaseModel)


class ValidationResult(BaseModel):
    """Outcome of validating one artifact. Empty ``errors`` means valid."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    artifact_id: str
    code: CoreErrorCode | None = None
    errors: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        """True when the artifact passed every check."""
        return not self.errors

    def raise_for_errors(self) -> None:
        """Raise ``ArtifactValidationError`` when the result is not ok."""
        if self.ok:
            return
        raise ArtifactValidationError(
            f"Artifact {self.artifact_id!r} is invalid: {'; '.join(self.errors)}",
            code=self.code,
            data={"artifact_id": self.artifact_id, "errors": list(self.errors)},
        )


class TypeRegistry:
    """In-process registry of payload models per artifact type and version."""

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._models: dict[tuple[str, str], type[BaseModel]] = {}
        self._current: dict[str, str] = {}

    def register(
        self,
        artifact_type: str,
        schema_version: str,
        model: type[BaseModel],
        *,
        current: bool = False,
        override: bool = False,
    ) -> None:
        """Register the payload model for one (type, version) pair.

        Args:
            artifact_type: Semantic type tag, e.g. ``quiz-question``.
            schema_version: Version string for the payload shape.
            model: Pydantic model validating the payload.
            current: Mark this version as the type's current version.
            override: Replace an existing registration.

        Raises:
            ValueError: If already registered and ``override`` is False.
        """
        key = (artifact_type, schema_version)
        if key in self._models and not override:
            raise ValueError(
                f"Schema already registered: {artifact_type!r} {schema_version!r}"
            )
        self._models[key] = model
        if current:
            self._current[artifact_type] = schema_version

    def is_registered(self, artifact_type: str) -> bool:
        """True when the type has a current version."""
        return artifact_type in self._current

    def types(self) -> tuple[str, ...]:
        """Return registered type tags, sorted."""
        return tuple(sorted(self._current))

    def versions(self, artifact_type: str) -> tuple[str, ...]:
        """Return every registered version for a type, sorted."""
        return tuple(sorted(v for t, v in self._models if t == artifact_type))

    def current_version(self, artifact_type: str) -> str:
        """Return the current schema version for a type.

        Raises:
            ArtifactValidationError: If the type is not registered.
        """
        if artifact_type not in self._current:
            raise _unknown_type(artifact_type)
        return self._current[artifact_type]

    def is_current(self, artifact: ArtifactEnvelope[Any]) -> bool:
        """True when the artifact is at its type's current version."""
        return self._current.get(artifact.type) == artifact.schema_version

    def get(self, artifact_type: str, schema_version: str) -> type[BaseModel]:
        """Return the payload model for (type, version).

        Raises:
            ArtifactValidationError: If the type or version is not registered.
        """
        if artifact_type not in self._current:
            raise _unknown_type(artifact_type)
        model = self._models.get((artifact_type, schema_version))
        if model is None:
            raise ArtifactValidationError(
                f"Unknown schema version {schema_version!r} for type {artifact_type!r}",
                code=CoreErrorCode.UNKNOWN_SCHEMA_VERSION,
                data={"type": artifact_type, "schema_version": schema_version},
            )
        return model

    def validate(self, artifact: ArtifactEnvelope[Any]) -> ValidationResult:
        """Check type, version, payload shape and payload invariants.

        Malformed input is reported in the result; only programming errors
        raise.

        Args:
            artifact: Artifact with a raw or typed payload.

        Returns:
            Validation result listing every failure.
        """
        try:
            model = self.get(artifact.type, artifact.schema_version)
        except ArtifactValidationError as exc:
            return ValidationResult(
                artifact_id=artifact.id, code=exc.code, errors=(str(exc),)
            )
        try:
            model.model_validate(_payload_json(artifact.data))
        except PydanticValidationError as exc:
            return ValidationResult(
                artifact_id=artifact.id,
                code=CoreErrorCode.VALIDATION_FAILED,
                errors=tuple(_format_error(item) for item in exc.errors()),
            )
        return ValidationResult(artifact_id=artifact.id)

    def require_valid(self, artifact: ArtifactEnvelope[Any]) -> None:
        """Validate and raise ``ArtifactValidationError`` on failure."""
        self.validate(artifact).raise_for_errors()

    def decode(self, artifact: ArtifactEnvelope[Any], model: type[M]) -> ArtifactEnvelope[M]:
        """Narrow an artifact to a typed envelope, validating its payload.

        Args:
            artifact: Artifact read from storage.
            model: Expected payload model; must match the registration.

        Returns:
            Typed envelope whose ``data`` is a ``model`` instance.

        Raises:
            ArtifactValidationError: On unknown type/version, model mismatch,
                or invalid payload.
        """
        registered = self.get(artifact.type, artifact.schema_version)
        if registered is not model:
            raise ArtifactValidationError(
                f"Artifact {artifact.id!r} of type {artifact.type!r} "
                f"{artifact.schema_version} does not decode to {model.__name__}",
                code=CoreErrorCode.VALIDATION_FAILED,
                data={"artifact_id": artifact.id, "type": artifact.type},
            )
        self.require_valid(artifact)
        payload = model.model_validate(_payload_json(artifact.data))
        return ArtifactEnvelope[model](
            id=artifact.id,
            project_id=artifact.project_id,
            type=artifact.type,
            schema_version=artifact.schema_version,
            metadata=artifact.metadata,
            data=payload,
        )

    def new_artifact(
        self,
        *,
        project_id: str,
        artifact_type: str,
        data: BaseModel | Mapping[str, Any],
        created_by: str,
        artifact_id: str | None = None,
        now: datetime | None = None,
    ) -> Artifact:
        """Create an artifact at the current schema version for its type.

        Raises:
            ArtifactValidationError: If the type is unknown or data is invalid.
        """
        timestamp = now or utc_now()
        artifact = Artifact(
            id=artifact_id or generate_id(),
            project_id=project_id,
            type=artifact_type,
            schema_version=self.current_version(artifact_type),
            metadata=ArtifactMetadata(
                created_by=created_by,
                created_at=timestamp,
                modified_at=timestamp,
                modified_by=created_by,
            ),
            data=_payload_json(data),
        )
        self.require_valid(artifact)
        return artifact


def encode(artifact: ArtifactEnvelope[Any]) -> Artifact:
    """Turn a typed envelope back into the persisted, untyped shape."""
    return Artifact(
        id=artifact.id,
        project_id=artifact.project_id,
        type=artifact.type,
        schema_version=artifact.schema_version,
        metadata=artifact.metadata,
        data=_payload_json(artifact.data),
    )


def _unknown_type(artifact_type: str) -> ArtifactValidationError:
    return ArtifactValidationError(
        f"Unknown artifact type: {artifact_type!r}",
        code=CoreErrorCode.UNKNOWN_TYPE,
        data={"type": artifact_type},
    )


def _payload_json(data: object) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", exclude_none=True)
    if isinstance(data, Mapping):
        return dict(data)
    raise ArtifactValidationError(
        f"Artifact data must be an object, got {type(data).__name__}",
        code=CoreErrorCode.VALIDATION_FAILED,
    )


def _format_error(item: Mapping[str, Any]) -> str:
    loc = ".".join(str(part) for part in item.get("loc", ()))
    message = str(item.get("msg", "invalid"))
    return f"{loc}: {message}" if loc else message
