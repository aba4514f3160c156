"""Deterministic error contracts shared by registry, migrations and storage."""

from __future__ import annotations

from enum import StrEnum


class CoreErrorCode(StrEnum):
    """Stable error codes for core failures."""

    VALIDATION_FAILED = "artifact_validation_failed"
    UNKNOWN_TYPE = "artifact_unknown_type"
    UNKNOWN_SCHEMA_VERSION = "artifact_unknown_schema_version"
    SCHEMA_NOT_CURRENT = "artifact_schema_not_current"
    TYPE_CHANGED = "artifact_type_changed"
    MIGRATION_MISSING = "migration_missing"
    MIGRATION_FAILED = "migration_failed"
    NOT_FOUND = "not_found"
    STORAGE_FAILED = "storage_failed"


class CoreError(RuntimeError):
    """Core failure with stable deterministic code."""

    default_code = CoreErrorCode.VALIDATION_FAILED

    def __init__(
        self,
        message: str,
        *,
        code: CoreErrorCode | None = None,
        data: dict[str, object] | None = None,
    ) -> None:
        """Create core failure.

        Args:
            message: Human-readable error message.
            code: Stable error code; defaults to the subclass code.
            data: Optional structured payload for diagnostics.
        """
        super().__init__(message)
        self.code = code or self.default_code
        self.data = data or {}


class ArtifactValidationError(CoreError):
    """Malformed artifact payload or contract violation. Never auto-corrected."""

    default_code = CoreErrorCode.VALIDATION_FAILED


class MigrationError(CoreError):
    """No registered transition for a version gap, or a transition failed."""

    default_code = CoreErrorCode.MIGRATION_MISSING


class NotFoundError(CoreError):
    """Update or delete addressed an id that does not exist."""

    default_code = CoreErrorCode.NOT_FOUND


class StorageError(CoreError):
    """Backend-level failure; the original cause is chained."""

    default_code = CoreErrorCode.STORAGE_FAILED
