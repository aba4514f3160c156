"""Storage adapter construction from configuration."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from coursekit.artifacts.builtin import default_migration_engine, default_registry
from coursekit.artifacts.migrations import MigrationEngine
from coursekit.artifacts.registry import TypeRegistry
from coursekit.config import StorageBackend, StorageSettings
from coursekit.storage.base import StorageAdapter
from coursekit.storage.memory import InMemoryStorageAdapter
from coursekit.storage.migrating import MigratingStorageAdapter
from coursekit.storage.sqlite import SqliteStorageAdapter

type StorageStrategy = Callable[[StorageSettings], StorageAdapter]


def _build_memory_backend(settings: StorageSettings) -> StorageAdapter:
    """Build in-memory backend.

    Args:
        settings: Storage settings payload (unused for memory backend).

    Returns:
        Empty in-memory adapter.
    """
    del settings
    return InMemoryStorageAdapter()


def _build_sqlite_backend(settings: StorageSettings) -> StorageAdapter:
    """Build sqlite backend with deterministic path resolution.

    Args:
        settings: Storage settings payload.

    Returns:
        SQLite adapter bound to the resolved file path.
    """
    sqlite_path = Path(settings.sqlite_path).expanduser()
    if not sqlite_path.is_absolute():
        sqlite_path = Path.cwd() / sqlite_path
    return SqliteStorageAdapter(sqlite_path)


_STRATEGIES: dict[StorageBackend, StorageStrategy] = {
    StorageBackend.MEMORY: _build_memory_backend,
    StorageBackend.SQLITE: _build_sqlite_backend,
}


def build_storage_adapter(
    settings: StorageSettings,
    *,
    registry: TypeRegistry | None = None,
    engine: MigrationEngine | None = None,
) -> MigratingStorageAdapter:
    """Build the configured backend wrapped in the migration stage.

    Args:
        settings: Storage settings payload.
        registry: Type registry; defaults to the built-in types.
        engine: Migration engine; defaults to built-in migrations over
            ``registry``.

    Returns:
        Adapter that migrates on read and validates on write.
    """
    resolved_registry = registry or default_registry()
    resolved_engine = engine or default_migration_engine(resolved_registry)
    inner = _STRATEGIES[settings.backend](settings)
    return MigratingStorageAdapter(inner, resolved_registry, resolved_engine)
