"""Storage adapter contract and implementations."""

from coursekit.storage.base import StorageAdapter, prepare_artifact_write
from coursekit.storage.factory import build_storage_adapter
from coursekit.storage.memory import InMemoryStorageAdapter
from coursekit.storage.migrating import MigratingStorageAdapter
from coursekit.storage.sqlite import SqliteStorageAdapter

__all__ = [
    "InMemoryStorageAdapter",
    "MigratingStorageAdapter",
    "SqliteStorageAdapter",
    "StorageAdapter",
    "build_storage_adapter",
    "prepare_artifact_write",
]
