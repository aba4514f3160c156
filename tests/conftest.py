"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from coursekit.artifacts import MigrationEngine, TypeRegistry
from coursekit.artifacts.builtin import default_migration_engine, default_registry


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    """Temporary workspace root. .coursekit will be created under it."""
    return tmp_path


@pytest.fixture
def registry() -> TypeRegistry:
    """Registry with the built-in artifact types."""
    return default_registry()


@pytest.fixture
def engine(registry: TypeRegistry) -> MigrationEngine:
    """Migration engine with built-in transitions bound to ``registry``."""
    return default_migration_engine(registry)
