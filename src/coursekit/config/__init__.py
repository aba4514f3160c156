"""Coursekit configuration loading."""

from coursekit.config.settings import (
    ConfigError,
    CoursekitConfig,
    StorageBackend,
    StorageSettings,
    load_config,
)

__all__ = [
    "ConfigError",
    "CoursekitConfig",
    "StorageBackend",
    "StorageSettings",
    "load_config",
]
