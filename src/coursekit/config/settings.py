"""Coursekit config models and loading helpers."""

from __future__ import annotations

import json
from enum import StrEnum
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError


class StorageBackend(StrEnum):
    """Supported storage backend identifiers."""

    SQLITE = "sqlite"
    MEMORY = "memory"


class StorageSettings(BaseModel):
    """Storage adapter configuration."""

    model_config = ConfigDict(extra="forbid")

    backend: StorageBackend = StorageBackend.SQLITE
    sqlite_path: str = ".coursekit/coursekit.sqlite"


class CoursekitConfig(BaseModel):
    """Root coursekit configuration model."""

    model_config = ConfigDict(extra="forbid")

    storage: StorageSettings = StorageSettings()


class ConfigError(RuntimeError):
    """Raised when config cannot be decoded or validated."""


def _decode_config_payload(path: Path) -> dict[str, object]:
    """Decode config payload from JSON or YAML.

    Args:
        path: Config file path.

    Returns:
        Parsed mapping payload.

    Raises:
        ConfigError: If decode fails or payload is not an object.
    """
    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid config JSON: {exc}") from exc
    else:
        try:
            payload = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid config YAML: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError("Invalid config payload: root must be an object")
    return payload


def load_config(path: Path) -> CoursekitConfig:
    """Load coursekit config from disk, defaulting when missing.

    Args:
        path: Config file path.

    Returns:
        Parsed config payload, or defaults when file does not exist.

    Raises:
        ConfigError: If payload decode or validation fails.
    """
    if not path.exists():
        return CoursekitConfig()
    payload = _decode_config_payload(path)
    try:
        return CoursekitConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config payload: {exc}") from exc
