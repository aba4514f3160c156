"""Built-in artifact types and their migrations."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from coursekit.artifacts.migrations import MigrationEngine
from coursekit.artifacts.payloads import (
    QUESTION_BANK_TYPE,
    QUESTION_BANK_V1_0,
    QUIZ_QUESTION_TYPE,
    QUIZ_QUESTION_V1_0,
    QUIZ_QUESTION_V1_1,
    QuestionBankData,
    QuizQuestionData,
    QuizQuestionDataV1_0,
)
from coursekit.artifacts.registry import TypeRegistry


def migrate_quiz_question_v1_0_to_v1_1(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Rename ``question_type`` to ``question_form``; default ``settings``.

    Args:
        payload: Quiz question payload at 1.0.0.

    Returns:
        Payload at 1.1.0.
    """
    migrated = {key: value for key, value in payload.items() if key != "question_type"}
    migrated["question_form"] = payload["question_type"]
    if migrated.get("settings") is None:
        migrated["settings"] = {}
    return migrated


def register_builtin_types(registry: TypeRegistry) -> None:
    """Register payload models for every built-in type and version."""
    registry.register(QUIZ_QUESTION_TYPE, QUIZ_QUESTION_V1_0, QuizQuestionDataV1_0)
    registry.register(
        QUIZ_QUESTION_TYPE, QUIZ_QUESTION_V1_1, QuizQuestionData, current=True
    )
    registry.register(
        QUESTION_BANK_TYPE, QUESTION_BANK_V1_0, QuestionBankData, current=True
    )


def register_builtin_migrations(engine: MigrationEngine) -> None:
    """Register transitions for every built-in type."""
    engine.register(
        QUIZ_QUESTION_TYPE,
        QUIZ_QUESTION_V1_0,
        QUIZ_QUESTION_V1_1,
        migrate_quiz_question_v1_0_to_v1_1,
    )


def default_registry() -> TypeRegistry:
    """Return a registry with the built-in types registered."""
    registry = TypeRegistry()
    register_builtin_types(registry)
    return registry


def default_migration_engine(registry: TypeRegistry | None = None) -> MigrationEngine:
    """Return an engine bound to ``registry`` with built-in migrations."""
    engine = MigrationEngine(registry or default_registry())
    register_builtin_migrations(engine)
    return engine
