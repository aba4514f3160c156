"""Unit tests for schema migrations."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

import pytest
from pydantic import BaseModel

from coursekit.artifacts import (
    QUIZ_QUESTION_TYPE,
    MigrationEngine,
    QuizQuestionData,
    TypeRegistry,
)
from coursekit.artifacts.builtin import migrate_quiz_question_v1_0_to_v1_1
from coursekit.errors import CoreErrorCode, MigrationError
from tests.unit.helpers import make_artifact, make_legacy_question_data


class _Toy(BaseModel):
    label: str


def _toy_registry(*versions: str) -> TypeRegistry:
    """Registry with a ``toy`` type whose last version is current."""
    registry = TypeRegistry()
    for index, version in enumerate(versions):
        registry.register("toy", version, _Toy, current=index == len(versions) - 1)
    return registry


def _rename(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {"label": payload["name"]}


@pytest.mark.unit
def test_legacy_question_resolves_to_current(
    registry: TypeRegistry, engine: MigrationEngine
) -> None:
    """A 1.0.0 question is upgraded to 1.1.0 with renamed field and settings."""
    # Arrange - legacy stored question
    legacy = make_artifact("p1", schema_version="1.0.0", data=make_legacy_question_data())
    assert registry.validate(legacy).ok

    # Act - resolve
    current = engine.resolve_to_current(legacy)

    # Assert - current version, valid payload, identity preserved
    assert current.schema_version == "1.1.0"
    assert current.data["question_form"] == "multiple_choice"
    assert "question_type" not in current.data
    assert current.data["settings"] == {}
    assert current.id == legacy.id
    assert current.metadata == legacy.metadata
    assert registry.validate(current).ok
    assert registry.decode(current, QuizQuestionData).data.correct_positions() == (2,)


@pytest.mark.unit
def test_resolve_is_idempotent(engine: MigrationEngine) -> None:
    """Resolving a current artifact returns it unchanged."""
    legacy = make_artifact("p1", schema_version="1.0.0", data=make_legacy_question_data())

    once = engine.resolve_to_current(legacy)
    twice = engine.resolve_to_current(once)

    assert twice == once
    assert engine.needs_migration(legacy)
    assert not engine.needs_migration(once)


@pytest.mark.unit
def test_resolve_does_not_mutate_input(engine: MigrationEngine) -> None:
    """Migration functions operate on a copy of the stored payload."""
    legacy = make_artifact("p1", schema_version="1.0.0", data=make_legacy_question_data())
    snapshot = copy.deepcopy(legacy.data)

    engine.resolve_to_current(legacy)

    assert legacy.data == snapshot
    assert legacy.schema_version == "1.0.0"


@pytest.mark.unit
def test_builtin_migration_keeps_existing_settings() -> None:
    """Legacy payloads that already carry settings keep them."""
    payload = make_legacy_question_data()
    payload["settings"] = {"points": 2}

    migrated = migrate_quiz_question_v1_0_to_v1_1(payload)

    assert migrated["settings"] == {"points": 2}
    assert payload["question_type"] == "multiple_choice"


@pytest.mark.unit
def test_chain_applies_steps_in_order() -> None:
    """Two registered steps are applied back to back."""
    # Arrange - 1 -> 2 -> 3
    registry = _toy_registry("1", "2", "3")
    engine = MigrationEngine(registry)
    engine.register("toy", "1", "2", lambda payload: {"name": payload["raw"]})
    engine.register("toy", "2", "3", _rename)
    artifact = make_artifact("p1", artifact_type="toy", schema_version="1", data={"raw": "x"})

    # Act - resolve
    current = engine.resolve_to_current(artifact)

    # Assert - both steps ran
    assert current.schema_version == "3"
    assert current.data == {"label": "x"}
    assert [step.from_version for step in engine.steps("toy")] == ["1", "2"]


@pytest.mark.unit
def test_missing_step_names_the_gap() -> None:
    """A gap in the chain raises MigrationError instead of guessing."""
    registry = _toy_registry("1", "2", "3")
    engine = MigrationEngine(registry)
    engine.register("toy", "1", "2", lambda payload: dict(payload))
    artifact = make_artifact("p1", artifact_type="toy", schema_version="1", data={})

    with pytest.raises(MigrationError, match="from '2' toward '3'") as exc_info:
        engine.resolve_to_current(artifact)

    assert exc_info.value.code == CoreErrorCode.MIGRATION_MISSING
    assert exc_info.value.data["from_version"] == "2"


@pytest.mark.unit
def test_unknown_type_raises_migration_error(engine: MigrationEngine) -> None:
    """Artifacts of unregistered types cannot be resolved."""
    artifact = make_artifact("p1", artifact_type="lesson", schema_version="1", data={})

    with pytest.raises(MigrationError) as exc_info:
        engine.resolve_to_current(artifact)

    assert exc_info.value.code == CoreErrorCode.UNKNOWN_TYPE


@pytest.mark.unit
def test_failing_step_is_wrapped(engine: MigrationEngine) -> None:
    """A step that cannot read its input raises MIGRATION_FAILED."""
    broken = make_legacy_question_data()
    del broken["question_type"]
    artifact = make_artifact("p1", schema_version="1.0.0", data=broken)

    with pytest.raises(MigrationError) as exc_info:
        engine.resolve_to_current(artifact)

    assert exc_info.value.code == CoreErrorCode.MIGRATION_FAILED
    assert isinstance(exc_info.value.__cause__, KeyError)


@pytest.mark.unit
def test_cycle_is_detected() -> None:
    """Transitions that loop back are reported rather than walked forever."""
    registry = _toy_registry("1", "2", "3")
    engine = MigrationEngine(registry)
    engine.register("toy", "1", "2", lambda payload: dict(payload))
    engine.register("toy", "2", "1", lambda payload: dict(payload))
    artifact = make_artifact("p1", artifact_type="toy", schema_version="1", data={})

    with pytest.raises(MigrationError, match="cycle"):
        engine.resolve_to_current(artifact)


@pytest.mark.unit
def test_register_rejects_self_loop_and_duplicates(engine: MigrationEngine) -> None:
    """Each version has at most one outgoing transition and it must move."""
    with pytest.raises(ValueError, match="must change version"):
        engine.register(QUIZ_QUESTION_TYPE, "1.1.0", "1.1.0", _rename)
    with pytest.raises(ValueError, match="already registered"):
        engine.register(QUIZ_QUESTION_TYPE, "1.0.0", "1.1.0", _rename)
