"""Test-only builders for artifacts and payloads. Not part of the public API."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from coursekit.artifacts import (
    Artifact,
    ArtifactMetadata,
    QuestionForm,
    QuizAnswer,
    QuizFeedback,
    QuizQuestionData,
    generate_id,
)
from coursekit.document import from_plain_text

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class StepClock:
    """Deterministic clock: each call returns a time one second later."""

    def __init__(self, start: datetime = FIXED_NOW) -> None:
        self._current = start

    def __call__(self) -> datetime:
        self._current += timedelta(seconds=1)
        return self._current


def make_question_data(
    form: QuestionForm = QuestionForm.MULTIPLE_CHOICE,
    *,
    prompt: str = "Which planet is largest?",
    answers: tuple[str, ...] = ("Mars", "Jupiter", "Venus"),
    correct: tuple[int, ...] = (2,),
) -> QuizQuestionData:
    """Build a question payload; ``correct`` holds 1-based positions."""
    return QuizQuestionData(
        question_form=form,
        prompt=from_plain_text(prompt),
        answers=tuple(
            QuizAnswer(
                id=f"a{position}",
                text=from_plain_text(text),
                is_correct=position in correct,
            )
            for position, text in enumerate(answers, start=1)
        ),
        feedback=QuizFeedback(
            correct=from_plain_text("Well done."),
            incorrect=from_plain_text("Try again."),
        ),
    )


def make_metadata(user: str = "user-1", at: datetime = FIXED_NOW) -> ArtifactMetadata:
    """Build audit metadata with identical created/modified values."""
    return ArtifactMetadata(
        created_by=user, created_at=at, modified_at=at, modified_by=user
    )


def make_artifact(
    project_id: str,
    *,
    artifact_type: str = "quiz-question",
    schema_version: str = "1.1.0",
    data: dict[str, object] | None = None,
    artifact_id: str | None = None,
    user: str = "user-1",
) -> Artifact:
    """Build a stored-shape artifact (defaults to a valid current question)."""
    payload = (
        data
        if data is not None
        else make_question_data().model_dump(mode="json", exclude_none=True)
    )
    return Artifact(
        id=artifact_id or generate_id(),
        project_id=project_id,
        type=artifact_type,
        schema_version=schema_version,
        metadata=make_metadata(user),
        data=payload,
    )


def make_bank_data(
    title: str = "Astronomy", question_ids: tuple[str, ...] = ()
) -> dict[str, object]:
    """Build a stored-shape question-bank payload."""
    return {"title": title, "question_ids": list(question_ids), "settings": {}}


def make_legacy_question_data() -> dict[str, object]:
    """Build a quiz-question payload in the 1.0.0 shape."""
    payload = make_question_data().model_dump(mode="json", exclude_none=True)
    payload["question_type"] = payload.pop("question_form")
    del payload["settings"]
    return payload
