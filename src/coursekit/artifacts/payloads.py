"""Payload models for the built-in artifact types."""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from coursekit.artifacts.models import ArtifactEnvelope, is_of_type
from coursekit.document import Document, create_empty, is_empty

QUIZ_QUESTION_TYPE = "quiz-question"
QUESTION_BANK_TYPE = "question-bank"

QUIZ_QUESTION_V1_0 = "1.0.0"
QUIZ_QUESTION_V1_1 = "1.1.0"
QUESTION_BANK_V1_0 = "1.0.0"


class QuestionForm(StrEnum):
    """Closed set of question forms."""

    MULTIPLE_CHOICE = "multiple_choice"
    MULTIPLE_RESPONSE = "multiple_response"
    TRUE_FALSE = "true_false"


class QuizAnswer(BaseModel):
    """One selectable answer."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    text: Document
    is_correct: bool = False


class QuizFeedback(BaseModel):
    """Feedback shown after answering."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    correct: Document = Field(default_factory=create_empty)
    incorrect: Document = Field(default_factory=create_empty)


class QuizQuestionSettings(BaseModel):
    """Optional per-question scoring settings."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    points: float | None = Field(default=None, ge=0)
    attempts: int | None = Field(default=None, ge=1)
    randomize: bool | None = None


def check_answer_rules(form: QuestionForm, answers: Sequence[QuizAnswer]) -> None:
    """Enforce the answer rules for a question form.

    Args:
        form: Question form.
        answers: Ordered answers.

    Raises:
        ValueError: If the answers violate the rules for ``form``.
    """
    ids = [answer.id for answer in answers]
    if len(set(ids)) != len(ids):
        raise ValueError("answer ids must be unique within a question.")
    blank = [
        position
        for position, answer in enumerate(answers, start=1)
        if is_empty(answer.text)
    ]
    if blank:
        raise ValueError(f"answers must have text; blank at positions {blank}.")
    correct = sum(1 for answer in answers if answer.is_correct)
    if form == QuestionForm.TRUE_FALSE:
        if len(answers) != 2:
            raise ValueError(
                f"true_false questions need exactly 2 answers, got {len(answers)}."
            )
        if correct != 1:
            raise ValueError(
                f"true_false questions need exactly 1 correct answer, got {correct}."
            )
    elif form == QuestionForm.MULTIPLE_CHOICE:
        if correct != 1:
            raise ValueError(
                f"multiple_choice questions need exactly 1 correct answer, got {correct}."
            )
    elif correct < 1:
        raise ValueError("multiple_response questions need at least 1 correct answer.")


class QuizQuestionData(BaseModel):
    """Quiz question payload, schema 1.1.0 (current)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    question_form: QuestionForm
    prompt: Document
    answers: tuple[QuizAnswer, ...]
    feedback: QuizFeedback = Field(default_factory=QuizFeedback)
    settings: QuizQuestionSettings = Field(default_factory=QuizQuestionSettings)

    @model_validator(mode="after")
    def _validate_answers(self) -> QuizQuestionData:
        check_answer_rules(self.question_form, self.answers)
        return self

    def correct_positions(self) -> tuple[int, ...]:
        """Return 1-based positions of correct answers, ascending."""
        return tuple(
            position
            for position, answer in enumerate(self.answers, start=1)
            if answer.is_correct
        )


class QuizQuestionDataV1_0(BaseModel):
    """Quiz question payload, schema 1.0.0 (first release shape)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    question_type: QuestionForm
    prompt: Document
    answers: tuple[QuizAnswer, ...]
    feedback: QuizFeedback = Field(default_factory=QuizFeedback)
    settings: QuizQuestionSettings | None = None

    @model_validator(mode="after")
    def _validate_answers(self) -> QuizQuestionDataV1_0:
        check_answer_rules(self.question_type, self.answers)
        return self


class QuestionBankSettings(BaseModel):
    """Optional bank-level grading settings."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    passing_grade: float | None = Field(default=None, ge=0, le=100)
    attempts_allowed: int | None = Field(default=None, ge=1)


class QuestionBankData(BaseModel):
    """Question bank payload, schema 1.0.0. Questions are referenced by id."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    title: str = Field(min_length=1)
    description: str | None = None
    question_ids: tuple[str, ...] = ()
    settings: QuestionBankSettings = Field(default_factory=QuestionBankSettings)

    @model_validator(mode="after")
    def _validate_question_ids(self) -> QuestionBankData:
        if len(set(self.question_ids)) != len(self.question_ids):
            raise ValueError("question_ids must not contain duplicates.")
        return self


QuizQuestion = ArtifactEnvelope[QuizQuestionData]
QuestionBank = ArtifactEnvelope[QuestionBankData]


def is_quiz_question(artifact: ArtifactEnvelope[Any]) -> bool:
    """True when the artifact carries a quiz-question payload."""
    return is_of_type(artifact, QUIZ_QUESTION_TYPE)


def is_question_bank(artifact: ArtifactEnvelope[Any]) -> bool:
    """True when the artifact carries a question-bank payload."""
    return is_of_type(artifact, QUESTION_BANK_TYPE)
