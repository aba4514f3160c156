"""Quiz question interchange: flat spreadsheet rows <-> quiz-question artifacts.

Row layout (one question per row)::

    Type, Question, Answer1, Answer2, Answer3, Answer4,
    CorrectAnswer, CorrectFeedback, IncorrectFeedback

Prose fields cross the boundary as plain text. Export projects rich text
with ``extract_plain_text`` and import rebuilds it with ``from_plain_text``,
so formatting and non-paragraph structure never survive a round trip; the
question form, answer count, correct positions and plain text do. A blank
Question cell imports as the empty document. Blank answer cells are skipped;
valid payloads never carry a blank answer, so export never writes one
between filled cells.

Both functions are pure: no storage access, no shared state.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from coursekit.artifacts.models import (
    ArtifactEnvelope,
    ArtifactMetadata,
    generate_id,
    utc_now,
)
from coursekit.artifacts.payloads import (
    QUIZ_QUESTION_TYPE,
    QUIZ_QUESTION_V1_1,
    QuestionForm,
    QuizAnswer,
    QuizFeedback,
    QuizQuestion,
    QuizQuestionData,
)
from coursekit.document import extract_plain_text, from_plain_text
from coursekit.errors import ArtifactValidationError, CoreErrorCode

_LOGGER = logging.getLogger(__name__)

TYPE_COLUMN = "Type"
QUESTION_COLUMN = "Question"
CORRECT_ANSWER_COLUMN = "CorrectAnswer"
CORRECT_FEEDBACK_COLUMN = "CorrectFeedback"
INCORRECT_FEEDBACK_COLUMN = "IncorrectFeedback"
ANSWER_COLUMN_PREFIX = "Answer"
STANDARD_ANSWER_COLUMNS = 4

COLUMNS = (
    TYPE_COLUMN,
    QUESTION_COLUMN,
    *(f"{ANSWER_COLUMN_PREFIX}{n}" for n in range(1, STANDARD_ANSWER_COLUMNS + 1)),
    CORRECT_ANSWER_COLUMN,
    CORRECT_FEEDBACK_COLUMN,
    INCORRECT_FEEDBACK_COLUMN,
)

TYPE_LABELS: Mapping[str, QuestionForm] = {
    "Multiple Choice": QuestionForm.MULTIPLE_CHOICE,
    "Multiple Response": QuestionForm.MULTIPLE_RESPONSE,
    "True/False": QuestionForm.TRUE_FALSE,
}
FORM_LABELS: Mapping[QuestionForm, str] = {form: label for label, form in TYPE_LABELS.items()}

_ANSWER_COLUMN = re.compile(rf"^{ANSWER_COLUMN_PREFIX}(\d+)$")

type TabularRow = Mapping[str, str | None]


class RowErrorCode(StrEnum):
    """Stable reasons a row is rejected on import."""

    UNKNOWN_TYPE = "unknown_type"
    ANSWER_COUNT = "answer_count"
    CORRECT_ANSWER_INVALID = "correct_answer_invalid"
    CORRECT_INDEX_OUT_OF_RANGE = "correct_index_out_of_range"
    CORRECT_COUNT = "correct_count"
    INVALID_QUESTION = "invalid_question"


class RowError(BaseModel):
    """One rejected row. Collected, never raised."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    row: int = Field(ge=1)
    code: RowErrorCode
    message: str


class ImportResult(BaseModel):
    """Imported questions plus per-row failures."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    artifacts: tuple[QuizQuestion, ...] = ()
    errors: tuple[RowError, ...] = ()

    @property
    def ok(self) -> bool:
        """True when every row imported."""
        return not self.errors


class _RowRejected(Exception):
    """Internal signal carrying the row-level failure."""

    def __init__(self, code: RowErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code


def import_records(
    rows: Sequence[TabularRow],
    *,
    project_id: str,
    created_by: str,
    now: datetime | None = None,
) -> ImportResult:
    """Convert interchange rows into quiz-question artifacts.

    Bad rows are isolated: each is reported with its 1-based row number and
    a reason code, and the remaining rows still import.

    Args:
        rows: Rows keyed by column header; missing keys read as blank.
        project_id: Project that will own the new artifacts.
        created_by: User recorded in the audit metadata.
        now: Timestamp for the audit metadata; defaults to the current time.

    Returns:
        Imported artifacts (current schema) and row errors.
    """
    timestamp = now or utc_now()
    metadata = ArtifactMetadata(
        created_by=created_by,
        created_at=timestamp,
        modified_at=timestamp,
        modified_by=created_by,
    )
    artifacts: list[QuizQuestion] = []
    errors: list[RowError] = []
    for row_number, row in enumerate(rows, start=1):
        try:
            data = _row_to_question(row)
        except _RowRejected as exc:
            _LOGGER.warning("row %d rejected (%s): %s", row_number, exc.code, exc)
            errors.append(RowError(row=row_number, code=exc.code, message=str(exc)))
            continue
        artifacts.append(
            QuizQuestion(
                id=generate_id(),
                project_id=project_id,
                type=QUIZ_QUESTION_TYPE,
                schema_version=QUIZ_QUESTION_V1_1,
                metadata=metadata,
                data=data,
            )
        )
    _LOGGER.info(
        "imported %d of %d rows (%d rejected)", len(artifacts), len(rows), len(errors)
    )
    return ImportResult(artifacts=tuple(artifacts), errors=tuple(errors))


def export_records(artifacts: Sequence[ArtifactEnvelope[Any]]) -> list[dict[str, str]]:
    """Convert quiz-question artifacts into interchange rows.

    Rich text is flattened with ``extract_plain_text``. Questions with more
    than four answers emit extra ``Answer5``.. keys after ``Answer4``.

    Args:
        artifacts: Quiz questions, typed or as stored (current schema).

    Returns:
        One row per artifact, keys in column order.

    Raises:
        ArtifactValidationError: If an artifact is not a current, valid
            quiz question.
    """
    rows = [_question_to_row(_question_data(artifact)) for artifact in artifacts]
    _LOGGER.info("exported %d questions", len(rows))
    return rows


def _cell(row: TabularRow, column: str) -> str:
    value = row.get(column)
    return "" if value is None else str(value)


def _answer_cells(row: TabularRow) -> dict[int, str]:
    """Return non-blank answer cells keyed by 1-based column number."""
    cells: dict[int, str] = {}
    for key in row:
        match = _ANSWER_COLUMN.match(key) if isinstance(key, str) else None
        if match is None:
            continue
        text = _cell(row, key)
        if text.strip():
            cells[int(match.group(1))] = text
    return dict(sorted(cells.items()))


def _parse_correct(raw: str) -> list[int]:
    indices: list[int] = []
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        if not token.isdecimal():
            raise _RowRejected(
                RowErrorCode.CORRECT_ANSWER_INVALID,
                f"CorrectAnswer has a non-numeric entry {token!r}.",
            )
        index = int(token)
        if index not in indices:
            indices.append(index)
    return indices


def _row_to_question(row: TabularRow) -> QuizQuestionData:
    label = _cell(row, TYPE_COLUMN).strip()
    form = TYPE_LABELS.get(label)
    if form is None:
        raise _RowRejected(RowErrorCode.UNKNOWN_TYPE, f"Unknown question type {label!r}.")

    answers = _answer_cells(row)
    if not answers:
        raise _RowRejected(RowErrorCode.ANSWER_COUNT, "Row has no answers.")
    if form == QuestionForm.TRUE_FALSE and len(answers) != 2:
        raise _RowRejected(
            RowErrorCode.ANSWER_COUNT,
            f"True/False needs exactly 2 answers, got {len(answers)}.",
        )

    correct = _parse_correct(_cell(row, CORRECT_ANSWER_COLUMN))
    out_of_range = [index for index in correct if index not in answers]
    if out_of_range:
        raise _RowRejected(
            RowErrorCode.CORRECT_INDEX_OUT_OF_RANGE,
            f"CorrectAnswer {out_of_range} does not match a filled answer column.",
        )
    if form == QuestionForm.MULTIPLE_RESPONSE:
        count_ok = len(correct) >= 1
    else:
        count_ok = len(correct) == 1
    if not count_ok:
        raise _RowRejected(
            RowErrorCode.CORRECT_COUNT,
            f"{label} cannot have {len(correct)} correct answers.",
        )

    try:
        return QuizQuestionData(
            question_form=form,
            prompt=from_plain_text(_cell(row, QUESTION_COLUMN)),
            answers=tuple(
                QuizAnswer(
                    id=generate_id(),
                    text=from_plain_text(text),
                    is_correct=column in correct,
                )
                for column, text in answers.items()
            ),
            feedback=QuizFeedback(
                correct=from_plain_text(_cell(row, CORRECT_FEEDBACK_COLUMN)),
                incorrect=from_plain_text(_cell(row, INCORRECT_FEEDBACK_COLUMN)),
            ),
        )
    except PydanticValidationError as exc:
        raise _RowRejected(RowErrorCode.INVALID_QUESTION, str(exc)) from exc


def _question_data(artifact: ArtifactEnvelope[Any]) -> QuizQuestionData:
    if artifact.type != QUIZ_QUESTION_TYPE or artifact.schema_version != QUIZ_QUESTION_V1_1:
        raise ArtifactValidationError(
            f"Artifact {artifact.id!r} ({artifact.type} {artifact.schema_version}) "
            f"is not a current quiz question",
            code=CoreErrorCode.VALIDATION_FAILED,
            data={"artifact_id": artifact.id},
        )
    if isinstance(artifact.data, QuizQuestionData):
        return artifact.data
    try:
        return QuizQuestionData.model_validate(artifact.data)
    except PydanticValidationError as exc:
        raise ArtifactValidationError(
            f"Artifact {artifact.id!r} has an invalid quiz question payload: {exc}",
            code=CoreErrorCode.VALIDATION_FAILED,
            data={"artifact_id": artifact.id},
        ) from exc


def _question_to_row(data: QuizQuestionData) -> dict[str, str]:
    row = {
        TYPE_COLUMN: FORM_LABELS[data.question_form],
        QUESTION_COLUMN: extract_plain_text(data.prompt),
    }
    answer_columns = max(STANDARD_ANSWER_COLUMNS, len(data.answers))
    texts = [extract_plain_text(answer.text) for answer in data.answers]
    for position in range(1, answer_columns + 1):
        row[f"{ANSWER_COLUMN_PREFIX}{position}"] = (
            texts[position - 1] if position <= len(texts) else ""
        )
    row[CORRECT_ANSWER_COLUMN] = ",".join(str(p) for p in data.correct_positions())
    row[CORRECT_FEEDBACK_COLUMN] = extract_plain_text(data.feedback.correct)
    row[INCORRECT_FEEDBACK_COLUMN] = extract_plain_text(data.feedback.incorrect)
    return row
