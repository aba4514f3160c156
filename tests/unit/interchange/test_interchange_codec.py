"""Unit tests for quiz-question import/export rows."""

from __future__ import annotations

import logging

import pytest

from coursekit.artifacts import (
    QUESTION_BANK_TYPE,
    Artifact,
    QuestionForm,
    TypeRegistry,
    encode,
)
from coursekit.document import (
    Document,
    Mark,
    Node,
    create_empty,
    extract_plain_text,
    from_plain_text,
    is_empty,
    paragraph,
    text_node,
)
from coursekit.errors import ArtifactValidationError
from coursekit.interchange import (
    COLUMNS,
    ImportResult,
    RowErrorCode,
    export_records,
    import_records,
)
from tests.unit.helpers import (
    FIXED_NOW,
    make_artifact,
    make_bank_data,
    make_legacy_question_data,
    make_question_data,
)


_MC = {
    "Type": "Multiple Choice",
    "Question": "Q",
    "Answer1": "a",
    "Answer2": "b",
    "CorrectAnswer": "1",
}
_TF = {
    "Type": "True/False",
    "Question": "Q",
    "Answer1": "True",
    "Answer2": "False",
    "CorrectAnswer": "1",
}


def _row(**cells: str) -> dict[str, str]:
    """Full-width row with blanks for every column not given."""
    row = dict.fromkeys(COLUMNS, "")
    row.update(cells)
    return row


def _blank_answer_payload() -> dict[str, object]:
    payload = make_question_data().model_dump(mode="json", exclude_none=True)
    payload["answers"][0]["text"] = create_empty().to_json()
    return payload


def _import(rows: list[dict[str, str]]) -> ImportResult:
    return import_records(rows, project_id="p1", created_by="importer", now=FIXED_NOW)


@pytest.mark.unit
def test_true_false_row_imports(registry: TypeRegistry) -> None:
    """A True/False row becomes a current, valid question."""
    # Arrange - one true/false row
    rows = [
        _row(
            Type="True/False",
            Question="Sky is blue.",
            Answer1="True",
            Answer2="False",
            CorrectAnswer="1",
            CorrectFeedback="Yes",
            IncorrectFeedback="No",
        )
    ]

    # Act - import
    result = _import(rows)

    # Assert - one artifact, typed and valid
    assert result.ok
    (question,) = result.artifacts
    assert question.project_id == "p1"
    assert question.schema_version == "1.1.0"
    assert question.metadata.created_by == "importer"
    assert question.metadata.created_at == FIXED_NOW
    assert question.data.question_form == QuestionForm.TRUE_FALSE
    assert [extract_plain_text(a.text) for a in question.data.answers] == ["True", "False"]
    assert question.data.correct_positions() == (1,)
    assert [a.is_correct for a in question.data.answers] == [True, False]
    assert extract_plain_text(question.data.feedback.incorrect) == "No"
    assert registry.validate(encode(question)).ok


@pytest.mark.unit
def test_imported_ids_are_unique() -> None:
    """Each imported question and answer gets a fresh id."""
    rows = [
        _row(**(_MC | {"Question": f"Q{n}", "CorrectAnswer": "2"}))
        for n in range(3)
    ]

    result = _import(rows)

    assert len({q.id for q in result.artifacts}) == 3
    answer_ids = [a.id for q in result.artifacts for a in q.data.answers]
    assert len(set(answer_ids)) == len(answer_ids)


@pytest.mark.unit
@pytest.mark.parametrize(
    "cells,code",
    [
        (_MC | {"Type": "Essay"}, RowErrorCode.UNKNOWN_TYPE),
        (_MC | {"Answer1": "", "Answer2": ""}, RowErrorCode.ANSWER_COUNT),
        (_TF | {"Answer2": ""}, RowErrorCode.ANSWER_COUNT),
        (_MC | {"CorrectAnswer": "one"}, RowErrorCode.CORRECT_ANSWER_INVALID),
        (
            _MC | {"Answer3": "c", "Answer4": "d", "CorrectAnswer": "5"},
            RowErrorCode.CORRECT_INDEX_OUT_OF_RANGE,
        ),
        (_MC | {"CorrectAnswer": "1,2"}, RowErrorCode.CORRECT_COUNT),
        (_MC | {"Type": "Multiple Response", "CorrectAnswer": ""}, RowErrorCode.CORRECT_COUNT),
        (_TF | {"CorrectAnswer": "0"}, RowErrorCode.CORRECT_INDEX_OUT_OF_RANGE),
    ],
    ids=[
        "unknown_type",
        "no_answers",
        "true_false_one_answer",
        "non_numeric_correct",
        "correct_beyond_answers",
        "single_correct_twice",
        "multi_correct_none",
        "zero_index",
    ],
)
def test_bad_rows_are_reported(cells: dict[str, str], code: RowErrorCode) -> None:
    """Each rejection reason maps to a stable code."""
    result = _import([_row(**cells)])

    assert result.artifacts == ()
    assert [(e.row, e.code) for e in result.errors] == [(1, code)]


@pytest.mark.unit
def test_bad_rows_do_not_block_good_rows(caplog: pytest.LogCaptureFixture) -> None:
    """A rejected row is reported by number while its neighbours import."""
    # Arrange - good, bad, good
    good = _row(**_MC)
    bad = _row(**(_MC | {"Type": "Matching"}))

    # Act - import and capture logs
    with caplog.at_level(logging.INFO, logger="coursekit.interchange.codec"):
        result = _import([good, bad, good])

    # Assert - two imported, row 2 rejected and logged
    assert len(result.artifacts) == 2
    assert not result.ok
    assert [(e.row, e.code) for e in result.errors] == [(2, RowErrorCode.UNKNOWN_TYPE)]
    assert "row 2 rejected" in caplog.text
    assert "imported 2 of 3 rows" in caplog.text


@pytest.mark.unit
def test_blank_answer_cells_are_skipped() -> None:
    """Blank answer cells are skipped; CorrectAnswer still names columns."""
    row = _row(
        Type="Multiple Choice",
        Question="Pick c",
        Answer1="a",
        Answer2="",
        Answer3="c",
        CorrectAnswer="3",
    )

    (question,) = _import([row]).artifacts

    assert [extract_plain_text(a.text) for a in question.data.answers] == ["a", "c"]
    assert question.data.correct_positions() == (2,)


@pytest.mark.unit
def test_correct_answer_pointing_at_blank_column_is_rejected() -> None:
    """An index naming a blank answer cell is out of range."""
    row = _row(**(_MC | {"Answer2": "", "Answer3": "c", "CorrectAnswer": "2"}))

    result = _import([row])

    assert result.errors[0].code == RowErrorCode.CORRECT_INDEX_OUT_OF_RANGE


@pytest.mark.unit
def test_multiline_cells_become_paragraphs() -> None:
    """Newlines inside a cell become paragraph boundaries."""
    row = _row(
        Type="Multiple Response",
        Question="Line one\nLine two",
        Answer1="a",
        Answer2="b",
        CorrectAnswer="1, 2",
    )

    (question,) = _import([row]).artifacts

    assert len(question.data.prompt.content) == 2
    assert question.data.correct_positions() == (1, 2)


@pytest.mark.unit
def test_extra_answer_columns_import_and_export() -> None:
    """Answer5 and beyond are accepted on import and emitted on export."""
    row = _row(
        Type="Multiple Response",
        Question="Primes?",
        Answer1="2",
        Answer2="4",
        Answer3="5",
        Answer4="6",
        CorrectAnswer="1,3,5",
    )
    row["Answer5"] = "7"

    (question,) = _import([row]).artifacts
    (exported,) = export_records([question])

    assert len(question.data.answers) == 5
    assert exported["Answer5"] == "7"
    assert exported["CorrectAnswer"] == "1,3,5"


@pytest.mark.unit
def test_export_flattens_and_pads() -> None:
    """Export writes every column, pads answers to four, sorts positions."""
    artifact = make_artifact(
        "p1",
        data=make_question_data(
            QuestionForm.MULTIPLE_RESPONSE,
            prompt="Gas giants?",
            answers=("Mars", "Jupiter", "Saturn"),
            correct=(3, 2),
        ).model_dump(mode="json", exclude_none=True),
    )

    (row,) = export_records([artifact])

    assert list(row) == list(COLUMNS)
    assert row["Type"] == "Multiple Response"
    assert row["Question"] == "Gas giants?"
    assert row["Answer4"] == ""
    assert row["CorrectAnswer"] == "2,3"
    assert row["CorrectFeedback"] == "Well done."


@pytest.mark.unit
def test_import_then_export_preserves_rows() -> None:
    """Plain-text rows survive import followed by export."""
    rows = [
        _row(**(_TF | {"Question": "Water is wet.", "CorrectAnswer": "2"})),
        _row(
            Type="Multiple Choice",
            Question="Largest planet?\nPick one.",
            Answer1="Mars",
            Answer2="Jupiter",
            Answer3="Venus",
            Answer4="Earth",
            CorrectAnswer="2",
            CorrectFeedback="Yes.",
            IncorrectFeedback="No.",
        ),
        _row(
            Type="Multiple Response",
            Question="Even?",
            Answer1="2",
            Answer2="4",
            CorrectAnswer="1,2",
        ),
    ]

    exported = export_records(_import(rows).artifacts)

    assert exported == rows


@pytest.mark.unit
@pytest.mark.parametrize(
    "artifact",
    [
        make_artifact(
            "p1",
            artifact_type=QUESTION_BANK_TYPE,
            schema_version="1.0.0",
            data=make_bank_data(),
        ),
        make_artifact("p1", schema_version="1.0.0", data=make_legacy_question_data()),
        make_artifact("p1", data={"question_form": "true_false"}),
        make_artifact("p1", data=_blank_answer_payload()),
    ],
    ids=["bank", "legacy_question", "invalid_payload", "blank_answer"],
)
def test_export_rejects_non_current_questions(artifact: Artifact) -> None:
    """Only current, valid quiz questions can be exported."""
    with pytest.raises(ArtifactValidationError):
        export_records([artifact])


@pytest.mark.unit
@pytest.mark.parametrize(
    "form,answers,correct",
    [
        (QuestionForm.TRUE_FALSE, ("True", "False"), (2,)),
        (QuestionForm.MULTIPLE_CHOICE, ("a", "b", "c", "d"), (4,)),
        (QuestionForm.MULTIPLE_RESPONSE, ("a", "b", "c", "d", "e", "f"), (1, 5, 6)),
    ],
)
def test_export_then_import_preserves_question_semantics(
    form: QuestionForm, answers: tuple[str, ...], correct: tuple[int, ...]
) -> None:
    """Form, answer count, correct positions and plain text survive a round trip."""
    # Arrange - question with a two-paragraph prompt
    original = make_question_data(form, prompt="Pick\nwisely", answers=answers, correct=correct)

    # Act - export then import
    (row,) = export_records([make_artifact("p1", data=original.model_dump(mode="json"))])
    (restored,) = _import([row]).artifacts

    # Assert - semantics preserved
    data = restored.data
    assert data.question_form == original.question_form
    assert len(data.answers) == len(original.answers)
    assert data.correct_positions() == original.correct_positions()
    assert extract_plain_text(data.prompt) == "Pick\nwisely"
    assert [extract_plain_text(a.text) for a in data.answers] == list(answers)
    assert extract_plain_text(data.feedback.correct) == "Well done."
    assert extract_plain_text(data.feedback.incorrect) == "Try again."


@pytest.mark.unit
def test_blank_question_cell_imports_as_empty_prompt() -> None:
    """A blank Question cell is not a row error; the prompt is just empty."""
    result = _import([_row(**(_MC | {"Question": ""}))])

    assert result.ok
    (question,) = result.artifacts
    assert question.data.prompt == create_empty()


@pytest.mark.unit
def test_empty_prompt_survives_round_trip() -> None:
    """A valid question with an empty prompt exports and imports cleanly."""
    # Arrange - valid question whose prompt is the empty document
    data = make_question_data().model_copy(update={"prompt": create_empty()})
    artifact = make_artifact("p1", data=data.model_dump(mode="json"))

    # Act - export then import
    result = _import(export_records([artifact]))

    # Assert - imported with the same semantics
    assert result.ok
    (restored,) = result.artifacts
    assert is_empty(restored.data.prompt)
    assert len(restored.data.answers) == len(data.answers)
    assert restored.data.correct_positions() == data.correct_positions()


@pytest.mark.unit
def test_round_trip_drops_marks_and_block_structure() -> None:
    """Formatting and lists flatten to one plain paragraph per line."""
    # Arrange - bold heading followed by a two-item list
    rich = Document(
        content=(
            Node(type="heading", content=(text_node("Planets", (Mark(type="bold"),)),)),
            Node(
                type="bulletList",
                content=(
                    Node(type="listItem", content=(paragraph(text_node("Mars")),)),
                    Node(type="listItem", content=(paragraph(text_node("Venus")),)),
                ),
            ),
        )
    )
    data = make_question_data().model_copy(update={"prompt": rich})
    artifact = make_artifact("p1", data=data.model_dump(mode="json", exclude_none=True))

    # Act - export then import
    (row,) = export_records([artifact])
    (restored,) = _import([row]).artifacts

    # Assert - text kept line by line, structure and marks gone
    assert row["Question"] == "Planets\nMars\nVenus"
    assert restored.data.prompt == from_plain_text("Planets\nMars\nVenus")
    assert restored.data.prompt != rich
    assert restored.data.correct_positions() == data.correct_positions()
