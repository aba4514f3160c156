"""CSV files in the interchange layout (UTF-8, header row)."""

from __future__ import annotations

import csv
from collections.abc import Mapping, Sequence
from pathlib import Path

from coursekit.interchange.codec import (
    ANSWER_COLUMN_PREFIX,
    COLUMNS,
    CORRECT_ANSWER_COLUMN,
)


def read_rows(path: Path) -> list[dict[str, str]]:
    """Read interchange rows from a CSV file.

    A UTF-8 byte-order mark is tolerated. Cells beyond the header and
    missing trailing cells are dropped or read as blank.

    Args:
        path: CSV file path.

    Returns:
        One mapping per data row, keyed by header.

    Raises:
        OSError: If the file cannot be opened.
        UnicodeDecodeError: If the file is not UTF-8 text.
        csv.Error: If the CSV structure is malformed.
    """
    with path.open(encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        return [
            {key.strip(): value or "" for key, value in row.items() if key is not None}
            for row in reader
        ]


def write_rows(path: Path, rows: Sequence[Mapping[str, str]]) -> None:
    """Write interchange rows to a CSV file with the standard header order.

    Extra answer columns (``Answer5`` and up) are placed after ``Answer4``.

    Args:
        path: Target CSV file path.
        rows: Rows produced by ``export_records``.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fieldnames = _fieldnames(rows)
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=fieldnames, restval="")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


def _fieldnames(rows: Sequence[Mapping[str, str]]) -> list[str]:
    extra = sorted(
        {
            key
            for row in rows
            for key in row
            if key not in COLUMNS
            and key.startswith(ANSWER_COLUMN_PREFIX)
            and key[len(ANSWER_COLUMN_PREFIX) :].isdecimal()
        },
        key=lambda key: int(key[len(ANSWER_COLUMN_PREFIX) :]),
    )
    split = COLUMNS.index(CORRECT_ANSWER_COLUMN)
    return [*COLUMNS[:split], *extra, *COLUMNS[split:]]
