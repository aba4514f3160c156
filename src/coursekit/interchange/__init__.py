"""Spreadsheet interchange for quiz questions."""

from coursekit.interchange.codec import (
    COLUMNS,
    FORM_LABELS,
    TYPE_LABELS,
    ImportResult,
    RowError,
    RowErrorCode,
    export_records,
    import_records,
)
from coursekit.interchange.csv_files import read_rows, write_rows

__all__ = [
    "COLUMNS",
    "FORM_LABELS",
    "TYPE_LABELS",
    "ImportResult",
    "RowError",
    "RowErrorCode",
    "export_records",
    "import_records",
    "read_rows",
    "write_rows",
]
