from __future__ import annotations

"""Read an uploaded workbook and normalize its rows.

Nothing here rejects a row. Values are only coerced into a uniform shape:
three numeric columns become floats and everything else becomes a trimmed
string. Validation happens afterwards in ``import_validate``.
"""

import io
import math
import re
import zipfile
from datetime import date, datetime, time
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from app.services.import_errors import InvalidWorkbookError
from app.services.import_template import IMPORT_TEMPLATE_HEADERS, NUMERIC_COLUMNS

RowValues = dict[str, str | float]

# Plain decimal text. Rejects "inf", "nan" and "1_000", which float() accepts.
_DECIMAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def read_sheet_matrix(content: bytes) -> list[list[Any]]:
    """Return the raw cell values of the first worksheet, one list per sheet row."""
    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
        raise InvalidWorkbookError(f"Could not read workbook: {e}") from e
    try:
        if not wb.worksheets:
            return []
        sheet = wb.worksheets[0]
        return [list(values) for values in sheet.iter_rows(values_only=True)]
    finally:
        wb.close()


def to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        # Excel hands whole numbers back as floats; ZIP 27513.0 should read "27513".
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value).strip()


def to_number(value: Any) -> float:
    """Coerce a cell to a float. Anything unparsable becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        raw = str(value).replace(",", "").strip()
        if not _DECIMAL.fullmatch(raw):
            return 0.0
        number = float(raw)
    return number if math.isfinite(number) else 0.0


def header_cells(raw: list[Any]) -> list[str]:
    """Trimmed header names, ignoring empty cells past the last named column."""
    cells = [to_text(v) for v in raw]
    while cells and cells[-1] == "":
        cells.pop()
    return cells


def is_blank_row(raw: list[Any]) -> bool:
    return all(to_text(v) == "" for v in raw)


def normalize_row(raw: list[Any]) -> RowValues:
    """Map a data row onto the template columns by position."""
    row: RowValues = {}
    for index, header in enumerate(IMPORT_TEMPLATE_HEADERS):
        value = raw[index] if index < len(raw) else None
        if header in NUMERIC_COLUMNS:
            row[header] = to_number(value)
        else:
            row[header] = to_text(value)
    return row
