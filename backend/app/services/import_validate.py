from __future__ import annotations

"""Header contract and per-row business rules for site uploads.

A header mismatch fails the whole file, because row offsets mean nothing when
the columns disagree. Row problems never stop the batch. Each data row ends up
in exactly one of ``valid_rows`` or ``errors``, both in sheet order.
"""

from dataclasses import dataclass, field
from typing import Any

from app.services.import_errors import HeaderMismatchError
from app.services.import_parse import RowValues, header_cells, is_blank_row, normalize_row, read_sheet_matrix
from app.services.import_template import IMPORT_TEMPLATE_HEADERS, REQUIRED_COLUMNS


@dataclass(frozen=True)
class RowError:
    row: int  # 1-based sheet row; the header is row 1
    messages: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "messages": list(self.messages)}


@dataclass
class ParseResult:
    total_rows: int = 0
    valid_rows: list[RowValues] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)


def check_headers(received: list[str]) -> None:
    expected = list(IMPORT_TEMPLATE_HEADERS)
    if len(received) != len(expected) or any(r != e for r, e in zip(received, expected)):
        raise HeaderMismatchError(expected=expected, received=received)


def validate_row(row: RowValues) -> list[str]:
    messages: list[str] = []
    for column in REQUIRED_COLUMNS:
        if not str(row.get(column, "")).strip():
            messages.append(f"{column} is required")

    lat = float(row.get("LATITUDE", 0.0))
    lon = float(row.get("LONGITUDE", 0.0))
    if lat < -90 or lat > 90:
        messages.append("LATITUDE must be between -90 and 90")
    if lon < -180 or lon > 180:
        messages.append("LONGITUDE must be between -180 and 180")

    if float(row.get("STRUCTURE HEIGHT", 0.0)) < 0:
        messages.append("STRUCTURE HEIGHT must be >= 0")
    return messages


def validate_matrix(matrix: list[list[Any]]) -> ParseResult:
    """Check the header row, then classify every non-blank data row."""
    result = ParseResult()
    if not matrix:
        return result

    check_headers(header_cells(matrix[0]))

    for index, raw in enumerate(matrix[1:], start=2):
        if is_blank_row(raw):
            continue
        row = normalize_row(raw)
        result.total_rows += 1
        messages = validate_row(row)
        if messages:
            result.errors.append(RowError(row=index, messages=messages))
        else:
            result.valid_rows.append(row)
    return result


def parse_and_validate(content: bytes) -> ParseResult:
    return validate_matrix(read_sheet_matrix(content))
