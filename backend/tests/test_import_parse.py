from __future__ import annotations

import pytest

from app.services.import_errors import HeaderMismatchError, InvalidWorkbookError
from app.services.import_parse import header_cells, normalize_row, read_sheet_matrix, to_number, to_text
from app.services.import_template import IMPORT_TEMPLATE_HEADERS
from app.services.import_validate import check_headers, parse_and_validate, validate_matrix, validate_row
from helpers import make_xlsx, site_dict, site_row


def test_to_number_coercion() -> None:
    assert to_number("1,234.5") == 1234.5
    assert to_number(" 12 ") == 12.0
    assert to_number(150) == 150.0
    assert to_number(-78.5) == -78.5
    # Unparsable input is not an error at this stage.
    assert to_number("abc") == 0.0
    assert to_number("") == 0.0
    assert to_number(None) == 0.0
    assert to_number(True) == 0.0
    assert to_number(float("nan")) == 0.0


@pytest.mark.parametrize("raw", ["inf", "-Infinity", "nan", "1e999", "1_000", "0x10", float("inf"), float("-inf")])
def test_to_number_rejects_non_finite_and_non_decimal_text(raw) -> None:
    assert to_number(raw) == 0.0


def test_to_number_accepts_plain_decimal_forms() -> None:
    assert to_number("-78.5") == -78.5
    assert to_number("+12") == 12.0
    assert to_number(".5") == 0.5
    assert to_number("1.5e2") == 150.0


def test_infinite_and_underscored_text_cells_become_zero() -> None:
    result = parse_and_validate(make_xlsx([site_row("S1", STRUCTURE_HEIGHT="inf", LATITUDE="1_0")]))
    row = result.valid_rows[0]
    assert row["STRUCTURE HEIGHT"] == 0.0
    assert row["LATITUDE"] == 0.0


def test_to_text_trims_and_renders_whole_floats() -> None:
    assert to_text("  Cary  ") == "Cary"
    assert to_text(None) == ""
    assert to_text(27513.0) == "27513"
    assert to_text(27513) == "27513"
    assert to_text(12.5) == "12.5"


def test_normalize_row_pads_short_rows() -> None:
    row = normalize_row(["S1", "Name"])
    assert list(row.keys()) == list(IMPORT_TEMPLATE_HEADERS)
    assert row["SITE ID"] == "S1"
    assert row["CITY"] == ""
    assert row["LATITUDE"] == 0.0
    assert row["STRUCTURE HEIGHT"] == 0.0


def test_header_cells_ignores_trailing_blanks() -> None:
    assert header_cells([" SITE ID ", "SITE NAME", None, ""]) == ["SITE ID", "SITE NAME"]


def test_check_headers_accepts_exact_template() -> None:
    check_headers(list(IMPORT_TEMPLATE_HEADERS))


@pytest.mark.parametrize(
    "received",
    [
        list(IMPORT_TEMPLATE_HEADERS)[:-1],
        list(IMPORT_TEMPLATE_HEADERS) + ["EXTRA"],
        ["SITE NAME", "SITE ID"] + list(IMPORT_TEMPLATE_HEADERS)[2:],
        [h.lower() for h in IMPORT_TEMPLATE_HEADERS],
    ],
)
def test_check_headers_rejects_any_mismatch(received: list[str]) -> None:
    with pytest.raises(HeaderMismatchError) as exc:
        check_headers(received)
    assert exc.value.expected == list(IMPORT_TEMPLATE_HEADERS)
    assert exc.value.received == received


def test_validate_row_valid() -> None:
    assert validate_row(site_dict()) == []


def test_validate_row_collects_every_violation() -> None:
    row = site_dict(CITY="", STATE="", LATITUDE=91, LONGITUDE=-181, STRUCTURE_HEIGHT=-1)
    assert validate_row(row) == [
        "CITY is required",
        "STATE is required",
        "LATITUDE must be between -90 and 90",
        "LONGITUDE must be between -180 and 180",
        "STRUCTURE HEIGHT must be >= 0",
    ]


def test_validate_row_bounds_are_inclusive() -> None:
    assert validate_row(site_dict(LATITUDE=90, LONGITUDE=-180, STRUCTURE_HEIGHT=0)) == []
    assert validate_row(site_dict(LATITUDE=-90, LONGITUDE=180)) == []


def test_validate_matrix_partitions_rows_in_order() -> None:
    matrix = [
        list(IMPORT_TEMPLATE_HEADERS),
        site_row("S1"),
        site_row("S2", CITY=""),
        site_row("S3"),
        site_row("S4", LATITUDE=100),
    ]
    result = validate_matrix(matrix)
    assert result.total_rows == 4
    assert [r["SITE ID"] for r in result.valid_rows] == ["S1", "S3"]
    assert [e.row for e in result.errors] == [3, 5]
    assert result.errors[0].messages == ["CITY is required"]
    assert result.total_rows == len(result.valid_rows) + len(result.errors)


def test_validate_matrix_skips_blank_rows_but_keeps_sheet_numbering() -> None:
    matrix = [
        list(IMPORT_TEMPLATE_HEADERS),
        site_row("S1"),
        [None] * len(IMPORT_TEMPLATE_HEADERS),
        site_row("S2", PROVIDER=""),
    ]
    result = validate_matrix(matrix)
    assert result.total_rows == 2
    assert result.errors[0].row == 4


def test_validate_matrix_empty_sheet() -> None:
    result = validate_matrix([])
    assert result.total_rows == 0
    assert result.valid_rows == []
    assert result.errors == []


def test_parse_and_validate_reads_xlsx() -> None:
    content = make_xlsx([site_row("S1"), site_row("S2", SITE_NAME="")])
    result = parse_and_validate(content)
    assert result.total_rows == 2
    assert len(result.valid_rows) == 1
    row = result.valid_rows[0]
    assert row["ZIP CODE"] == "275135123"
    assert row["LATITUDE"] == pytest.approx(35.79)
    assert row["STRUCTURE HEIGHT"] == 150.0
    assert result.errors[0].to_dict() == {"row": 3, "messages": ["SITE NAME is required"]}


def test_parse_and_validate_header_mismatch_processes_no_rows() -> None:
    headers = list(IMPORT_TEMPLATE_HEADERS)
    headers[0] = "SITE"
    with pytest.raises(HeaderMismatchError) as exc:
        parse_and_validate(make_xlsx([site_row("S1")], headers=headers))
    assert exc.value.received[0] == "SITE"


def test_read_sheet_matrix_rejects_garbage() -> None:
    with pytest.raises(InvalidWorkbookError):
        read_sheet_matrix(b"not a workbook")
