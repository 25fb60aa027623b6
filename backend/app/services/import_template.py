from __future__ import annotations

"""The site import template: column contract and downloadable workbook."""

import io

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.datavalidation import DataValidation

# Exact, ordered header row every upload must carry.
IMPORT_TEMPLATE_HEADERS: tuple[str, ...] = (
    "SITE ID",
    "SITE NAME",
    "AREA NAME",
    "DISTRICT NAME",
    "PROVIDER",
    "PROVIDER RESIDENT",
    "ADDRESS",
    "CITY",
    "COUNTY",
    "STATE",
    "ZIP CODE",
    "CMA ID",
    "CMA NAME",
    "STRUCTURE TYPE",
    "SITE TYPE",
    "GE",
    "STRUCTURE HEIGHT",
    "LATITUDE",
    "LONGITUDE",
    "SITE ALT ID",
)

NUMERIC_COLUMNS: frozenset[str] = frozenset({"STRUCTURE HEIGHT", "LATITUDE", "LONGITUDE"})

REQUIRED_COLUMNS: tuple[str, ...] = (
    "SITE ID",
    "SITE NAME",
    "PROVIDER",
    "ADDRESS",
    "CITY",
    "STATE",
    "ZIP CODE",
    "STRUCTURE TYPE",
)

STRUCTURE_TYPES: tuple[str, ...] = (
    "Monopole",
    "Self Support Tower",
    "Guyed Tower",
    "Rooftop",
    "Water Tank",
    "Utility Pole",
    "Stealth",
    "Small Cell",
    "Other",
)

PROVIDER_RESIDENT_OPTIONS: tuple[str, ...] = ("Yes", "No")

US_STATES: tuple[str, ...] = (
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "DC", "FL", "GA", "HI", "ID", "IL", "IN", "IA",
    "KS", "KY", "LA", "ME", "MD", "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ", "NM",
    "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC", "SD", "TN", "TX", "UT", "VT", "VA", "WA",
    "WV", "WI", "WY",
)

# Data validation ranges cover this many data rows below the header.
_VALIDATION_LAST_ROW = 1000

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def build_import_template() -> bytes:
    """Build the upload template.

    Sheet "Sites" holds the bold, frozen header row. A hidden "Lists" sheet
    feeds dropdowns for STRUCTURE TYPE, PROVIDER RESIDENT and STATE.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = "Sites"
    ws.append(list(IMPORT_TEMPLATE_HEADERS))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    ws.freeze_panes = "A2"

    lists = wb.create_sheet("Lists")
    lists.sheet_state = "hidden"

    ranges: dict[str, str] = {}
    row = 1
    for title, options in (
        ("STRUCTURE TYPE", STRUCTURE_TYPES),
        ("PROVIDER RESIDENT", PROVIDER_RESIDENT_OPTIONS),
        ("STATE", US_STATES),
    ):
        lists.cell(row=row, column=1, value=title)
        start = row + 1
        for offset, option in enumerate(options):
            lists.cell(row=start + offset, column=1, value=option)
        end = start + len(options) - 1
        ranges[title] = f"Lists!$A${start}:$A${end}"
        row = end + 2

    for col_index, header in enumerate(IMPORT_TEMPLATE_HEADERS, start=1):
        if header not in ranges:
            continue
        letter = get_column_letter(col_index)
        dv = DataValidation(type="list", formula1=ranges[header], allow_blank=True)
        dv.add(f"{letter}2:{letter}{_VALIDATION_LAST_ROW}")
        ws.add_data_validation(dv)

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
