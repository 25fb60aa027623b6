from __future__ import annotations

"""Upload phase: validate a spreadsheet and stage the result as a pending batch."""

import logging
import os
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from app.config import ImportSettings
from app.db.repository import get_project, stage_batch
from app.services.import_errors import (
    EmptyUploadError,
    ProjectNotFoundError,
    UnsupportedFileTypeError,
    UploadTooLargeError,
)
from app.services.import_validate import ParseResult, parse_and_validate

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".xlsx"}


@dataclass(frozen=True)
class StagedBatch:
    batch_id: str
    total_rows: int
    valid_row_count: int
    error_row_count: int
    stored_valid_rows: int
    stored_error_rows: int
    valid_rows_truncated: bool
    error_details_truncated: bool
    errors: list[dict[str, Any]]
    preview: list[dict[str, Any]]


def check_upload(filename: str | None, content: bytes, settings: ImportSettings) -> None:
    """File-level checks done before any parsing."""
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise UnsupportedFileTypeError(filename)
    if not content:
        raise EmptyUploadError()
    if len(content) > settings.upload_max_bytes:
        raise UploadTooLargeError(size=len(content), limit=settings.upload_max_bytes)


def stage_parse_result(
    db: Session,
    *,
    project_id: str,
    uploaded_by: str,
    filename: str,
    import_name: str | None,
    parsed: ParseResult,
    settings: ImportSettings,
) -> StagedBatch:
    """Persist an already-validated parse result as a pending batch."""
    error_details = [e.to_dict() for e in parsed.errors]
    rec = stage_batch(
        db,
        project_id=project_id,
        uploaded_by=uploaded_by,
        filename=filename,
        import_name=(import_name or "").strip() or None,
        total_rows=parsed.total_rows,
        valid_rows=parsed.valid_rows,
        error_details=error_details,
        max_valid_rows=settings.max_valid_rows,
        max_error_details=settings.max_error_details,
    )

    stored_valid = min(len(parsed.valid_rows), max(0, settings.max_valid_rows))
    stored_errors = min(len(error_details), max(0, settings.max_error_details))
    if rec.valid_rows_truncated or rec.error_details_truncated:
        logger.warning(
            "batch %s truncated: stored %d/%d valid rows, %d/%d error details",
            rec.batch_id,
            stored_valid,
            len(parsed.valid_rows),
            stored_errors,
            len(error_details),
        )
    logger.info(
        "staged batch %s for project %s: total=%d valid=%d errors=%d",
        rec.batch_id,
        project_id,
        parsed.total_rows,
        len(parsed.valid_rows),
        len(error_details),
    )

    return StagedBatch(
        batch_id=rec.batch_id,
        total_rows=parsed.total_rows,
        valid_row_count=len(parsed.valid_rows),
        error_row_count=len(error_details),
        stored_valid_rows=stored_valid,
        stored_error_rows=stored_errors,
        valid_rows_truncated=rec.valid_rows_truncated,
        error_details_truncated=rec.error_details_truncated,
        errors=error_details[: settings.error_preview_limit],
        preview=[dict(r) for r in parsed.valid_rows[: settings.row_preview_limit]],
    )


def stage_upload(
    db: Session,
    *,
    project_id: str,
    uploaded_by: str,
    filename: str | None,
    content: bytes,
    import_name: str | None,
    settings: ImportSettings,
) -> StagedBatch:
    """Validate an uploaded workbook and stage it.

    Raises a file-level ``ImportPipelineError`` (wrong type, empty, too large,
    unreadable, header mismatch) before anything is stored.
    """
    if get_project(db, project_id) is None:
        raise ProjectNotFoundError(project_id)
    check_upload(filename, content, settings)
    parsed = parse_and_validate(content)
    return stage_parse_result(
        db,
        project_id=project_id,
        uploaded_by=uploaded_by,
        filename=filename or "",
        import_name=import_name,
        parsed=parsed,
        settings=settings,
    )
