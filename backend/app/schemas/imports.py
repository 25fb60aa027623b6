from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

BatchStatus = Literal["pending", "committed", "partial"]


class RowErrorOut(BaseModel):
    row: int
    messages: list[str]


class StageUploadResponse(BaseModel):
    batch_id: str
    total_rows: int
    valid_row_count: int
    error_row_count: int

    # What was actually persisted for commit / review, after the caps.
    stored_valid_rows: int
    stored_error_rows: int
    valid_rows_truncated: bool = False
    error_details_truncated: bool = False

    errors: list[RowErrorOut] = Field(default_factory=list)
    preview: list[dict[str, Any]] = Field(default_factory=list)


class HeaderMismatchResponse(BaseModel):
    error: str = "Header mismatch"
    expected: list[str]
    received: list[str]


class CommitRequest(BaseModel):
    batch_id: str = Field(..., min_length=1, max_length=36)


class CommitResponse(BaseModel):
    batch_id: str
    imported_rows: int
    error_rows: int
    skipped_rows: int
    status: BatchStatus


class BatchConflictResponse(BaseModel):
    error: str = "Batch already committed"
    batch_id: str
    status: str


class BatchSummary(BaseModel):
    batch_id: str
    project_id: str
    import_name: str | None = None
    filename: str
    uploaded_by: str
    uploaded_at: datetime | None = None

    total_rows: int
    imported_rows: int
    error_rows: int
    skipped_rows: int
    status: BatchStatus

    valid_rows_truncated: bool = False
    error_details_truncated: bool = False
    committed_by: str | None = None
    committed_at: datetime | None = None


class BatchDetail(BatchSummary):
    error_details: list[RowErrorOut] = Field(default_factory=list)


class BatchListResponse(BaseModel):
    items: list[BatchSummary]
    total: int
    limit: int
    offset: int
