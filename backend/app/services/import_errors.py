from __future__ import annotations

"""Errors raised by the import pipeline.

File-level and batch-state errors abort the operation and carry enough detail
for the HTTP layer to explain them. Row-level validation problems are never
raised; they are collected into the parse result.
"""


class ImportPipelineError(Exception):
    """Base class for import pipeline failures."""


class UnsupportedFileTypeError(ImportPipelineError):
    def __init__(self, filename: str | None) -> None:
        super().__init__("Only .xlsx files are allowed")
        self.filename = filename


class EmptyUploadError(ImportPipelineError):
    def __init__(self) -> None:
        super().__init__("No file uploaded")


class UploadTooLargeError(ImportPipelineError):
    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"File exceeds {limit} bytes")
        self.size = size
        self.limit = limit


class InvalidWorkbookError(ImportPipelineError):
    """The upload could not be read as an xlsx workbook."""


class HeaderMismatchError(ImportPipelineError):
    def __init__(self, expected: list[str], received: list[str]) -> None:
        super().__init__("Header mismatch")
        self.expected = list(expected)
        self.received = list(received)


class ProjectNotFoundError(ImportPipelineError):
    def __init__(self, project_id: str) -> None:
        super().__init__("Project not found")
        self.project_id = project_id


class BatchNotFoundError(ImportPipelineError):
    def __init__(self, batch_id: str) -> None:
        super().__init__("Import batch not found")
        self.batch_id = batch_id


class BatchAlreadyCommittedError(ImportPipelineError):
    """The batch left ``pending`` already, or another commit holds it."""

    def __init__(self, batch_id: str, status: str) -> None:
        super().__init__("Batch already committed")
        self.batch_id = batch_id
        self.status = status


class CommitAbortedError(ImportPipelineError):
    """A storage failure stopped the commit. Nothing was applied and the batch stays pending."""

    def __init__(self, batch_id: str, row: int | None = None) -> None:
        super().__init__("Import commit aborted")
        self.batch_id = batch_id
        self.row = row
