from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config import ImportSettings
from app.db.deps import Actor, get_db, get_settings, require_actor, require_import_permission
from app.db.models import ImportBatchRecord
from app.db.repository import batch_error_details, count_batches, get_batch, get_project, list_batches
from app.schemas.imports import (
    BatchConflictResponse,
    BatchDetail,
    BatchListResponse,
    BatchSummary,
    CommitRequest,
    CommitResponse,
    HeaderMismatchResponse,
    RowErrorOut,
    StageUploadResponse,
)
from app.services.audit import make_audit_sink
from app.services.import_commit import commit_batch
from app.services.import_errors import (
    BatchAlreadyCommittedError,
    BatchNotFoundError,
    CommitAbortedError,
    EmptyUploadError,
    HeaderMismatchError,
    InvalidWorkbookError,
    ProjectNotFoundError,
    UnsupportedFileTypeError,
    UploadTooLargeError,
)
from app.services.import_staging import stage_upload
from app.services.import_template import XLSX_MEDIA_TYPE, build_import_template

router = APIRouter()


def batch_summary(rec: ImportBatchRecord) -> BatchSummary:
    return BatchSummary(
        batch_id=rec.batch_id,
        project_id=rec.project_id,
        import_name=rec.import_name,
        filename=rec.filename,
        uploaded_by=rec.uploaded_by,
        uploaded_at=rec.uploaded_at,
        total_rows=rec.total_rows,
        imported_rows=rec.imported_rows,
        error_rows=rec.error_rows,
        skipped_rows=rec.skipped_rows,
        status=rec.status,
        valid_rows_truncated=rec.valid_rows_truncated,
        error_details_truncated=rec.error_details_truncated,
        committed_by=rec.committed_by,
        committed_at=rec.committed_at,
    )


def _require_project(db: Session, project_id: str) -> None:
    if get_project(db, project_id) is None:
        raise HTTPException(status_code=404, detail="Project not found")


@router.get("/template")
def api_import_template(actor: Actor = Depends(require_import_permission)) -> Response:
    """Download the empty xlsx upload template."""
    return Response(
        content=build_import_template(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="site-import-template.xlsx"'},
    )


@router.post(
    "/xlsx",
    status_code=201,
    response_model=StageUploadResponse,
    responses={400: {"model": HeaderMismatchResponse}},
)
def api_stage_upload(
    project_id: str,
    file: UploadFile | None = File(default=None),
    import_name: str | None = Form(default=None),
    db: Session = Depends(get_db),
    settings: ImportSettings = Depends(get_settings),
    actor: Actor = Depends(require_import_permission),
):
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")
    # One byte past the limit is enough for check_upload to reject it.
    content = file.file.read(settings.upload_max_bytes + 1)

    try:
        staged = stage_upload(
            db,
            project_id=project_id,
            uploaded_by=actor.user_id,
            filename=file.filename,
            content=content,
            import_name=import_name,
            settings=settings,
        )
    except ProjectNotFoundError:
        raise HTTPException(status_code=404, detail="Project not found") from None
    except HeaderMismatchError as e:
        body = HeaderMismatchResponse(expected=e.expected, received=e.received)
        return JSONResponse(status_code=400, content=body.model_dump())
    except UploadTooLargeError as e:
        raise HTTPException(status_code=413, detail=str(e)) from None
    except (UnsupportedFileTypeError, EmptyUploadError, InvalidWorkbookError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from None

    return StageUploadResponse(
        batch_id=staged.batch_id,
        total_rows=staged.total_rows,
        valid_row_count=staged.valid_row_count,
        error_row_count=staged.error_row_count,
        stored_valid_rows=staged.stored_valid_rows,
        stored_error_rows=staged.stored_error_rows,
        valid_rows_truncated=staged.valid_rows_truncated,
        error_details_truncated=staged.error_details_truncated,
        errors=[RowErrorOut(**e) for e in staged.errors],
        preview=staged.preview,
    )


@router.post("/commit", response_model=CommitResponse, responses={409: {"model": BatchConflictResponse}})
def api_commit_batch(
    project_id: str,
    req: CommitRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: ImportSettings = Depends(get_settings),
    actor: Actor = Depends(require_import_permission),
):
    try:
        result = commit_batch(
            db,
            project_id=project_id,
            batch_id=req.batch_id,
            actor=actor,
            settings=settings,
            audit_sink=make_audit_sink(request.app.state.db.SessionLocal, settings),
        )
    except ProjectNotFoundError:
        raise HTTPException(status_code=404, detail="Project not found") from None
    except BatchNotFoundError:
        raise HTTPException(status_code=404, detail="Import batch not found") from None
    except BatchAlreadyCommittedError as e:
        body = BatchConflictResponse(batch_id=e.batch_id, status=e.status)
        return JSONResponse(status_code=409, content=body.model_dump())
    except CommitAbortedError as e:
        raise HTTPException(
            status_code=500,
            detail=f"Import commit aborted; no sites were created and batch {e.batch_id} is still pending",
        ) from None

    return CommitResponse(
        batch_id=result.batch_id,
        imported_rows=result.imported_rows,
        error_rows=result.error_rows,
        skipped_rows=result.skipped_rows,
        status=result.status,
    )


@router.get("/batches", response_model=BatchListResponse)
def api_list_batches(
    project_id: str,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
) -> BatchListResponse:
    limit = max(1, min(limit, 200))
    offset = max(0, offset)
    _require_project(db, project_id)
    rows = list_batches(db, project_id, limit=limit, offset=offset)
    return BatchListResponse(
        items=[batch_summary(r) for r in rows],
        total=count_batches(db, project_id),
        limit=limit,
        offset=offset,
    )


@router.get("/batches/{batch_id}", response_model=BatchDetail)
def api_get_batch(
    project_id: str,
    batch_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
) -> BatchDetail:
    _require_project(db, project_id)
    rec = get_batch(db, project_id, batch_id)
    if not rec:
        raise HTTPException(status_code=404, detail="Import batch not found")
    return BatchDetail(
        **batch_summary(rec).model_dump(),
        error_details=[RowErrorOut(**e) for e in batch_error_details(rec)],
    )
