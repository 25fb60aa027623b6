from __future__ import annotations

import json
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from app.db.models import AuditEventRecord, ImportBatchRecord, ProjectRecord, SiteRecord


def _dumps(payload: Any) -> str:
    """Serialize payloads for DB storage.

    Staged rows hold plain str/float values, but audit metadata comes from
    callers and may carry dates or Decimals. Those are coerced to JSON-friendly
    primitives so a write never fails on serialization.
    """

    def to_jsonable(x: Any) -> Any:  # noqa: ANN401
        if x is None or isinstance(x, (str, int, float, bool)):
            return x
        if isinstance(x, (date, datetime)):
            return x.isoformat()
        if isinstance(x, Decimal):
            return float(x)
        if isinstance(x, dict):
            return {str(k): to_jsonable(v) for k, v in x.items()}
        if isinstance(x, (list, tuple, set)):
            return [to_jsonable(v) for v in x]
        return str(x)

    return json.dumps(to_jsonable(payload), ensure_ascii=False, separators=(",", ":"))


# -----------------
# Projects
# -----------------


def create_project(db: Session, *, name: str, description: str = "", project_id: str | None = None) -> str:
    pid = project_id or str(uuid.uuid4())
    rec = ProjectRecord(project_id=pid, name=name, description=description or "")
    db.add(rec)
    db.commit()
    return pid


def get_project(db: Session, project_id: str) -> ProjectRecord | None:
    return db.query(ProjectRecord).filter(ProjectRecord.project_id == project_id).first()


def get_project_by_name(db: Session, name: str) -> ProjectRecord | None:
    return db.query(ProjectRecord).filter(ProjectRecord.name == name).first()


# -----------------
# Sites
# -----------------
# Site writes do not commit: the import commit runs every create inside one
# transaction and decides itself when to commit or roll back.


def _active_sites(db: Session, project_id: str):
    return db.query(SiteRecord).filter(
        SiteRecord.project_id == project_id,
        or_(SiteRecord.is_deleted.is_(False), SiteRecord.is_deleted.is_(None)),
    )


def find_active_site(db: Session, project_id: str, site_id: str) -> SiteRecord | None:
    return _active_sites(db, project_id).filter(SiteRecord.site_id == site_id).first()


def create_site(db: Session, fields: dict[str, Any]) -> SiteRecord:
    rec = SiteRecord(**fields)
    db.add(rec)
    # Flush so later lookups in the same transaction see this row.
    db.flush()
    return rec


def count_active_sites(db: Session, project_id: str) -> int:
    return _active_sites(db, project_id).count()


def list_active_sites(db: Session, project_id: str, *, limit: int = 100, offset: int = 0) -> list[SiteRecord]:
    q = _active_sites(db, project_id).order_by(SiteRecord.site_id.asc(), SiteRecord.id.asc())
    return q.offset(offset).limit(limit).all()


# -----------------
# Import batches
# -----------------


def stage_batch(
    db: Session,
    *,
    project_id: str,
    uploaded_by: str,
    filename: str,
    import_name: str | None,
    total_rows: int,
    valid_rows: list[dict[str, Any]],
    error_details: list[dict[str, Any]],
    max_valid_rows: int,
    max_error_details: int,
    batch_id: str | None = None,
) -> ImportBatchRecord:
    """Persist a pending batch.

    Both payloads are cut to their caps (first N kept). ``error_rows`` keeps
    the full error count even when the stored details are truncated.
    """
    bid = batch_id or str(uuid.uuid4())
    stored_valid = valid_rows[: max(0, max_valid_rows)]
    stored_errors = error_details[: max(0, max_error_details)]
    rec = ImportBatchRecord(
        batch_id=bid,
        project_id=project_id,
        import_name=import_name,
        uploaded_by=uploaded_by,
        filename=filename,
        total_rows=total_rows,
        imported_rows=0,
        error_rows=len(error_details),
        skipped_rows=0,
        valid_rows_json=_dumps(stored_valid),
        error_details_json=_dumps(stored_errors),
        valid_rows_truncated=len(stored_valid) < len(valid_rows),
        error_details_truncated=len(stored_errors) < len(error_details),
        status="pending",
    )
    db.add(rec)
    db.commit()
    return rec


def get_batch(db: Session, project_id: str, batch_id: str) -> ImportBatchRecord | None:
    return (
        db.query(ImportBatchRecord)
        .filter(ImportBatchRecord.batch_id == batch_id, ImportBatchRecord.project_id == project_id)
        .first()
    )


def list_batches(db: Session, project_id: str, *, limit: int = 50, offset: int = 0) -> list[ImportBatchRecord]:
    q = db.query(ImportBatchRecord).filter(ImportBatchRecord.project_id == project_id)
    q = q.order_by(ImportBatchRecord.uploaded_at.desc(), ImportBatchRecord.id.desc())
    return q.offset(offset).limit(limit).all()


def count_batches(db: Session, project_id: str) -> int:
    return (
        db.query(func.count(ImportBatchRecord.id)).filter(ImportBatchRecord.project_id == project_id).scalar() or 0
    )


def batch_valid_rows(rec: ImportBatchRecord) -> list[dict[str, Any]]:
    return list(json.loads(rec.valid_rows_json or "[]"))


def batch_error_details(rec: ImportBatchRecord) -> list[dict[str, Any]]:
    return list(json.loads(rec.error_details_json or "[]"))


def claim_batch(
    db: Session,
    *,
    project_id: str,
    batch_id: str,
    token: str,
    now: datetime,
    lease_seconds: int,
) -> bool:
    """Atomically take the commit claim on a pending batch.

    Single conditional UPDATE: it succeeds only if the batch is still pending
    and is either unclaimed or its claim is older than the lease. Returns
    True when this caller now owns the commit.
    """
    stale_before = now - timedelta(seconds=lease_seconds)
    res = db.execute(
        update(ImportBatchRecord)
        .where(
            ImportBatchRecord.batch_id == batch_id,
            ImportBatchRecord.project_id == project_id,
            ImportBatchRecord.status == "pending",
            or_(
                ImportBatchRecord.commit_token.is_(None),
                ImportBatchRecord.commit_started_at < stale_before,
            ),
        )
        .values(commit_token=token, commit_started_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return res.rowcount == 1


def release_batch_claim(db: Session, *, batch_id: str, token: str) -> None:
    db.execute(
        update(ImportBatchRecord)
        .where(
            ImportBatchRecord.batch_id == batch_id,
            ImportBatchRecord.commit_token == token,
            ImportBatchRecord.status == "pending",
        )
        .values(commit_token=None, commit_started_at=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()


def finalize_batch(
    db: Session,
    *,
    batch_id: str,
    token: str,
    imported_rows: int,
    error_rows: int,
    skipped_rows: int,
    status: str,
    committed_by: str,
    now: datetime,
) -> bool:
    """Write the commit outcome, conditioned on still holding the claim.

    Does not commit; the caller commits it together with the created sites.
    """
    res = db.execute(
        update(ImportBatchRecord)
        .where(
            ImportBatchRecord.batch_id == batch_id,
            ImportBatchRecord.commit_token == token,
            ImportBatchRecord.status == "pending",
        )
        .values(
            imported_rows=imported_rows,
            error_rows=error_rows,
            skipped_rows=skipped_rows,
            status=status,
            committed_by=committed_by,
            committed_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


# -----------------
# Audit events
# -----------------


def create_audit_event(
    db: Session,
    *,
    actor_user_id: str,
    actor_email: str | None,
    action: str,
    resource_type: str,
    resource_id: str | None,
    metadata: dict[str, Any] | None,
) -> int:
    rec = AuditEventRecord(
        actor_user_id=actor_user_id,
        actor_email=actor_email,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        metadata_json=_dumps(metadata) if metadata is not None else None,
    )
    db.add(rec)
    db.commit()
    return rec.id

