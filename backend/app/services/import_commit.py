from __future__ import annotations

"""Commit phase: apply a staged batch's valid rows to the site table.

Only one caller can run the row loop for a given batch. Before touching any
site it takes a claim on the batch with a single conditional UPDATE, and the
final status write is conditioned on the same claim token. Every other caller
gets ``BatchAlreadyCommittedError`` straight away.

The loop and the final status write share one transaction. A storage failure
part-way through rolls back every site created so far, releases the claim and
raises ``CommitAbortedError``. The batch stays ``pending`` and the commit can
be retried. Rows whose (project, SITE ID) already exists are skipped, so
re-applying the same rows never duplicates a site.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from app.config import ImportSettings
from app.db.deps import Actor
from app.db.repository import (
    batch_valid_rows,
    claim_batch,
    finalize_batch,
    get_batch,
    get_project,
    release_batch_claim,
)
from app.services.audit import make_audit_sink
from app.services.collaborators import AuditSink, SiteStore, SqlSiteStore
from app.services.coordinates import CoordinateTransform, ensure_nad83, normalize_zip
from app.services.import_errors import (
    BatchAlreadyCommittedError,
    BatchNotFoundError,
    CommitAbortedError,
    ProjectNotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_RESIDENT = "No"
DEFAULT_STRUCTURE_TYPE = "unclassified"


@dataclass(frozen=True)
class CommitResult:
    batch_id: str
    imported_rows: int
    # total_rows - imported_rows: invalid rows, skipped duplicates and rows lost to truncation.
    error_rows: int
    skipped_rows: int
    status: str


class _ClaimLost(Exception):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _text(row: dict[str, Any], column: str) -> str:
    value = row.get(column)
    return "" if value is None else str(value).strip()


def _optional(row: dict[str, Any], column: str) -> str | None:
    return _text(row, column) or None


def _number(row: dict[str, Any], column: str) -> float:
    try:
        return float(row.get(column) or 0.0)
    except (TypeError, ValueError):
        return 0.0


def site_fields_from_row(
    row: dict[str, Any],
    *,
    project_id: str,
    actor_id: str,
    transform: CoordinateTransform | None = None,
) -> dict[str, Any]:
    """Build SiteRecord column values from a staged row."""
    lat = _number(row, "LATITUDE")
    lon = _number(row, "LONGITUDE")
    nad83 = ensure_nad83(lat, lon, transform)
    zip_code = _text(row, "ZIP CODE")
    return {
        "project_id": project_id,
        "site_id": _text(row, "SITE ID"),
        "site_name": _text(row, "SITE NAME"),
        "area_name": _optional(row, "AREA NAME"),
        "district_name": _optional(row, "DISTRICT NAME"),
        "provider": _text(row, "PROVIDER"),
        "provider_resident": _text(row, "PROVIDER RESIDENT") or DEFAULT_PROVIDER_RESIDENT,
        "address": _text(row, "ADDRESS"),
        "city": _text(row, "CITY"),
        "county": _optional(row, "COUNTY"),
        "state": _text(row, "STATE"),
        "zip_code": zip_code,
        "zip_full": normalize_zip(zip_code),
        "cma_id": _optional(row, "CMA ID"),
        "cma_name": _optional(row, "CMA NAME"),
        "structure_type": _text(row, "STRUCTURE TYPE") or DEFAULT_STRUCTURE_TYPE,
        "site_type": _optional(row, "SITE TYPE"),
        "ge": _optional(row, "GE"),
        "structure_height": max(0.0, _number(row, "STRUCTURE HEIGHT")),
        "latitude": lat,
        "longitude": lon,
        "latitude_nad83": nad83.latitude_nad83,
        "longitude_nad83": nad83.longitude_nad83,
        "site_alt_id": _optional(row, "SITE ALT ID"),
        "is_deleted": False,
        "created_by": actor_id,
        "updated_by": actor_id,
    }


def _current_status(db: Session, project_id: str, batch_id: str, fallback: str) -> str:
    db.expire_all()
    rec = get_batch(db, project_id, batch_id)
    return rec.status if rec is not None else fallback


def commit_batch(
    db: Session,
    *,
    project_id: str,
    batch_id: str,
    actor: Actor,
    settings: ImportSettings,
    site_store: SiteStore | None = None,
    audit_sink: AuditSink | None = None,
    transform: CoordinateTransform | None = None,
) -> CommitResult:
    if get_project(db, project_id) is None:
        raise ProjectNotFoundError(project_id)
    batch = get_batch(db, project_id, batch_id)
    if batch is None:
        raise BatchNotFoundError(batch_id)
    if batch.status != "pending":
        raise BatchAlreadyCommittedError(batch_id, batch.status)

    token = str(uuid.uuid4())
    if not claim_batch(
        db,
        project_id=project_id,
        batch_id=batch_id,
        token=token,
        now=_utcnow(),
        lease_seconds=settings.commit_lease_seconds,
    ):
        status = _current_status(db, project_id, batch_id, batch.status)
        logger.info("batch %s commit rejected: already claimed or applied (status=%s)", batch_id, status)
        raise BatchAlreadyCommittedError(batch_id, status)
    logger.info("batch %s claimed for commit by %s", batch_id, actor.user_id)

    store = site_store or SqlSiteStore(db)
    rows = batch_valid_rows(batch)
    imported = 0
    skipped = 0
    position = 0
    try:
        for position, row in enumerate(rows, start=1):
            site_id = _text(row, "SITE ID")
            if store.find_by_key(project_id, site_id) is not None:
                skipped += 1
                continue
            store.create(site_fields_from_row(row, project_id=project_id, actor_id=actor.user_id, transform=transform))
            imported += 1

        error_rows = batch.total_rows - imported
        status = "committed" if error_rows == 0 else "partial"
        if not finalize_batch(
            db,
            batch_id=batch_id,
            token=token,
            imported_rows=imported,
            error_rows=error_rows,
            skipped_rows=skipped,
            status=status,
            committed_by=actor.user_id,
            now=_utcnow(),
        ):
            raise _ClaimLost()
        db.commit()
    except _ClaimLost:
        db.rollback()
        current = _current_status(db, project_id, batch_id, "pending")
        logger.warning("batch %s lost its commit claim before finishing; changes rolled back", batch_id)
        raise BatchAlreadyCommittedError(batch_id, current) from None
    except Exception as e:
        db.rollback()
        try:
            release_batch_claim(db, batch_id=batch_id, token=token)
        except Exception:  # noqa: BLE001 - the lease expiry frees the claim anyway
            db.rollback()
            logger.exception("batch %s: could not release commit claim", batch_id)
        logger.exception("batch %s commit aborted at staged row %d; changes rolled back", batch_id, position)
        raise CommitAbortedError(batch_id, row=position or None) from e

    # The outcome went through a Core UPDATE; reload so callers see it.
    db.refresh(batch)
    logger.info(
        "batch %s %s: total=%d imported=%d skipped=%d error_rows=%d",
        batch_id,
        status,
        batch.total_rows,
        imported,
        skipped,
        error_rows,
    )

    sink = audit_sink or make_audit_sink(sessionmaker(bind=db.get_bind()), settings)
    try:
        sink.record(
            actor,
            "import.commit",
            "ImportBatch",
            batch_id,
            {
                "filename": batch.filename,
                "projectId": project_id,
                "totalRows": batch.total_rows,
                "importedRows": imported,
                "skippedRows": skipped,
            },
        )
    except Exception:  # noqa: BLE001 - the commit is already applied
        logger.exception("batch %s: audit event could not be recorded", batch_id)

    return CommitResult(
        batch_id=batch_id,
        imported_rows=imported,
        error_rows=error_rows,
        skipped_rows=skipped,
        status=status,
    )
