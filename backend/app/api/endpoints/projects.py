from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.endpoints.imports import batch_summary
from app.db.deps import Actor, get_db, require_actor
from app.db.models import ProjectRecord
from app.db.repository import (
    create_project,
    get_project,
    get_project_by_name,
    list_active_sites,
    list_batches,
)
from app.schemas.projects import ProjectCreateRequest, ProjectOut, SiteOut
from app.services.collaborators import SqlSiteStore

router = APIRouter()


def _project_out(db: Session, rec: ProjectRecord) -> ProjectOut:
    latest = list_batches(db, rec.project_id, limit=1)
    return ProjectOut(
        project_id=rec.project_id,
        name=rec.name,
        description=rec.description,
        site_count=SqlSiteStore(db).count(rec.project_id),
        last_import=batch_summary(latest[0]) if latest else None,
        created_at=rec.created_at,
        updated_at=rec.updated_at,
    )


@router.post("", response_model=ProjectOut, status_code=201)
def api_create_project(
    req: ProjectCreateRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
) -> ProjectOut:
    name = req.name.strip()
    if get_project_by_name(db, name) is not None:
        raise HTTPException(status_code=409, detail="Project name already exists")
    pid = create_project(db, name=name, description=req.description)
    rec = get_project(db, pid)
    if rec is None:
        raise HTTPException(status_code=500, detail="Failed to load project after write")
    return _project_out(db, rec)


@router.get("/{project_id}", response_model=ProjectOut)
def api_get_project(
    project_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
) -> ProjectOut:
    rec = get_project(db, project_id)
    if not rec:
        raise HTTPException(status_code=404, detail="Project not found")
    return _project_out(db, rec)


@router.get("/{project_id}/sites", response_model=list[SiteOut])
def api_list_sites(
    project_id: str,
    limit: int = 100,
    offset: int = 0,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
) -> list[SiteOut]:
    limit = max(1, min(limit, 500))
    offset = max(0, offset)
    if get_project(db, project_id) is None:
        raise HTTPException(status_code=404, detail="Project not found")
    rows = list_active_sites(db, project_id, limit=limit, offset=offset)
    return [
        SiteOut(
            site_id=r.site_id,
            site_name=r.site_name,
            provider=r.provider,
            provider_resident=r.provider_resident,
            address=r.address,
            city=r.city,
            county=r.county,
            state=r.state,
            zip_code=r.zip_code,
            zip_full=r.zip_full,
            structure_type=r.structure_type,
            structure_height=r.structure_height,
            latitude=r.latitude,
            longitude=r.longitude,
            latitude_nad83=r.latitude_nad83,
            longitude_nad83=r.longitude_nad83,
            site_alt_id=r.site_alt_id,
            created_by=r.created_by,
        )
        for r in rows
    ]
