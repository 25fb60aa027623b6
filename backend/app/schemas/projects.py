from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.imports import BatchSummary


class ProjectCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=160)
    description: str = Field(default="", max_length=400)


class ProjectOut(BaseModel):
    project_id: str
    name: str
    description: str = ""

    site_count: int = 0
    last_import: BatchSummary | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None


class SiteOut(BaseModel):
    site_id: str
    site_name: str
    provider: str
    provider_resident: str
    address: str
    city: str
    county: str | None = None
    state: str
    zip_code: str
    zip_full: str | None = None
    structure_type: str
    structure_height: float
    latitude: float
    longitude: float
    latitude_nad83: float
    longitude_nad83: float
    site_alt_id: str | None = None
    created_by: str | None = None
