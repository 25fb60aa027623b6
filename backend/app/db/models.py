from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, Text, func, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""


class ProjectRecord(Base):
    """A project scopes sites and import batches."""

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[str] = mapped_column(String(36), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(160), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(String(400), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class SiteRecord(Base):
    """A committed inventory site.

    The natural key is (project_id, site_id), unique among rows that are not
    soft-deleted.
    """

    __tablename__ = "sites"
    __table_args__ = (
        Index(
            "uq_sites_project_site_active",
            "project_id",
            "site_id",
            unique=True,
            sqlite_where=text("NOT is_deleted"),
            postgresql_where=text("NOT is_deleted"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    site_id: Mapped[str] = mapped_column(String(120), index=True, nullable=False)

    site_name: Mapped[str] = mapped_column(String(255), nullable=False)
    area_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    district_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    provider: Mapped[str] = mapped_column(String(255), nullable=False)
    provider_resident: Mapped[str] = mapped_column(String(60), nullable=False, default="No")

    address: Mapped[str] = mapped_column(String(400), nullable=False)
    city: Mapped[str] = mapped_column(String(160), nullable=False)
    county: Mapped[str | None] = mapped_column(String(160), nullable=True)
    state: Mapped[str] = mapped_column(String(60), nullable=False)
    zip_code: Mapped[str] = mapped_column(String(20), nullable=False)
    zip_full: Mapped[str | None] = mapped_column(String(20), nullable=True)

    cma_id: Mapped[str | None] = mapped_column(String(60), nullable=True)
    cma_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    structure_type: Mapped[str] = mapped_column(String(120), nullable=False)
    site_type: Mapped[str | None] = mapped_column(String(120), nullable=True)
    ge: Mapped[str | None] = mapped_column(String(60), nullable=True)
    structure_height: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # WGS84 as uploaded, plus the NAD83 pair derived at commit time.
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude_nad83: Mapped[float] = mapped_column(Float, nullable=False)
    longitude_nad83: Mapped[float] = mapped_column(Float, nullable=False)

    site_alt_id: Mapped[str | None] = mapped_column(String(120), nullable=True)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class ImportBatchRecord(Base):
    """Staged result of one uploaded spreadsheet and, later, its commit outcome."""

    __tablename__ = "import_batches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    batch_id: Mapped[str] = mapped_column(String(36), unique=True, index=True, nullable=False)
    project_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)

    import_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    uploaded_by: Mapped[str] = mapped_column(String(64), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)

    total_rows: Mapped[int] = mapped_column(Integer, nullable=False)
    imported_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # JSON payloads, already cut to the configured caps.
    valid_rows_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    error_details_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    valid_rows_truncated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    error_details_truncated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    status: Mapped[str] = mapped_column(String(16), index=True, nullable=False, default="pending")

    # Commit claim (compare-and-swap) and outcome.
    commit_token: Mapped[str | None] = mapped_column(String(36), nullable=True)
    commit_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    committed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    committed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class AuditEventRecord(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    actor_email: Mapped[str | None] = mapped_column(String(220), nullable=True)
    action: Mapped[str] = mapped_column(String(80), index=True, nullable=False)
    resource_type: Mapped[str] = mapped_column(String(80), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

