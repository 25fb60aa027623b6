from __future__ import annotations

"""Interfaces the import pipeline consumes but does not own.

The commit engine talks to the site table and the audit log through these
seams. The SQLAlchemy implementations live next to them so the default wiring
needs no setup. Tests substitute their own to simulate storage failures.
"""

from typing import Any, Protocol

from sqlalchemy.orm import Session

from app.db.deps import Actor
from app.db.models import SiteRecord
from app.db.repository import count_active_sites, create_site, find_active_site


class SiteStore(Protocol):
    """Record store for committed sites. Only non-deleted sites are visible."""

    def find_by_key(self, project_id: str, site_id: str) -> SiteRecord | None: ...

    def create(self, fields: dict[str, Any]) -> SiteRecord: ...

    def count(self, project_id: str) -> int: ...


class AuditSink(Protocol):
    """Fire-and-forget audit log. Implementations must not raise."""

    def record(
        self,
        actor: Actor,
        action: str,
        resource_type: str,
        resource_id: str | None,
        metadata: dict[str, Any] | None = None,
    ) -> None: ...


class SqlSiteStore:
    """SiteStore bound to the caller's session and transaction."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_key(self, project_id: str, site_id: str) -> SiteRecord | None:
        return find_active_site(self.db, project_id, site_id)

    def create(self, fields: dict[str, Any]) -> SiteRecord:
        return create_site(self.db, fields)

    def count(self, project_id: str) -> int:
        return count_active_sites(self.db, project_id)
