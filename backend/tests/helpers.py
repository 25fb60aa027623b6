from __future__ import annotations

import io
from collections.abc import Iterable, Sequence
from typing import Any

from openpyxl import Workbook

from app.db.models import AuditEventRecord
from app.db.repository import find_active_site
from app.services.import_template import IMPORT_TEMPLATE_HEADERS

IMPORTER_HEADERS = {
    "X-User-Id": "user-1",
    "X-User-Email": "importer@example.com",
    "X-User-Permissions": "import:run",
}


def site_row(site_id: str = "SITE-A", **overrides: Any) -> list[Any]:
    """One valid data row in template column order.

    Overrides use the template header with spaces replaced by underscores,
    e.g. ``site_row(CITY="")`` or ``site_row(ZIP_CODE="27513")``.
    """
    values: dict[str, Any] = {
        "SITE ID": site_id,
        "SITE NAME": f"{site_id} Tower",
        "AREA NAME": "East",
        "DISTRICT NAME": "D1",
        "PROVIDER": "Acme Wireless",
        "PROVIDER RESIDENT": "Yes",
        "ADDRESS": "100 Main St",
        "CITY": "Cary",
        "COUNTY": "Wake",
        "STATE": "NC",
        "ZIP CODE": "275135123",
        "CMA ID": "CMA-9",
        "CMA NAME": "Raleigh",
        "STRUCTURE TYPE": "Monopole",
        "SITE TYPE": "Macro",
        "GE": "G1",
        "STRUCTURE HEIGHT": 150,
        "LATITUDE": 35.79,
        "LONGITUDE": -78.78,
        "SITE ALT ID": "ALT-1",
    }
    for key, value in overrides.items():
        values[key.replace("_", " ")] = value
    return [values[h] for h in IMPORT_TEMPLATE_HEADERS]


def site_dict(site_id: str = "SITE-A", **overrides: Any) -> dict[str, Any]:
    """A staged (already normalized) row as the batch store keeps it."""
    from app.services.import_parse import normalize_row

    return normalize_row(site_row(site_id, **overrides))


def make_xlsx(rows: Iterable[Sequence[Any]], headers: Sequence[str] | None = None) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.append(list(IMPORT_TEMPLATE_HEADERS if headers is None else headers))
    for row in rows:
        ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def upload(client, project_id: str, content: bytes, *, filename: str = "sites.xlsx", import_name: str | None = None):
    data = {"import_name": import_name} if import_name is not None else None
    return client.post(
        f"/api/v1/projects/{project_id}/import/xlsx",
        files={"file": (filename, content, "application/octet-stream")},
        data=data,
        headers=IMPORTER_HEADERS,
    )


def commit(client, project_id: str, batch_id: str):
    return client.post(
        f"/api/v1/projects/{project_id}/import/commit",
        json={"batch_id": batch_id},
        headers=IMPORTER_HEADERS,
    )


def soft_delete_site(db, project_id: str, site_id: str, *, user_id: str | None = None) -> bool:
    rec = find_active_site(db, project_id, site_id)
    if rec is None:
        return False
    rec.is_deleted = True
    rec.updated_by = user_id
    db.commit()
    return True


def list_audit_events(db, *, action: str | None = None) -> list[AuditEventRecord]:
    q = db.query(AuditEventRecord)
    if action:
        q = q.filter(AuditEventRecord.action == action)
    return q.order_by(AuditEventRecord.id.asc()).all()
