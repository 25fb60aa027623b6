from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import sessionmaker

from app.config import ImportSettings
from app.db.deps import Actor
from app.db.repository import create_audit_event
from app.services.collaborators import AuditSink

logger = logging.getLogger(__name__)

METADATA_MAX_KEYS = 20
METADATA_VALUE_MAX_LEN = 500


def truncate_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in list(metadata.items())[:METADATA_MAX_KEYS]:
        if isinstance(value, str) and len(value) > METADATA_VALUE_MAX_LEN:
            value = value[:METADATA_VALUE_MAX_LEN] + "..."
        out[key] = value
    return out


class DbAuditSink:
    """Writes audit events in a session of its own.

    A failed write is logged and dropped. It never reaches the operation
    being audited, and never touches that operation's transaction.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    def record(
        self,
        actor: Actor,
        action: str,
        resource_type: str,
        resource_id: str | None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        try:
            with self.session_factory() as db:
                create_audit_event(
                    db,
                    actor_user_id=actor.user_id,
                    actor_email=actor.email,
                    action=action,
                    resource_type=resource_type,
                    resource_id=resource_id,
                    metadata=truncate_metadata(metadata) if metadata is not None else None,
                )
        except Exception:  # noqa: BLE001 - audit must never fail the caller
            logger.exception("audit log write failed: action=%s resource=%s/%s", action, resource_type, resource_id)


class NullAuditSink:
    def record(
        self,
        actor: Actor,
        action: str,
        resource_type: str,
        resource_id: str | None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        return None


def make_audit_sink(session_factory: sessionmaker, settings: ImportSettings) -> AuditSink:
    if not settings.audit_enabled:
        return NullAuditSink()
    return DbAuditSink(session_factory)
