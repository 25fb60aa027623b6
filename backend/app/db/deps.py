from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass, field

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from app.config import ImportSettings

IMPORT_RUN_PERMISSION = "import:run"


@dataclass(frozen=True)
class Actor:
    """Caller identity as resolved by the gateway in front of this service."""

    user_id: str
    email: str | None = None
    permissions: frozenset[str] = field(default_factory=frozenset)

    def can(self, permission: str) -> bool:
        return permission in self.permissions or "*" in self.permissions


def get_db(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency to get a database session."""
    db = request.app.state.db.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_settings(request: Request) -> ImportSettings:
    return request.app.state.settings


def get_actor(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_user_email: str | None = Header(default=None, alias="X-User-Email"),
    x_user_permissions: str | None = Header(default=None, alias="X-User-Permissions"),
) -> Actor | None:
    """Read the already-authenticated caller from request headers.

    Authentication and role resolution happen upstream; this service only
    trusts the identity and permission list it is handed.
    """
    user_id = (x_user_id or "").strip()
    if not user_id or len(user_id) > 64:
        return None
    perms = frozenset(p.strip() for p in (x_user_permissions or "").split(",") if p.strip())
    email = (x_user_email or "").strip() or None
    return Actor(user_id=user_id, email=email, permissions=perms)


def require_actor(actor: Actor | None = Depends(get_actor)) -> Actor:
    if actor is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return actor


def require_import_permission(actor: Actor = Depends(require_actor)) -> Actor:
    if not actor.can(IMPORT_RUN_PERMISSION):
        raise HTTPException(status_code=403, detail="Forbidden")
    return actor
