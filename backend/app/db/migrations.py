from __future__ import annotations

"""Small versioned migrations, run once at startup.

``Base.metadata.create_all`` covers fresh databases. The steps below bring
databases created by older builds up to date, and each one is recorded in
``schema_migrations`` so it runs at most once. Every step is also written to be
harmless on a fresh database.
"""

import logging
import uuid
from collections.abc import Callable

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = "Default Project"


def _has_table(conn: Connection, name: str) -> bool:
    return inspect(conn).has_table(name)


def _columns(conn: Connection, table: str) -> set[str]:
    return {str(c["name"]) for c in inspect(conn).get_columns(table)}


def _sites_compound_key(conn: Connection) -> None:
    """Replace the old global unique key on sites.site_id with (project_id, site_id)."""
    if not _has_table(conn, "sites"):
        return

    cols = _columns(conn, "sites")
    if "project_id" not in cols:
        conn.execute(text("ALTER TABLE sites ADD COLUMN project_id VARCHAR(36)"))
        conn.execute(text("CREATE INDEX IF NOT EXISTS ix_sites_project_id ON sites (project_id)"))
    if "is_deleted" not in cols:
        conn.execute(text("ALTER TABLE sites ADD COLUMN is_deleted BOOLEAN NOT NULL DEFAULT FALSE"))

    for idx in inspect(conn).get_indexes("sites"):
        if idx.get("unique") and list(idx.get("column_names") or []) == ["site_id"]:
            conn.execute(text(f'DROP INDEX "{idx["name"]}"'))
            logger.info("dropped legacy unique index %s on sites.site_id", idx["name"])

    conn.execute(
        text(
            "CREATE UNIQUE INDEX IF NOT EXISTS uq_sites_project_site_active "
            "ON sites (project_id, site_id) WHERE NOT is_deleted"
        )
    )


def _default_project(conn: Connection) -> None:
    """Attach unscoped sites and import batches to a default project."""
    orphans = 0
    for table in ("sites", "import_batches"):
        if _has_table(conn, table) and "project_id" in _columns(conn, table):
            orphans += conn.execute(text(f"SELECT COUNT(*) FROM {table} WHERE project_id IS NULL")).scalar_one()
    if orphans == 0:
        return

    row = conn.execute(
        text("SELECT project_id FROM projects WHERE name = :n"), {"n": DEFAULT_PROJECT_NAME}
    ).fetchone()
    if row is None:
        project_id = str(uuid.uuid4())
        conn.execute(
            text(
                "INSERT INTO projects (project_id, name, description) "
                "VALUES (:pid, :n, :d)"
            ),
            {
                "pid": project_id,
                "n": DEFAULT_PROJECT_NAME,
                "d": "Auto-created during migration for existing unscoped records.",
            },
        )
        logger.info("created %r (%s)", DEFAULT_PROJECT_NAME, project_id)
    else:
        project_id = str(row[0])

    for table in ("sites", "import_batches"):
        if _has_table(conn, table) and "project_id" in _columns(conn, table):
            res = conn.execute(
                text(f"UPDATE {table} SET project_id = :pid WHERE project_id IS NULL"), {"pid": project_id}
            )
            if res.rowcount:
                logger.info("assigned %d %s to %r", res.rowcount, table, DEFAULT_PROJECT_NAME)


MIGRATIONS: list[tuple[str, Callable[[Connection], None]]] = [
    ("0001_sites_compound_key", _sites_compound_key),
    ("0002_default_project", _default_project),
]


def applied_versions(engine: Engine) -> set[str]:
    with engine.connect() as conn:
        if not _has_table(conn, "schema_migrations"):
            return set()
        return {str(r[0]) for r in conn.execute(text("SELECT version FROM schema_migrations"))}


def run_migrations(engine: Engine) -> list[str]:
    """Apply pending migrations in order. Returns the versions applied by this call."""
    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE IF NOT EXISTS schema_migrations ("
                "version VARCHAR(80) PRIMARY KEY, "
                "applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL)"
            )
        )

    done = applied_versions(engine)
    applied: list[str] = []
    for version, step in MIGRATIONS:
        if version in done:
            continue
        with engine.begin() as conn:
            step(conn)
            conn.execute(text("INSERT INTO schema_migrations (version) VALUES (:v)"), {"v": version})
        logger.info("applied migration %s", version)
        applied.append(version)
    return applied
