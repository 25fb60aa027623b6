from __future__ import annotations

"""Runtime settings for the site import pipeline.

Settings are read from the environment once and handed to the pipeline
explicitly (``create_app`` stores them on ``app.state``). Nothing in the
services reads environment variables directly.
"""

import os
from dataclasses import dataclass
from functools import lru_cache


def _get_int_env(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ImportSettings:
    """Limits and toggles for staging and committing import batches."""

    # Staged payload caps. Anything past the cap is dropped when the batch is stored.
    max_valid_rows: int = 10_000
    max_error_details: int = 500

    # How much of the parse result the upload response echoes back.
    error_preview_limit: int = 100
    row_preview_limit: int = 20

    upload_max_mb: int = 10

    # A commit claim older than this can be taken over by a retry.
    commit_lease_seconds: int = 300

    audit_enabled: bool = True

    @property
    def upload_max_bytes(self) -> int:
        return self.upload_max_mb * 1024 * 1024


def load_import_settings() -> ImportSettings:
    defaults = ImportSettings()
    return ImportSettings(
        max_valid_rows=_get_int_env("IMPORT_MAX_VALID_ROWS", defaults.max_valid_rows),
        max_error_details=_get_int_env("IMPORT_MAX_ERROR_DETAILS", defaults.max_error_details),
        error_preview_limit=_get_int_env("IMPORT_ERROR_PREVIEW_LIMIT", defaults.error_preview_limit),
        row_preview_limit=_get_int_env("IMPORT_ROW_PREVIEW_LIMIT", defaults.row_preview_limit),
        upload_max_mb=_get_int_env("IMPORT_UPLOAD_MAX_MB", defaults.upload_max_mb),
        commit_lease_seconds=_get_int_env("IMPORT_COMMIT_LEASE_SECONDS", defaults.commit_lease_seconds),
        audit_enabled=_get_bool_env("AUDIT_ENABLED", defaults.audit_enabled),
    )


@lru_cache(maxsize=1)
def get_import_settings() -> ImportSettings:
    """Return settings loaded from the environment (cached)."""
    return load_import_settings()
