from __future__ import annotations

import logging
import sys

from app.config import ImportSettings, load_import_settings
from app.logging_config import APP_LOGGER_NAME, LabeledFormatter, reset_logging, setup_logging
from app.services.audit import truncate_metadata


def test_settings_defaults() -> None:
    s = ImportSettings()
    assert s.max_valid_rows == 10_000
    assert s.max_error_details == 500
    assert s.upload_max_bytes == 10 * 1024 * 1024
    assert s.audit_enabled is True


def test_settings_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("IMPORT_MAX_VALID_ROWS", "250")
    monkeypatch.setenv("IMPORT_MAX_ERROR_DETAILS", "not-a-number")
    monkeypatch.setenv("AUDIT_ENABLED", "off")
    s = load_import_settings()
    assert s.max_valid_rows == 250
    assert s.max_error_details == 500
    assert s.audit_enabled is False


def test_labeled_formatter() -> None:
    record = logging.LogRecord("app.x", logging.WARNING, __file__, 1, "batch %s truncated", ("b1",), None)
    assert LabeledFormatter().format(record) == "WARN app.x: batch b1 truncated"

    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.LogRecord("app.x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    out = LabeledFormatter().format(record)
    assert out.startswith("ERROR app.x: failed\n")
    assert "ValueError: boom" in out


def test_setup_logging_is_idempotent() -> None:
    reset_logging()
    try:
        setup_logging()
        setup_logging()
        logger = logging.getLogger(APP_LOGGER_NAME)
        assert len(logger.handlers) == 1
        assert logger.propagate is False
    finally:
        reset_logging()


def test_truncate_metadata() -> None:
    meta = {f"k{i}": i for i in range(30)}
    meta["k0"] = "x" * 600
    out = truncate_metadata(meta)
    assert len(out) == 20
    assert out["k0"] == "x" * 500 + "..."
    assert out["k1"] == 1
