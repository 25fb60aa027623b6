from __future__ import annotations

"""Logging setup for the API process.

One stdout handler on the ``app`` logger with a short labelled format:

    INFO app.services.import_commit: batch ... committed

Modules log through ``logging.getLogger(__name__)`` and inherit this handler.
"""

import logging
import sys

APP_LOGGER_NAME = "app"

_configured = False


class LabeledFormatter(logging.Formatter):
    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        line = f"{label} {record.name}: {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure the application logger. Safe to call more than once."""
    global _configured

    logger = logging.getLogger(APP_LOGGER_NAME)
    if _configured:
        return logger

    logger.setLevel(level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    _configured = True
    return logger


def reset_logging() -> None:
    """Forget the configured state. Used by tests."""
    global _configured
    _configured = False
