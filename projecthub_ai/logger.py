"""
Logging for ProjectHub AI.

All module loggers hang off the ``projecthub_ai`` package logger, which owns
the single stream handler. Two output formats are available: one JSON object
per line (``structured``) for servers, and a plain line format (``simple``)
for the CLI. Provider keys that end up in log records are masked.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from projecthub_ai.config import settings

ROOT_LOGGER_NAME = "projecthub_ai"

# Attributes every LogRecord carries; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

REDACTED_FIELDS = frozenset({
    "api_key", "apikey", "groq_api_key", "custom_api_key",
    "authorization", "token", "password", "secret",
})

KEY_PREFIXES = ("gsk_", "sk-")


def mask_secret(value: str) -> str:
    """Shorten a provider key to its first and last four characters."""
    if value.startswith(KEY_PREFIXES) and len(value) > 10:
        return f"{value[:4]}...{value[-4:]}"
    return value


def redact(value: Any) -> Any:
    """Recursively mask secrets in a log payload."""
    if isinstance(value, dict):
        return {
            k: "[REDACTED]" if str(k).lower() in REDACTED_FIELDS else redact(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    if isinstance(value, str):
        return mask_secret(value)
    return value


class StructuredFormatter(logging.Formatter):
    """Formats each record as a compact JSON object, merging ``extra`` fields."""

    def __init__(self, sanitize: bool = True):
        super().__init__()
        self.sanitize = sanitize

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        entry.update(
            (key, value) for key, value in record.__dict__.items() if key not in _RECORD_ATTRS
        )

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        if self.sanitize:
            entry = redact(entry)

        return json.dumps(entry, ensure_ascii=False, separators=(",", ":"), default=str)


class SimpleFormatter(logging.Formatter):
    """Human-readable single-line format."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        )


def setup_logger(level: Optional[str] = None, log_format: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger.

    Calling it again with an explicit level or format replaces the handler,
    which is how the CLI switches to verbose output.

    Args:
        level: Log level name (defaults to settings.log_level)
        log_format: 'structured' or 'simple' (defaults to settings.log_format)

    Returns:
        logging.Logger: The ``projecthub_ai`` logger
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if root.handlers and level is None and log_format is None:
        return root

    log_level = getattr(logging, (level or settings.log_level).upper())
    formatter = (
        StructuredFormatter(sanitize=settings.sanitize_logs)
        if (log_format or settings.log_format) == "structured"
        else SimpleFormatter()
    )

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(log_level)
    root.propagate = False
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Logger for a module, e.g. ``get_logger(__name__)``.

    Names outside the package are nested under it so they share its handler.
    """
    setup_logger()
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


logger = setup_logger()
