"""
Structured logging for Timin.

Loggers accept keyword fields, e.g.::

    logger = get_logger(__name__)
    logger.info("Shift created", shift_id=shift.id, employer_id=user.id)

Fields end up as top-level keys in JSON output or as ``key=value`` pairs in
text output. Call configure_logging() once at startup; until then records go
through whatever the root logger does.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "timin"

SENSITIVE_KEYS = {"password", "password_hash", "passwordhash", "token", "secret", "authorization"}

# Keywords the stdlib logging call itself understands
_LOGGING_KWARGS = {"exc_info", "stack_info", "stacklevel", "extra"}


def _clean_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if k.lower() not in SENSITIVE_KEYS}


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_obj.update(_clean_fields(getattr(record, "fields", {}) or {}))
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


class TextFormatter(logging.Formatter):
    """Human readable lines with key=value suffix."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _clean_fields(getattr(record, "fields", {}) or {})
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


class KeywordLogger(logging.LoggerAdapter):
    """Moves arbitrary keyword arguments into ``record.fields``."""

    def process(self, msg, kwargs):
        fields = {k: kwargs.pop(k) for k in list(kwargs) if k not in _LOGGING_KWARGS}
        extra = dict(kwargs.get("extra") or {})
        extra["fields"] = fields
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str) -> KeywordLogger:
    """Return a keyword-aware logger under the ``timin`` hierarchy."""
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return KeywordLogger(logging.getLogger(name), {})


def configure_logging(
    level: str = "INFO",
    fmt: str = "json",
    file_path: Optional[str] = None,
    max_bytes: int = 10485760,
    backup_count: int = 5,
) -> logging.Logger:
    """Attach handlers to the ``timin`` root logger. Safe to call repeatedly."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level.upper())
    root.propagate = False
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = JSONFormatter() if fmt == "json" else TextFormatter()

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(formatter)
    root.addHandler(stream)

    if file_path:
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            file_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        rotating.setFormatter(formatter)
        root.addHandler(rotating)

    return root
