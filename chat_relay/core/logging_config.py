"""Structured logging for the relay.

One stdout handler; each record is a JSON object (or ``key=value`` pairs) with
the fields passed through ``extra`` (``request_id``, ``tokens``, ``stored_name``
and so on) alongside the message. Credentials are masked by field name, so the
API key or an ``Authorization`` header never reach the log even when a caller
passes them as ``extra``; ordinary fields are logged as they are.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

REDACTED = "[REDACTED]"

SENSITIVE_FIELDS = frozenset(
    ("api_key", "apikey", "authorization", "password", "secret", "access_token", "cookie")
)
_SENSITIVE_SUFFIXES = ("_api_key", "_password", "_secret")

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


def is_sensitive(field: str) -> bool:
    name = field.lower().replace("-", "_")
    return name in SENSITIVE_FIELDS or name.endswith(_SENSITIVE_SUFFIXES)


def mask_fields(value: Any) -> Any:
    """Mask credential-named entries of ``value``, recursing into dicts and lists."""
    if isinstance(value, dict):
        return {k: REDACTED if is_sensitive(str(k)) else mask_fields(v) for k, v in value.items()}
    if isinstance(value, list):
        return [mask_fields(v) for v in value]
    return value


class StructuredFormatter(logging.Formatter):
    def __init__(self, use_json: bool = True) -> None:
        super().__init__()
        self.use_json = use_json

    def fields(self, record: logging.LogRecord) -> dict[str, Any]:
        extra = {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}
        out: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **mask_fields(extra),
        }
        if record.exc_info:
            out["exception"] = self.formatException(record.exc_info)
        return out

    def format(self, record: logging.LogRecord) -> str:
        out = self.fields(record)
        if self.use_json:
            return json.dumps(out, default=str, ensure_ascii=False)
        return " ".join(f"{k}={v!r}" for k, v in out.items())


def setup_logging(level: str = "INFO", use_json: bool = True) -> None:
    """Configure the root logger once; later calls only adjust the level."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not any(isinstance(h.formatter, StructuredFormatter) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter(use_json=use_json))
        root.addHandler(handler)
    # Werkzeug's per-request line duplicates the relay's own stream logs.
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
