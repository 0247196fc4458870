"""Structured logging for relay calls.

Extra fields (session_id, tokens, preview, ...) are emitted next to the message.
API keys never reach the output: values under credential-like keys are replaced,
and bearer tokens or `sk-...` keys are masked wherever they appear in text.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from typing import Any

REDACTED = "[REDACTED]"

SENSITIVE_KEYS = frozenset(("authorization", "api_key", "apikey", "key", "password", "secret"))

_TOKEN_PATTERN = re.compile(r"\bsk-[A-Za-z0-9][A-Za-z0-9_\-]*|\bBearer\s+[^\s\"',]+", re.IGNORECASE)

# LogRecord attributes that are not user-supplied extras
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _mask(text: str) -> str:
    return _TOKEN_PATTERN.sub(REDACTED, text)


def _redact(obj: Any, key: str | None = None) -> Any:
    if key is not None and key.lower() in SENSITIVE_KEYS:
        return REDACTED
    if isinstance(obj, dict):
        return {k: _redact(v, str(k)) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_redact(v) for v in obj]
    if isinstance(obj, str):
        return _mask(obj)
    return obj


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: _redact(v, k) for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


class StructuredFormatter(logging.Formatter):
    """One line per record: JSON object, or key=value pairs for terminals."""

    def __init__(self, use_json: bool = True) -> None:
        super().__init__()
        self.use_json = use_json

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": _mask(record.getMessage()),
        }
        entry.update(_extras(record))
        if record.exc_info:
            entry["exception"] = _mask(self.formatException(record.exc_info))
        if self.use_json:
            return json.dumps(entry, default=str, ensure_ascii=False)
        return " ".join(f"{k}={v!r}" for k, v in entry.items())


def setup_logging(level: str = "INFO", use_json: bool = True) -> None:
    """Install StructuredFormatter on the root logger (stderr keeps stdout for streamed tokens)."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(StructuredFormatter(use_json=use_json))
        root.addHandler(handler)
