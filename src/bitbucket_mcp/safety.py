"""Safety helpers.

Implements deterministic credential redaction for anything that may reach a log record.

Key rule: a value stored under a credential-looking key, or a string that looks like an
authorization header value, is replaced with a fixed placeholder before it is formatted.
"""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import Mapping
from typing import Any

REDACTED = "[REDACTED]"

_SENSITIVE_KEY_PARTS = (
    "password",
    "token",
    "secret",
    "auth",
    "credential",
)

# Bitbucket app passwords / access tokens start with ATBB / ATCTT.
_SECRET_VALUE_RE = re.compile(
    r"(?i)\b(?:bearer|basic)\s+[A-Za-z0-9._~+/=-]{8,}|\bATB[A-Za-z0-9_-]{10,}|\bATCTT[A-Za-z0-9_=-]{10,}"
)

_STANDARD_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


def looks_like_sensitive_key(key: object) -> bool:
    """Return True if a mapping key names credential material."""
    if not isinstance(key, str):
        return False
    lowered = key.strip().lower()
    return any(part in lowered for part in _SENSITIVE_KEY_PARTS)


def redact_text(text: str) -> str:
    """Return `text` with authorization-looking values masked."""
    if not isinstance(text, str):
        return "<non-string>"
    return _SECRET_VALUE_RE.sub(REDACTED, text)


def redact(obj: Any) -> Any:
    """Return a copy of `obj` with credential fields and values masked.

    Mappings and sequences are walked recursively; other objects are returned as-is.
    """
    if isinstance(obj, Mapping):
        return {k: (REDACTED if looks_like_sensitive_key(k) else redact(v)) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return type(obj)(redact(v) for v in obj)
    if isinstance(obj, str):
        return redact_text(obj)
    return obj


class RedactingFilter(logging.Filter):
    """Masks credentials in a record's message, args and `extra` attributes."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_text(record.msg)
        if isinstance(record.args, Mapping):
            record.args = redact(record.args)
        elif isinstance(record.args, tuple):
            record.args = tuple(redact(a) for a in record.args)

        for key in list(record.__dict__):
            if key in _STANDARD_RECORD_ATTRS:
                continue
            if looks_like_sensitive_key(key):
                record.__dict__[key] = REDACTED
            else:
                record.__dict__[key] = redact(record.__dict__[key])
        return True


class RedactingStreamHandler(logging.StreamHandler):
    """stderr handler with `RedactingFilter` pre-installed."""

    def __init__(self, stream: Any = None) -> None:
        super().__init__(stream if stream is not None else sys.stderr)
        self.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        self.addFilter(RedactingFilter())


def configure_logging(level: str | int = "INFO") -> logging.Handler:
    """Install a redacting stderr handler on the root logger.

    stdout is reserved for the MCP stdio transport. Calling this twice replaces the
    previously installed handler instead of stacking a second one.
    """
    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, RedactingStreamHandler):
            root.removeHandler(existing)

    handler = RedactingStreamHandler()
    root.addHandler(handler)
    # httpx logs full URLs (query strings included) at INFO; the client hooks log paths.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)
    return handler
