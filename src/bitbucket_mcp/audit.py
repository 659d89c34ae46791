"""Structured audit logging.

One event per tool call. Events carry the tool name, the targeted resource and the
outcome; they never contain argument values, upstream bodies or credential material.
"""

from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from .safety import redact_text


def new_correlation_id() -> str:
    """Generate a random correlation id for traceability."""
    return uuid.uuid4().hex


def _now_rfc3339() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class AuditEvent:
    """A single audit event."""

    timestamp: str
    correlation_id: str
    operation: str
    target: str
    outcome: str
    reason: str | None
    duration_ms: int | None

    def to_json(self) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.timestamp,
            "correlation_id": self.correlation_id,
            "operation": self.operation,
            "target": self.target,
            "outcome": self.outcome,
        }
        if self.reason is not None:
            payload["reason"] = redact_text(self.reason)
        if self.duration_ms is not None:
            payload["duration_ms"] = self.duration_ms
        return json.dumps(payload, sort_keys=True, separators=(",", ":"))


class AuditLogger:
    """Writes audit events as JSONL to stderr and optionally to a rotating file."""

    def __init__(
        self,
        *,
        sink_path: Path | None,
        max_bytes: int = 5 * 1024 * 1024,
        max_backups: int = 5,
    ) -> None:
        self._file_handler: RotatingFileHandler | None = None
        if sink_path is not None:
            try:
                sink_path.parent.mkdir(parents=True, exist_ok=True)
                self._file_handler = RotatingFileHandler(
                    sink_path,
                    maxBytes=max_bytes,
                    backupCount=max_backups,
                    encoding="utf-8",
                    delay=True,
                )
                self._file_handler.setFormatter(logging.Formatter("%(message)s"))
            except OSError:
                # File sink is optional; stderr still receives every event.
                self._file_handler = None

    def write_event(self, event: AuditEvent) -> None:
        """Write an audit event to stderr and the file sink, if any."""
        line = event.to_json()
        print(line, file=sys.stderr)
        if self._file_handler is not None:
            self._file_handler.emit(logging.makeLogRecord({"msg": line, "levelno": logging.INFO}))

    def close(self) -> None:
        if self._file_handler is not None:
            self._file_handler.close()

    def measure_start(self) -> float:
        """Return a monotonic start timestamp for duration measurement."""
        return time.monotonic()

    def measure_duration_ms(self, start: float) -> int:
        """Convert a monotonic start timestamp into elapsed milliseconds."""
        return int((time.monotonic() - start) * 1000)


def build_event(
    *,
    correlation_id: str,
    operation: str,
    target: str,
    outcome: str,
    reason: str | None = None,
    duration_ms: int | None = None,
) -> AuditEvent:
    """Construct an audit event."""
    return AuditEvent(
        timestamp=_now_rfc3339(),
        correlation_id=correlation_id,
        operation=operation,
        target=target,
        outcome=outcome,
        reason=reason,
        duration_ms=duration_ms,
    )
