"""Shared fakes for bitbucket-mcp tests.

No test talks to a real Bitbucket instance: the backend is either an in-memory
`FakeBackend` or the real client over `httpx.MockTransport`.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable

import pytest
from bitbucket_mcp.audit import AuditEvent
from bitbucket_mcp.config import BitbucketConfig
from bitbucket_mcp.tools import Dispatcher, Runtime, build_runtime


@dataclass
class DummyAudit:
    events: list[AuditEvent] = field(default_factory=list)

    def write_event(self, event: AuditEvent) -> None:
        self.events.append(event)

    def close(self) -> None:
        return None

    def measure_start(self) -> float:
        return time.monotonic()

    def measure_duration_ms(self, start: float) -> int:
        return int((time.monotonic() - start) * 1000)


class FakeBackend:
    """In-memory stand-in for `BitbucketClient.send`."""

    def __init__(self, routes: dict[tuple[str, str], object] | None = None) -> None:
        self._routes = dict(routes or {})
        self.calls: list[dict[str, Any]] = []

    async def send(self, method: str, path: str, **kwargs: Any) -> object:
        self.calls.append({"method": method, "path": path, **kwargs})
        key = (method, path)
        if key not in self._routes:
            raise AssertionError(f"Unexpected Bitbucket call: {key}")
        val = self._routes[key]
        if isinstance(val, Exception):
            raise val
        return val


def make_config(**overrides: Any) -> BitbucketConfig:
    values: dict[str, Any] = {
        "base_url": "https://api.bitbucket.org/2.0",
        "token": "test-token-value",
        "default_workspace": None,
    }
    values.update(overrides)
    return BitbucketConfig(**values)


@pytest.fixture
def make_runtime() -> Callable[..., tuple[Runtime, FakeBackend, DummyAudit]]:
    def _make(
        routes: dict[tuple[str, str], object] | None = None,
        **config_overrides: Any,
    ) -> tuple[Runtime, FakeBackend, DummyAudit]:
        backend = FakeBackend(routes)
        audit = DummyAudit()
        runtime = build_runtime(make_config(**config_overrides), client=backend, audit=audit)  # type: ignore[arg-type]
        return runtime, backend, audit

    return _make


@pytest.fixture
def make_dispatcher(make_runtime) -> Callable[..., tuple[Dispatcher, FakeBackend, DummyAudit]]:  # noqa: ANN001
    def _make(
        routes: dict[tuple[str, str], object] | None = None,
        **config_overrides: Any,
    ) -> tuple[Dispatcher, FakeBackend, DummyAudit]:
        runtime, backend, audit = make_runtime(routes, **config_overrides)
        return Dispatcher(runtime), backend, audit

    return _make
