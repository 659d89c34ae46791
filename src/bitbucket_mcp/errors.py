"""Safe error types and helpers.

Errors returned to agents must be non-secret and stable. Upstream failures are
carried as `BackendError` inside the service layer and converted into a
`SafeError` before they reach the dispatcher.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

CONFIG = "Config"
METHOD_NOT_FOUND = "MethodNotFound"
INVALID_PARAMS = "InvalidParams"
INTERNAL_ERROR = "InternalError"


@dataclass(frozen=True, slots=True)
class SafeError(Exception):
    """An error safe to expose to agents.

    This must never include secrets (tokens, passwords, authorization headers)
    or raw upstream response bodies.
    """

    code: str
    message: str
    hint: str | None = None
    status_code: int | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class BackendError(Exception):
    """A failed call to the Bitbucket REST API.

    `upstream_message` is only used to build the agent-facing error; it is
    never written to logs.
    """

    kind: str
    status_code: int | None = None
    status_text: str | None = None
    upstream_message: str | None = None

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"Bitbucket request failed ({self.kind} {self.status_code} {self.status_text or ''})".rstrip()
        return f"Bitbucket request failed ({self.kind})"


def extract_upstream_message(payload: Any) -> str | None:
    """Pull a human-readable message out of a Bitbucket error body.

    Prefers `error.message`, then a top-level `message`.
    """
    if not isinstance(payload, dict):
        return None
    nested = payload.get("error")
    if isinstance(nested, dict) and isinstance(nested.get("message"), str) and nested["message"]:
        return nested["message"]
    message = payload.get("message")
    if isinstance(message, str) and message:
        return message
    return None


def describe_backend_error(err: BackendError) -> str:
    """Return the agent-facing text for a backend failure."""
    if err.upstream_message:
        return err.upstream_message
    if err.kind == "HTTP" and err.status_code is not None:
        return f"Request failed with status code {err.status_code}"
    if err.kind == "Timeout":
        return "Request timed out"
    if err.kind == "InvalidResponse":
        return "Invalid response from Bitbucket"
    return "Network request failed"


def invalid_params(message: str, hint: str | None = None) -> SafeError:
    """Error for missing or malformed tool arguments."""
    return SafeError(code=INVALID_PARAMS, message=message, hint=hint)


def method_not_found(name: object) -> SafeError:
    """Error for a tool name that is not registered."""
    return SafeError(code=METHOD_NOT_FOUND, message=f"Unknown tool: {name}")


def internal_error(message: str = "Internal error") -> SafeError:
    """Error for upstream or unexpected failures."""
    return SafeError(code=INTERNAL_ERROR, message=message)
