"""Shared plumbing for the operation groups.

Every operation makes exactly one backend call through `BaseService._call`, which
converts a `BackendError` into an agent-safe `SafeError` and logs only a sanitized
summary of the failure.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol
from urllib.parse import quote

from ..config import BitbucketConfig
from ..errors import BackendError, describe_backend_error, internal_error, invalid_params

logger = logging.getLogger(__name__)


class BackendClient(Protocol):
    """The slice of `BitbucketClient` the services depend on."""

    async def send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
        response_format: str = "json",
    ) -> Any: ...


def api_path(*segments: object) -> str:
    """Join URL path segments, percent-encoding each one (`/` included)."""
    return "/" + "/".join(quote(str(s), safe="") for s in segments)


def text_result(text: str) -> dict[str, Any]:
    """Build a tool result holding one text block."""
    return {"content": [{"type": "text", "text": text}]}


def json_result(payload: Any) -> dict[str, Any]:
    """Build a tool result holding a JSON-serialized payload."""
    return text_result(json.dumps(payload, indent=2, default=str))


def values_result(payload: Any) -> dict[str, Any]:
    """Build a tool result from a paginated collection, keeping only `values`."""
    values = payload.get("values", []) if isinstance(payload, dict) else []
    return json_result(values)


class BaseService:
    """Base for the Repository / Pull Request / Branching Model groups."""

    def __init__(self, client: BackendClient, config: BitbucketConfig) -> None:
        self._client = client
        self._config = config

    def _workspace(self, workspace: str | None) -> str:
        resolved = workspace or self._config.default_workspace
        if not resolved:
            raise invalid_params(
                "Workspace must be provided either as a parameter or through BITBUCKET_WORKSPACE environment variable"
            )
        return resolved

    def _limit(self, limit: int | None) -> int:
        if limit is None:
            return self._config.limits.default_page_limit
        return int(limit)

    async def _call(self, action: str, method: str, path: str, **kwargs: Any) -> Any:
        """Send one request; translate backend failures for `action` ("list repositories", ...)."""
        try:
            return await self._client.send(method, path, **kwargs)
        except BackendError as err:
            logger.error(
                "Error trying to %s: kind=%s status=%s %s",
                action,
                err.kind,
                err.status_code,
                err.status_text or "",
            )
            raise internal_error(f"Failed to {action}: {describe_backend_error(err)}") from err
