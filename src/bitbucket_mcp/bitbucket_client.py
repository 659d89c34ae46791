"""Bitbucket REST client wrapper.

Provides:
- one auth mechanism per config (bearer token wins over basic auth)
- a fixed, finite timeout and no redirects
- a single attempt per call (no retries)
- request/response logging limited to method, path and status
- safe error translation into `BackendError`
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from . import __version__
from .config import BitbucketConfig
from .errors import BackendError, extract_upstream_message

logger = logging.getLogger(__name__)

USER_AGENT = f"bitbucket-mcp/{__version__}"


async def _log_request(request: httpx.Request) -> None:
    logger.info("API request %s %s", request.method, request.url.path)


async def _log_response(response: httpx.Response) -> None:
    request = response.request
    if response.is_success:
        logger.info("API response %s %s -> %s", request.method, request.url.path, response.status_code)
    else:
        logger.warning(
            "API error %s %s -> %s %s",
            request.method,
            request.url.path,
            response.status_code,
            response.reason_phrase,
        )


class BitbucketClient:
    """Minimal Bitbucket REST client sharing one connection pool across tool calls."""

    def __init__(
        self,
        config: BitbucketConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a Bitbucket REST client.

        Args:
            config: Resolved backend configuration.
            transport: Optional httpx transport for tests.
        """
        self._config = config
        self._base_url = config.base_url.rstrip("/")

        headers = {
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        auth: httpx.Auth | None = None
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        elif config.username and config.password:
            auth = httpx.BasicAuth(config.username, config.password)

        self._client = httpx.AsyncClient(
            headers=headers,
            auth=auth,
            timeout=httpx.Timeout(config.limits.timeout_s),
            follow_redirects=False,
            transport=transport,
            event_hooks={"request": [_log_request], "response": [_log_response]},
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> BitbucketClient:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
        response_format: str = "json",
    ) -> Any:
        """Perform one request and return the decoded body.

        `response_format="json"` returns decoded JSON (None for an empty body);
        `"text"` returns the body text untouched.

        Raises:
            BackendError: On timeout, transport failure, non-2xx status or an
                undecodable JSON body.
        """
        url = f"{self._base_url}{path}"
        query = {k: v for k, v in (params or {}).items() if v is not None}

        request_kwargs: dict[str, Any] = {"params": query or None, "headers": headers}
        if json_body is not None:
            request_kwargs["json"] = json_body

        try:
            resp = await self._client.request(method, url, **request_kwargs)
        except httpx.TimeoutException as exc:
            logger.error("API timeout %s %s", method, path)
            raise BackendError(kind="Timeout") from exc
        except httpx.HTTPError as exc:
            logger.error("API network failure %s %s: %s", method, path, type(exc).__name__)
            raise BackendError(kind="Network") from exc

        if not resp.is_success:
            upstream_message = None
            try:
                upstream_message = extract_upstream_message(resp.json())
            except ValueError:
                upstream_message = None
            raise BackendError(
                kind="HTTP",
                status_code=resp.status_code,
                status_text=resp.reason_phrase,
                upstream_message=upstream_message,
            )

        if response_format == "text":
            return resp.text

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise BackendError(kind="InvalidResponse", status_code=resp.status_code) from exc
