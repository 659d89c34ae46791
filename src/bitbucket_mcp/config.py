"""Configuration loading for bitbucket-mcp.

Configuration is supplied by the host environment (e.g., MCP client config), not by the agent.
Credentials (token, password) must never be emitted to agents, logs, or audit reasons.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .errors import CONFIG, SafeError

DEFAULT_BASE_URL = "https://api.bitbucket.org/2.0"


@dataclass(frozen=True, slots=True)
class LimitsConfig:
    """Non-functional limits."""

    timeout_s: float = 30.0
    default_page_limit: int = 10


@dataclass(frozen=True, slots=True)
class BitbucketConfig:
    """Backend binding configuration, resolved once at startup."""

    base_url: str
    token: str | None = field(default=None, repr=False)
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    default_workspace: str | None = None
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    audit_log_path: Path | None = None

    @property
    def auth_mode(self) -> str:
        """Bearer wins when a token is present, even if a basic pair is also set."""
        if self.token:
            return "bearer"
        return "basic"

    def describe(self) -> dict[str, object]:
        """Non-secret summary for startup logs and the status resource."""
        return {
            "base_url": self.base_url,
            "auth_mode": self.auth_mode,
            "has_username": bool(self.username),
            "default_workspace_configured": bool(self.default_workspace),
            "timeout_s": self.limits.timeout_s,
        }


def _env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_timeout(value: str | None) -> float:
    if value is None:
        return LimitsConfig().timeout_s
    try:
        timeout = float(value)
    except ValueError as exc:
        raise SafeError(code=CONFIG, message="BITBUCKET_MCP_TIMEOUT_S must be a number") from exc
    if timeout <= 0:
        raise SafeError(code=CONFIG, message="BITBUCKET_MCP_TIMEOUT_S must be positive")
    return timeout


def validate_config(config: BitbucketConfig) -> None:
    """Reject a configuration that cannot authenticate against the backend.

    Raises:
        SafeError: If the base URL is empty or no auth mode resolves.
    """
    if not config.base_url:
        raise SafeError(code=CONFIG, message="BITBUCKET_URL is required")
    if not config.token and not (config.username and config.password):
        raise SafeError(
            code=CONFIG,
            message="Either BITBUCKET_TOKEN or BITBUCKET_USERNAME/BITBUCKET_PASSWORD is required",
        )


def load_config_from_env() -> BitbucketConfig:
    """Load and validate configuration from environment variables.

    Raises:
        SafeError: If configuration is missing/invalid.
    """
    base_url_raw = os.getenv("BITBUCKET_URL")
    base_url = DEFAULT_BASE_URL if base_url_raw is None else base_url_raw.strip().rstrip("/")

    audit_path: Path | None = None
    audit_path_raw = _env("BITBUCKET_MCP_AUDIT_LOG_PATH")
    if audit_path_raw:
        p = Path(audit_path_raw)
        if not p.is_absolute():
            raise SafeError(code=CONFIG, message="BITBUCKET_MCP_AUDIT_LOG_PATH must be an absolute path when set")
        audit_path = p

    config = BitbucketConfig(
        base_url=base_url,
        token=_env("BITBUCKET_TOKEN"),
        username=_env("BITBUCKET_USERNAME"),
        password=_env("BITBUCKET_PASSWORD"),
        default_workspace=_env("BITBUCKET_WORKSPACE"),
        limits=LimitsConfig(timeout_s=_parse_timeout(_env("BITBUCKET_MCP_TIMEOUT_S"))),
        audit_log_path=audit_path,
    )
    validate_config(config)
    return config
