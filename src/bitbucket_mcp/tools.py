"""Runtime wiring and tool dispatch.

This module:
- builds a runtime (config, HTTP client, operation groups, audit) from an explicit config
- maps every registered tool name to one operation-group call
- validates arguments against the advertised schema before invoking anything
- emits one audit event per tool call
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from .audit import AuditLogger, build_event, new_correlation_id
from .bitbucket_client import BitbucketClient
from .config import BitbucketConfig
from .errors import INTERNAL_ERROR, SafeError, internal_error, invalid_params, method_not_found
from .schemas import TOOL_METADATA, validate_tool_arguments
from .services import BackendClient, BranchingModelService, PullRequestService, RepositoryService

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


@dataclass(frozen=True, slots=True)
class Runtime:
    """Per-server dependencies shared across tool calls."""

    config: BitbucketConfig
    client: BackendClient
    audit: AuditLogger
    repositories: RepositoryService
    pull_requests: PullRequestService
    branching_models: BranchingModelService

    async def aclose(self) -> None:
        close = getattr(self.client, "aclose", None)
        if close is not None:
            await close()
        self.audit.close()


def build_runtime(
    config: BitbucketConfig,
    *,
    client: BackendClient | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    audit: AuditLogger | None = None,
) -> Runtime:
    """Construct the runtime for one server process.

    `client` replaces the HTTP client entirely (fake backends in tests); `transport`
    keeps the real client but swaps its network layer.
    """
    if client is None:
        client = BitbucketClient(config, transport=transport)
    if audit is None:
        audit = AuditLogger(sink_path=config.audit_log_path)
    return Runtime(
        config=config,
        client=client,
        audit=audit,
        repositories=RepositoryService(client, config),
        pull_requests=PullRequestService(client, config),
        branching_models=BranchingModelService(client, config),
    )


def _repo_ref(args: dict[str, Any]) -> dict[str, Any]:
    return {"workspace": args["workspace"], "repo_slug": args["repo_slug"]}


def _pr_ref(args: dict[str, Any]) -> dict[str, Any]:
    return {**_repo_ref(args), "pull_request_id": args["pull_request_id"]}


def _project_ref(args: dict[str, Any]) -> dict[str, Any]:
    return {"workspace": args["workspace"], "project_key": args["project_key"]}


def _settings(args: dict[str, Any]) -> dict[str, Any]:
    return {
        "development": args.get("development"),
        "production": args.get("production"),
        "branch_types": args.get("branch_types"),
    }


def build_handlers(runtime: Runtime) -> dict[str, Handler]:
    """Map each tool name to the operation it invokes."""
    repos = runtime.repositories
    prs = runtime.pull_requests
    models = runtime.branching_models
    return {
        # Repository operations
        "listRepositories": lambda a: repos.list_repositories(workspace=a.get("workspace"), limit=a.get("limit")),
        "getRepository": lambda a: repos.get_repository(**_repo_ref(a)),
        # Pull request operations
        "getPullRequests": lambda a: prs.get_pull_requests(
            workspace=a.get("workspace"),
            repo_slug=a["repo_slug"],
            state=a.get("state"),
            limit=a.get("limit"),
        ),
        "createPullRequest": lambda a: prs.create_pull_request(
            **_repo_ref(a),
            title=a["title"],
            description=a["description"],
            source_branch=a["sourceBranch"],
            target_branch=a["targetBranch"],
            reviewers=a.get("reviewers"),
        ),
        "getPullRequest": lambda a: prs.get_pull_request(**_pr_ref(a)),
        "updatePullRequest": lambda a: prs.update_pull_request(
            **_pr_ref(a), title=a.get("title"), description=a.get("description")
        ),
        "getPullRequestActivity": lambda a: prs.get_pull_request_activity(**_pr_ref(a)),
        "approvePullRequest": lambda a: prs.approve_pull_request(**_pr_ref(a)),
        "unapprovePullRequest": lambda a: prs.unapprove_pull_request(**_pr_ref(a)),
        "declinePullRequest": lambda a: prs.decline_pull_request(**_pr_ref(a), message=a.get("message")),
        "mergePullRequest": lambda a: prs.merge_pull_request(
            **_pr_ref(a), message=a.get("message"), strategy=a.get("strategy")
        ),
        "getPullRequestComments": lambda a: prs.get_pull_request_comments(**_pr_ref(a)),
        "getPullRequestDiff": lambda a: prs.get_pull_request_diff(**_pr_ref(a)),
        "getPullRequestCommits": lambda a: prs.get_pull_request_commits(**_pr_ref(a)),
        # Branching model operations
        "getRepositoryBranchingModel": lambda a: models.get_repository_branching_model(**_repo_ref(a)),
        "getRepositoryBranchingModelSettings": lambda a: models.get_repository_branching_model_settings(
            **_repo_ref(a)
        ),
        "updateRepositoryBranchingModelSettings": lambda a: models.update_repository_branching_model_settings(
            **_repo_ref(a), **_settings(a)
        ),
        "getEffectiveRepositoryBranchingModel": lambda a: models.get_effective_repository_branching_model(
            **_repo_ref(a)
        ),
        "getProjectBranchingModel": lambda a: models.get_project_branching_model(**_project_ref(a)),
        "getProjectBranchingModelSettings": lambda a: models.get_project_branching_model_settings(
            **_project_ref(a)
        ),
        "updateProjectBranchingModelSettings": lambda a: models.update_project_branching_model_settings(
            **_project_ref(a), **_settings(a)
        ),
    }


def _target_from_args(arguments: dict[str, Any]) -> str:
    workspace = arguments.get("workspace")
    scope = arguments.get("repo_slug") or arguments.get("project_key")
    if isinstance(workspace, str) and workspace and isinstance(scope, str) and scope:
        return f"{workspace}/{scope}"
    if isinstance(workspace, str) and workspace:
        return workspace
    return "<unknown>"


class Dispatcher:
    """Routes a tool call to its handler and enforces the error contract."""

    def __init__(self, runtime: Runtime) -> None:
        self._runtime = runtime
        self._handlers = build_handlers(runtime)
        missing = set(TOOL_METADATA) ^ set(self._handlers)
        if missing:
            raise RuntimeError(f"Tool registry and handlers disagree: {sorted(missing)}")

    @property
    def tool_names(self) -> list[str]:
        return list(self._handlers)

    def _lookup(self, name: object) -> Handler:
        # Plain dict membership only; attribute-style names never resolve.
        if not isinstance(name, str) or name not in self._handlers:
            raise method_not_found(name)
        return self._handlers[name]

    async def dispatch(self, name: str, arguments: dict[str, Any] | None) -> dict[str, Any]:
        """Execute one tool call.

        Returns:
            Tool result `{"content": [{"type": "text", "text": ...}]}`.

        Raises:
            SafeError: MethodNotFound, InvalidParams or InternalError.
        """
        audit = self._runtime.audit
        correlation_id = new_correlation_id()
        start = audit.measure_start()
        args: dict[str, Any] = {} if arguments is None else arguments
        target = _target_from_args(args) if isinstance(args, dict) else "<unknown>"
        operation = name if isinstance(name, str) else "<invalid>"

        try:
            handler = self._lookup(name)
            if not isinstance(args, dict):
                raise invalid_params("Tool arguments must be an object")
            validate_tool_arguments(name, args)

            result = await handler(args)
        except SafeError as err:
            outcome = "failed" if err.code == INTERNAL_ERROR else "denied"
            self._write_audit(correlation_id, operation, target, outcome, err.message, start)
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.error("Unexpected failure in tool %s: %s", operation, type(exc).__name__)
            self._write_audit(correlation_id, operation, target, "failed", "Internal error", start)
            raise internal_error("Internal error") from exc

        self._write_audit(correlation_id, operation, target, "succeeded", None, start)
        return result

    def _write_audit(
        self,
        correlation_id: str,
        operation: str,
        target: str,
        outcome: str,
        reason: str | None,
        start: float,
    ) -> None:
        audit = self._runtime.audit
        audit.write_event(
            build_event(
                correlation_id=correlation_id,
                operation=operation,
                target=target,
                outcome=outcome,
                reason=reason,
                duration_ms=audit.measure_duration_ms(start),
            )
        )
