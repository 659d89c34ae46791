"""Tool registry: the allow-listed tools and their input schemas.

The schemas advertised to agents are the same ones the dispatcher validates
arguments against, so the two cannot drift apart.
"""

from __future__ import annotations

from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError, best_match

from .errors import invalid_params

WORKSPACE_SCHEMA: dict[str, Any] = {"type": "string", "minLength": 1, "description": "Bitbucket workspace name"}
REPO_SLUG_SCHEMA: dict[str, Any] = {"type": "string", "minLength": 1, "description": "Repository slug"}
PULL_REQUEST_ID_SCHEMA: dict[str, Any] = {
    "anyOf": [{"type": "string", "minLength": 1}, {"type": "integer", "minimum": 1}],
    "description": "Pull request ID",
}
PROJECT_KEY_SCHEMA: dict[str, Any] = {"type": "string", "minLength": 1, "description": "Project key"}
LIMIT_SCHEMA: dict[str, Any] = {"type": "integer", "minimum": 1}

PULL_REQUEST_STATES = ("OPEN", "MERGED", "DECLINED", "SUPERSEDED")
MERGE_STRATEGIES = ("merge-commit", "squash", "fast-forward")

_DEVELOPMENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "description": "Development branch settings",
    "properties": {
        "name": {"type": "string", "description": "Branch name"},
        "use_mainbranch": {"type": "boolean", "description": "Use main branch"},
    },
}

_PRODUCTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "description": "Production branch settings",
    "properties": {
        "name": {"type": "string", "description": "Branch name"},
        "use_mainbranch": {"type": "boolean", "description": "Use main branch"},
        "enabled": {"type": "boolean", "description": "Enable production branch"},
    },
}

_BRANCH_TYPES_SCHEMA: dict[str, Any] = {
    "type": "array",
    "description": "Branch types configuration",
    "items": {
        "type": "object",
        "required": ["kind"],
        "properties": {
            "kind": {"type": "string", "minLength": 1, "description": "Branch type kind (e.g., bugfix, feature)"},
            "prefix": {"type": "string", "description": "Branch prefix"},
            "enabled": {"type": "boolean", "description": "Enable this branch type"},
        },
    },
}


def _object(properties: dict[str, Any], required: list[str]) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


_REPO_PROPS = {"workspace": WORKSPACE_SCHEMA, "repo_slug": REPO_SLUG_SCHEMA}
_PR_PROPS = {**_REPO_PROPS, "pull_request_id": PULL_REQUEST_ID_SCHEMA}
_PR_REQUIRED = ["workspace", "repo_slug", "pull_request_id"]
_PROJECT_PROPS = {"workspace": WORKSPACE_SCHEMA, "project_key": PROJECT_KEY_SCHEMA}
_SETTINGS_PROPS = {
    "development": _DEVELOPMENT_SCHEMA,
    "production": _PRODUCTION_SCHEMA,
    "branch_types": _BRANCH_TYPES_SCHEMA,
}

TOOL_METADATA: dict[str, dict[str, Any]] = {
    "listRepositories": {
        "description": "List Bitbucket repositories",
        "inputSchema": _object(
            {
                "workspace": WORKSPACE_SCHEMA,
                "limit": {**LIMIT_SCHEMA, "description": "Maximum number of repositories to return"},
            },
            [],
        ),
    },
    "getRepository": {
        "description": "Get repository details",
        "inputSchema": _object(_REPO_PROPS, ["workspace", "repo_slug"]),
    },
    "getPullRequests": {
        "description": "Get pull requests for a repository",
        "inputSchema": _object(
            {
                **_REPO_PROPS,
                "state": {"type": "string", "enum": list(PULL_REQUEST_STATES), "description": "Pull request state"},
                "limit": {**LIMIT_SCHEMA, "description": "Maximum number of pull requests to return"},
            },
            ["repo_slug"],
        ),
    },
    "createPullRequest": {
        "description": "Create a new pull request",
        "inputSchema": _object(
            {
                **_REPO_PROPS,
                "title": {"type": "string", "minLength": 1, "description": "Pull request title"},
                "description": {"type": "string", "description": "Pull request description"},
                "sourceBranch": {"type": "string", "minLength": 1, "description": "Source branch name"},
                "targetBranch": {"type": "string", "minLength": 1, "description": "Target branch name"},
                "reviewers": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "List of reviewer usernames",
                },
            },
            ["workspace", "repo_slug", "title", "description", "sourceBranch", "targetBranch"],
        ),
    },
    "getPullRequest": {
        "description": "Get details for a specific pull request",
        "inputSchema": _object(_PR_PROPS, _PR_REQUIRED),
    },
    "updatePullRequest": {
        "description": "Update a pull request",
        "inputSchema": _object(
            {
                **_PR_PROPS,
                "title": {"type": "string", "description": "New pull request title"},
                "description": {"type": "string", "description": "New pull request description"},
            },
            _PR_REQUIRED,
        ),
    },
    "getPullRequestActivity": {
        "description": "Get activity log for a pull request",
        "inputSchema": _object(_PR_PROPS, _PR_REQUIRED),
    },
    "approvePullRequest": {
        "description": "Approve a pull request",
        "inputSchema": _object(_PR_PROPS, _PR_REQUIRED),
    },
    "unapprovePullRequest": {
        "description": "Remove approval from a pull request",
        "inputSchema": _object(_PR_PROPS, _PR_REQUIRED),
    },
    "declinePullRequest": {
        "description": "Decline a pull request",
        "inputSchema": _object(
            {**_PR_PROPS, "message": {"type": "string", "description": "Reason for declining"}},
            _PR_REQUIRED,
        ),
    },
    "mergePullRequest": {
        "description": "Merge a pull request",
        "inputSchema": _object(
            {
                **_PR_PROPS,
                "message": {"type": "string", "description": "Merge commit message"},
                "strategy": {"type": "string", "enum": list(MERGE_STRATEGIES), "description": "Merge strategy"},
            },
            _PR_REQUIRED,
        ),
    },
    "getPullRequestComments": {
        "description": "List comments on a pull request",
        "inputSchema": _object(_PR_PROPS, _PR_REQUIRED),
    },
    "getPullRequestDiff": {
        "description": "Get diff for a pull request",
        "inputSchema": _object(_PR_PROPS, _PR_REQUIRED),
    },
    "getPullRequestCommits": {
        "description": "Get commits on a pull request",
        "inputSchema": _object(_PR_PROPS, _PR_REQUIRED),
    },
    "getRepositoryBranchingModel": {
        "description": "Get the branching model for a repository",
        "inputSchema": _object(_REPO_PROPS, ["workspace", "repo_slug"]),
    },
    "getRepositoryBranchingModelSettings": {
        "description": "Get the branching model config for a repository",
        "inputSchema": _object(_REPO_PROPS, ["workspace", "repo_slug"]),
    },
    "updateRepositoryBranchingModelSettings": {
        "description": "Update the branching model config for a repository",
        "inputSchema": _object({**_REPO_PROPS, **_SETTINGS_PROPS}, ["workspace", "repo_slug"]),
    },
    "getEffectiveRepositoryBranchingModel": {
        "description": "Get the effective branching model for a repository",
        "inputSchema": _object(_REPO_PROPS, ["workspace", "repo_slug"]),
    },
    "getProjectBranchingModel": {
        "description": "Get the branching model for a project",
        "inputSchema": _object(_PROJECT_PROPS, ["workspace", "project_key"]),
    },
    "getProjectBranchingModelSettings": {
        "description": "Get the branching model config for a project",
        "inputSchema": _object(_PROJECT_PROPS, ["workspace", "project_key"]),
    },
    "updateProjectBranchingModelSettings": {
        "description": "Update the branching model config for a project",
        "inputSchema": _object({**_PROJECT_PROPS, **_SETTINGS_PROPS}, ["workspace", "project_key"]),
    },
}

_VALIDATORS: dict[str, Draft7Validator] = {
    name: Draft7Validator(meta["inputSchema"]) for name, meta in TOOL_METADATA.items()
}


def list_tool_definitions() -> list[dict[str, Any]]:
    """Return the tool descriptors in registry order."""
    return [
        {"name": name, "description": meta["description"], "inputSchema": meta["inputSchema"]}
        for name, meta in TOOL_METADATA.items()
    ]


def _error_path(error: ValidationError) -> str:
    parts = [str(p) for p in error.absolute_path]
    return ".".join(parts) if parts else "arguments"


def validate_tool_arguments(tool_name: str, arguments: dict[str, Any]) -> None:
    """Validate tool arguments against the tool's declared input schema.

    Extra, undeclared arguments are ignored.

    Raises:
        SafeError: InvalidParams naming the first failing field.
    """
    first = best_match(_VALIDATORS[tool_name].iter_errors(arguments))
    if first is None:
        return
    raise invalid_params(
        f"Invalid arguments for {tool_name}: {_error_path(first)}: {first.message}",
        hint=f"Expected input schema of tool '{tool_name}'",
    )
