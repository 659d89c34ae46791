"""Happy-path request construction for every tool."""

from __future__ import annotations

import json
from typing import Any

import pytest
from bitbucket_mcp.services.pullrequest import UNAPPROVE_CONFIRMATION

PR = {"workspace": "acme", "repo_slug": "widgets", "pull_request_id": 42}
PR_PATH = "/repositories/acme/widgets/pullrequests/42"


def _text(result: dict[str, Any]) -> str:
    assert len(result["content"]) == 1
    block = result["content"][0]
    assert block["type"] == "text"
    return block["text"]


def _json(result: dict[str, Any]) -> Any:
    return json.loads(_text(result))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "values",
    [[], [{"slug": "widgets"}], [{"slug": "a"}, {"slug": "b"}, {"slug": "c"}]],
)
async def test_list_repositories_returns_values_only(make_dispatcher, values: list) -> None:  # noqa: ANN001
    dispatcher, backend, _audit = make_dispatcher(
        {("GET", "/repositories/acme"): {"pagelen": 10, "size": len(values), "values": values}},
    )

    result = await dispatcher.dispatch("listRepositories", {"workspace": "acme", "limit": 5})

    assert _json(result) == values
    assert backend.calls[0]["params"] == {"limit": 5}


@pytest.mark.asyncio
async def test_get_repository_returns_payload(make_dispatcher) -> None:  # noqa: ANN001
    repo = {"slug": "widgets", "full_name": "acme/widgets", "is_private": True}
    dispatcher, backend, _audit = make_dispatcher({("GET", "/repositories/acme/widgets"): repo})

    result = await dispatcher.dispatch("getRepository", {"workspace": "acme", "repo_slug": "widgets"})

    assert _json(result) == repo
    assert backend.calls[0]["method"] == "GET"


@pytest.mark.asyncio
async def test_get_pull_requests_passes_state_and_default_limit(make_dispatcher) -> None:  # noqa: ANN001
    dispatcher, backend, _audit = make_dispatcher(
        {("GET", "/repositories/acme/widgets/pullrequests"): {"values": [{"id": 1}]}},
    )

    result = await dispatcher.dispatch(
        "getPullRequests", {"workspace": "acme", "repo_slug": "widgets", "state": "MERGED"}
    )

    assert _json(result) == [{"id": 1}]
    assert backend.calls[0]["params"] == {"state": "MERGED", "limit": 10}


@pytest.mark.asyncio
async def test_create_pull_request_body(make_dispatcher) -> None:  # noqa: ANN001
    created = {"id": 7, "title": "Add widgets"}
    dispatcher, backend, _audit = make_dispatcher(
        {("POST", "/repositories/acme/widgets/pullrequests"): created},
    )

    result = await dispatcher.dispatch(
        "createPullRequest",
        {
            "workspace": "acme",
            "repo_slug": "widgets",
            "title": "Add widgets",
            "description": "Adds the widget module",
            "sourceBranch": "feature/widgets",
            "targetBranch": "main",
            "reviewers": ["bob", "carol"],
        },
    )

    assert _json(result) == created
    assert backend.calls[0]["json_body"] == {
        "title": "Add widgets",
        "description": "Adds the widget module",
        "source": {"branch": {"name": "feature/widgets"}},
        "destination": {"branch": {"name": "main"}},
        "reviewers": [{"username": "bob"}, {"username": "carol"}],
        "close_source_branch": True,
    }


@pytest.mark.asyncio
async def test_create_pull_request_without_reviewers_sends_empty_list(make_dispatcher) -> None:  # noqa: ANN001
    dispatcher, backend, _audit = make_dispatcher(
        {("POST", "/repositories/acme/widgets/pullrequests"): {"id": 8}},
    )

    await dispatcher.dispatch(
        "createPullRequest",
        {
            "workspace": "acme",
            "repo_slug": "widgets",
            "title": "t",
            "description": "",
            "sourceBranch": "a",
            "targetBranch": "b",
        },
    )

    assert backend.calls[0]["json_body"]["reviewers"] == []


@pytest.mark.asyncio
async def test_get_pull_request(make_dispatcher) -> None:  # noqa: ANN001
    dispatcher, _backend, _audit = make_dispatcher({("GET", PR_PATH): {"id": 42, "state": "OPEN"}})

    result = await dispatcher.dispatch("getPullRequest", PR)

    assert _json(result) == {"id": 42, "state": "OPEN"}


@pytest.mark.asyncio
async def test_update_pull_request_sends_only_supplied_fields(make_dispatcher) -> None:  # noqa: ANN001
    dispatcher, backend, _audit = make_dispatcher({("PUT", PR_PATH): {"id": 42, "title": "New"}})

    await dispatcher.dispatch("updatePullRequest", {**PR, "title": "New"})

    assert backend.calls[0]["json_body"] == {"title": "New"}


@pytest.mark.asyncio
async def test_update_pull_request_keeps_empty_description(make_dispatcher) -> None:  # noqa: ANN001
    dispatcher, backend, _audit = make_dispatcher({("PUT", PR_PATH): {"id": 42}})

    await dispatcher.dispatch("updatePullRequest", {**PR, "description": ""})

    assert backend.calls[0]["json_body"] == {"description": ""}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("tool", "suffix"),
    [
        ("getPullRequestActivity", "activity"),
        ("getPullRequestComments", "comments"),
        ("getPullRequestCommits", "commits"),
    ],
)
async def test_pull_request_collections_unwrap_values(make_dispatcher, tool: str, suffix: str) -> None:  # noqa: ANN001
    dispatcher, backend, _audit = make_dispatcher(
        {("GET", f"{PR_PATH}/{suffix}"): {"values": [{"n": 1}, {"n": 2}], "next": "https://x"}},
    )

    result = await dispatcher.dispatch(tool, PR)

    assert _json(result) == [{"n": 1}, {"n": 2}]
    assert backend.calls[0]["path"] == f"{PR_PATH}/{suffix}"


@pytest.mark.asyncio
async def test_approve_pull_request_posts_without_body(make_dispatcher) -> None:  # noqa: ANN001
    dispatcher, backend, _audit = make_dispatcher({("POST", f"{PR_PATH}/approve"): {"approved": True}})

    result = await dispatcher.dispatch("approvePullRequest", PR)

    assert _json(result) == {"approved": True}
    assert "json_body" not in backend.calls[0]


@pytest.mark.asyncio
async def test_unapprove_pull_request_returns_confirmation(make_dispatcher) -> None:  # noqa: ANN001
    dispatcher, backend, _audit = make_dispatcher({("DELETE", f"{PR_PATH}/approve"): None})

    result = await dispatcher.dispatch("unapprovePullRequest", PR)

    assert _text(result) == UNAPPROVE_CONFIRMATION
    assert backend.calls[0]["method"] == "DELETE"


@pytest.mark.asyncio
async def test_decline_pull_request_with_and_without_message(make_dispatcher) -> None:  # noqa: ANN001
    dispatcher, backend, _audit = make_dispatcher({("POST", f"{PR_PATH}/decline"): {"state": "DECLINED"}})

    await dispatcher.dispatch("declinePullRequest", {**PR, "message": "Superseded by #43"})
    await dispatcher.dispatch("declinePullRequest", PR)

    assert backend.calls[0]["json_body"] == {"message": "Superseded by #43"}
    assert backend.calls[1]["json_body"] == {}


@pytest.mark.asyncio
async def test_merge_pull_request_maps_strategy(make_dispatcher) -> None:  # noqa: ANN001
    dispatcher, backend, _audit = make_dispatcher({("POST", f"{PR_PATH}/merge"): {"state": "MERGED"}})

    result = await dispatcher.dispatch("mergePullRequest", {**PR, "message": "Ship it", "strategy": "squash"})
    await dispatcher.dispatch("mergePullRequest", PR)

    assert _json(result) == {"state": "MERGED"}
    assert backend.calls[0]["json_body"] == {"message": "Ship it", "merge_strategy": "squash"}
    assert backend.calls[1]["json_body"] == {}


@pytest.mark.asyncio
async def test_get_pull_request_diff_returns_raw_text(make_dispatcher) -> None:  # noqa: ANN001
    diff = "diff --git a/x b/x\n-old\n+new\n"
    dispatcher, backend, _audit = make_dispatcher({("GET", f"{PR_PATH}/diff"): diff})

    result = await dispatcher.dispatch("getPullRequestDiff", PR)

    assert _text(result) == diff
    assert backend.calls[0]["headers"] == {"Accept": "text/plain"}
    assert backend.calls[0]["response_format"] == "text"


@pytest.mark.asyncio
async def test_pull_request_id_string_is_used_in_path(make_dispatcher) -> None:  # noqa: ANN001
    dispatcher, backend, _audit = make_dispatcher({("GET", PR_PATH): {"id": 42}})

    await dispatcher.dispatch("getPullRequest", {**PR, "pull_request_id": "42"})

    assert backend.calls[0]["path"] == PR_PATH


@pytest.mark.asyncio
async def test_path_segments_are_percent_encoded(make_dispatcher) -> None:  # noqa: ANN001
    dispatcher, backend, _audit = make_dispatcher({("GET", "/repositories/acme/a%2Fb%20c"): {}})

    await dispatcher.dispatch("getRepository", {"workspace": "acme", "repo_slug": "a/b c"})

    assert backend.calls[0]["path"] == "/repositories/acme/a%2Fb%20c"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("tool", "path"),
    [
        ("getRepositoryBranchingModel", "/repositories/acme/widgets/branching-model"),
        ("getRepositoryBranchingModelSettings", "/repositories/acme/widgets/branching-model/settings"),
        ("getEffectiveRepositoryBranchingModel", "/repositories/acme/widgets/effective-branching-model"),
    ],
)
async def test_repository_branching_model_reads(make_dispatcher, tool: str, path: str) -> None:  # noqa: ANN001
    model = {"development": {"name": "develop"}, "branch_types": [{"kind": "feature", "prefix": "feature/"}]}
    dispatcher, _backend, _audit = make_dispatcher({("GET", path): model})

    result = await dispatcher.dispatch(tool, {"workspace": "acme", "repo_slug": "widgets"})

    assert _json(result) == model


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("tool", "path"),
    [
        ("getProjectBranchingModel", "/workspaces/acme/projects/PRJ/branching-model"),
        ("getProjectBranchingModelSettings", "/workspaces/acme/projects/PRJ/branching-model/settings"),
    ],
)
async def test_project_branching_model_reads(make_dispatcher, tool: str, path: str) -> None:  # noqa: ANN001
    dispatcher, _backend, _audit = make_dispatcher({("GET", path): {"type": "project_branching_model"}})

    result = await dispatcher.dispatch(tool, {"workspace": "acme", "project_key": "PRJ"})

    assert _json(result) == {"type": "project_branching_model"}


@pytest.mark.asyncio
async def test_update_repository_branching_model_sends_partial_body(make_dispatcher) -> None:  # noqa: ANN001
    path = "/repositories/acme/widgets/branching-model/settings"
    dispatcher, backend, _audit = make_dispatcher({("PUT", path): {"ok": True}})

    await dispatcher.dispatch(
        "updateRepositoryBranchingModelSettings",
        {
            "workspace": "acme",
            "repo_slug": "widgets",
            "branch_types": [{"kind": "bugfix", "prefix": "fix/", "enabled": True}],
        },
    )

    assert backend.calls[0]["json_body"] == {
        "branch_types": [{"kind": "bugfix", "prefix": "fix/", "enabled": True}],
    }


@pytest.mark.asyncio
async def test_update_project_branching_model_sends_supplied_sections(make_dispatcher) -> None:  # noqa: ANN001
    path = "/workspaces/acme/projects/PRJ/branching-model/settings"
    dispatcher, backend, _audit = make_dispatcher({("PUT", path): {"ok": True}})

    await dispatcher.dispatch(
        "updateProjectBranchingModelSettings",
        {
            "workspace": "acme",
            "project_key": "PRJ",
            "development": {"use_mainbranch": True},
            "production": {"name": "release", "enabled": False},
        },
    )

    assert backend.calls[0]["json_body"] == {
        "development": {"use_mainbranch": True},
        "production": {"name": "release", "enabled": False},
    }
