"""Pull request operations."""

from __future__ import annotations

import logging
from typing import Any

from .base import BaseService, api_path, json_result, text_result, values_result

logger = logging.getLogger(__name__)

UNAPPROVE_CONFIRMATION = "Pull request approval removed successfully."


class PullRequestService(BaseService):
    """Request/response translation for `/repositories/{ws}/{repo}/pullrequests`."""

    @staticmethod
    def _pr_path(workspace: str, repo_slug: str, pull_request_id: str | int, *suffix: str) -> str:
        return api_path("repositories", workspace, repo_slug, "pullrequests", pull_request_id, *suffix)

    async def get_pull_requests(
        self,
        *,
        workspace: str | None = None,
        repo_slug: str,
        state: str | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        ws = self._workspace(workspace)
        page_limit = self._limit(limit)
        logger.info("Getting pull requests %s/%s state=%s limit=%s", ws, repo_slug, state, page_limit)

        data = await self._call(
            "get pull requests",
            "GET",
            api_path("repositories", ws, repo_slug, "pullrequests"),
            params={"state": state, "limit": page_limit},
        )
        return values_result(data)

    async def create_pull_request(
        self,
        *,
        workspace: str,
        repo_slug: str,
        title: str,
        description: str,
        source_branch: str,
        target_branch: str,
        reviewers: list[str] | None = None,
    ) -> dict[str, Any]:
        logger.info(
            "Creating pull request %s/%s %s -> %s",
            workspace,
            repo_slug,
            source_branch,
            target_branch,
        )

        payload = {
            "title": title,
            "description": description,
            "source": {"branch": {"name": source_branch}},
            "destination": {"branch": {"name": target_branch}},
            "reviewers": [{"username": username} for username in reviewers or []],
            "close_source_branch": True,
        }
        data = await self._call(
            "create pull request",
            "POST",
            api_path("repositories", workspace, repo_slug, "pullrequests"),
            json_body=payload,
        )
        return json_result(data)

    async def get_pull_request(self, *, workspace: str, repo_slug: str, pull_request_id: str | int) -> dict[str, Any]:
        logger.info("Getting pull request %s/%s#%s", workspace, repo_slug, pull_request_id)

        data = await self._call(
            "get pull request details", "GET", self._pr_path(workspace, repo_slug, pull_request_id)
        )
        return json_result(data)

    async def update_pull_request(
        self,
        *,
        workspace: str,
        repo_slug: str,
        pull_request_id: str | int,
        title: str | None = None,
        description: str | None = None,
    ) -> dict[str, Any]:
        logger.info("Updating pull request %s/%s#%s", workspace, repo_slug, pull_request_id)

        # Absent fields stay out of the body so the backend keeps their current values.
        payload: dict[str, Any] = {}
        if title is not None:
            payload["title"] = title
        if description is not None:
            payload["description"] = description

        data = await self._call(
            "update pull request",
            "PUT",
            self._pr_path(workspace, repo_slug, pull_request_id),
            json_body=payload,
        )
        return json_result(data)

    async def get_pull_request_activity(
        self, *, workspace: str, repo_slug: str, pull_request_id: str | int
    ) -> dict[str, Any]:
        logger.info("Getting pull request activity %s/%s#%s", workspace, repo_slug, pull_request_id)

        data = await self._call(
            "get pull request activity", "GET", self._pr_path(workspace, repo_slug, pull_request_id, "activity")
        )
        return values_result(data)

    async def approve_pull_request(self, *, workspace: str, repo_slug: str, pull_request_id: str | int) -> dict[str, Any]:
        logger.info("Approving pull request %s/%s#%s", workspace, repo_slug, pull_request_id)

        data = await self._call(
            "approve pull request", "POST", self._pr_path(workspace, repo_slug, pull_request_id, "approve")
        )
        return json_result(data)

    async def unapprove_pull_request(
        self, *, workspace: str, repo_slug: str, pull_request_id: str | int
    ) -> dict[str, Any]:
        logger.info("Unapproving pull request %s/%s#%s", workspace, repo_slug, pull_request_id)

        await self._call(
            "unapprove pull request", "DELETE", self._pr_path(workspace, repo_slug, pull_request_id, "approve")
        )
        return text_result(UNAPPROVE_CONFIRMATION)

    async def decline_pull_request(
        self,
        *,
        workspace: str,
        repo_slug: str,
        pull_request_id: str | int,
        message: str | None = None,
    ) -> dict[str, Any]:
        logger.info("Declining pull request %s/%s#%s", workspace, repo_slug, pull_request_id)

        payload: dict[str, Any] = {"message": message} if message else {}
        data = await self._call(
            "decline pull request",
            "POST",
            self._pr_path(workspace, repo_slug, pull_request_id, "decline"),
            json_body=payload,
        )
        return json_result(data)

    async def merge_pull_request(
        self,
        *,
        workspace: str,
        repo_slug: str,
        pull_request_id: str | int,
        message: str | None = None,
        strategy: str | None = None,
    ) -> dict[str, Any]:
        logger.info("Merging pull request %s/%s#%s strategy=%s", workspace, repo_slug, pull_request_id, strategy)

        payload: dict[str, Any] = {}
        if message:
            payload["message"] = message
        if strategy:
            payload["merge_strategy"] = strategy

        data = await self._call(
            "merge pull request",
            "POST",
            self._pr_path(workspace, repo_slug, pull_request_id, "merge"),
            json_body=payload,
        )
        return json_result(data)

    async def get_pull_request_comments(
        self, *, workspace: str, repo_slug: str, pull_request_id: str | int
    ) -> dict[str, Any]:
        logger.info("Getting pull request comments %s/%s#%s", workspace, repo_slug, pull_request_id)

        data = await self._call(
            "get pull request comments", "GET", self._pr_path(workspace, repo_slug, pull_request_id, "comments")
        )
        return values_result(data)

    async def get_pull_request_diff(
        self, *, workspace: str, repo_slug: str, pull_request_id: str | int
    ) -> dict[str, Any]:
        logger.info("Getting pull request diff %s/%s#%s", workspace, repo_slug, pull_request_id)

        diff = await self._call(
            "get pull request diff",
            "GET",
            self._pr_path(workspace, repo_slug, pull_request_id, "diff"),
            headers={"Accept": "text/plain"},
            response_format="text",
        )
        return text_result(diff)

    async def get_pull_request_commits(
        self, *, workspace: str, repo_slug: str, pull_request_id: str | int
    ) -> dict[str, Any]:
        logger.info("Getting pull request commits %s/%s#%s", workspace, repo_slug, pull_request_id)

        data = await self._call(
            "get pull request commits", "GET", self._pr_path(workspace, repo_slug, pull_request_id, "commits")
        )
        return values_result(data)
