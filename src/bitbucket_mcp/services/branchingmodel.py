"""Branching model operations at repository and project scope."""

from __future__ import annotations

import logging
from typing import Any

from .base import BaseService, api_path, json_result

logger = logging.getLogger(__name__)


def build_settings_update(
    development: dict[str, Any] | None,
    production: dict[str, Any] | None,
    branch_types: list[dict[str, Any]] | None,
) -> dict[str, Any]:
    """Return a PUT body containing only the sections the caller supplied."""
    payload: dict[str, Any] = {}
    if development is not None:
        payload["development"] = development
    if production is not None:
        payload["production"] = production
    if branch_types is not None:
        payload["branch_types"] = branch_types
    return payload


class BranchingModelService(BaseService):
    # Repository scope

    async def get_repository_branching_model(self, *, workspace: str, repo_slug: str) -> dict[str, Any]:
        logger.info("Getting repository branching model %s/%s", workspace, repo_slug)

        data = await self._call(
            "get repository branching model",
            "GET",
            api_path("repositories", workspace, repo_slug, "branching-model"),
        )
        return json_result(data)

    async def get_repository_branching_model_settings(self, *, workspace: str, repo_slug: str) -> dict[str, Any]:
        logger.info("Getting repository branching model settings %s/%s", workspace, repo_slug)

        data = await self._call(
            "get repository branching model settings",
            "GET",
            api_path("repositories", workspace, repo_slug, "branching-model", "settings"),
        )
        return json_result(data)

    async def update_repository_branching_model_settings(
        self,
        *,
        workspace: str,
        repo_slug: str,
        development: dict[str, Any] | None = None,
        production: dict[str, Any] | None = None,
        branch_types: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        payload = build_settings_update(development, production, branch_types)
        logger.info(
            "Updating repository branching model settings %s/%s sections=%s",
            workspace,
            repo_slug,
            sorted(payload),
        )

        data = await self._call(
            "update repository branching model settings",
            "PUT",
            api_path("repositories", workspace, repo_slug, "branching-model", "settings"),
            json_body=payload,
        )
        return json_result(data)

    async def get_effective_repository_branching_model(self, *, workspace: str, repo_slug: str) -> dict[str, Any]:
        logger.info("Getting effective repository branching model %s/%s", workspace, repo_slug)

        data = await self._call(
            "get effective repository branching model",
            "GET",
            api_path("repositories", workspace, repo_slug, "effective-branching-model"),
        )
        return json_result(data)

    # Project scope

    async def get_project_branching_model(self, *, workspace: str, project_key: str) -> dict[str, Any]:
        logger.info("Getting project branching model %s/%s", workspace, project_key)

        data = await self._call(
            "get project branching model",
            "GET",
            api_path("workspaces", workspace, "projects", project_key, "branching-model"),
        )
        return json_result(data)

    async def get_project_branching_model_settings(self, *, workspace: str, project_key: str) -> dict[str, Any]:
        logger.info("Getting project branching model settings %s/%s", workspace, project_key)

        data = await self._call(
            "get project branching model settings",
            "GET",
            api_path("workspaces", workspace, "projects", project_key, "branching-model", "settings"),
        )
        return json_result(data)

    async def update_project_branching_model_settings(
        self,
        *,
        workspace: str,
        project_key: str,
        development: dict[str, Any] | None = None,
        production: dict[str, Any] | None = None,
        branch_types: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        payload = build_settings_update(development, production, branch_types)
        logger.info(
            "Updating project branching model settings %s/%s sections=%s",
            workspace,
            project_key,
            sorted(payload),
        )

        data = await self._call(
            "update project branching model settings",
            "PUT",
            api_path("workspaces", workspace, "projects", project_key, "branching-model", "settings"),
            json_body=payload,
        )
        return json_result(data)
