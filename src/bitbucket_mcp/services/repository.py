"""Repository operations."""

from __future__ import annotations

import logging
from typing import Any

from .base import BaseService, api_path, json_result, values_result

logger = logging.getLogger(__name__)


class RepositoryService(BaseService):
    async def list_repositories(self, *, workspace: str | None = None, limit: int | None = None) -> dict[str, Any]:
        ws = self._workspace(workspace)
        page_limit = self._limit(limit)
        logger.info("Listing repositories workspace=%s limit=%s", ws, page_limit)

        data = await self._call("list repositories", "GET", api_path("repositories", ws), params={"limit": page_limit})
        return values_result(data)

    async def get_repository(self, *, workspace: str, repo_slug: str) -> dict[str, Any]:
        logger.info("Getting repository %s/%s", workspace, repo_slug)

        data = await self._call("get repository", "GET", api_path("repositories", workspace, repo_slug))
        return json_result(data)
