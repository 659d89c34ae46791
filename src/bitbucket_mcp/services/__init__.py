"""Operation groups translating tool calls into Bitbucket REST calls."""

from .base import BackendClient, BaseService
from .branchingmodel import BranchingModelService
from .pullrequest import PullRequestService
from .repository import RepositoryService

__all__ = [
    "BackendClient",
    "BaseService",
    "BranchingModelService",
    "PullRequestService",
    "RepositoryService",
]
