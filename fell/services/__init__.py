"""Services for fell."""

from .batch import BatchExecutor
from .catalog import RepositoryCatalog, resolve_catalog_file
from .classifier import RepositoryClassifier
from .display_service import DisplayService
from .github_service import GitHubService
from .vcs import GitBackend, TransportConfig, VcsBackend

__all__ = [
    "BatchExecutor",
    "DisplayService",
    "GitBackend",
    "GitHubService",
    "RepositoryCatalog",
    "RepositoryClassifier",
    "TransportConfig",
    "VcsBackend",
    "resolve_catalog_file",
]
