"""Custom exceptions for fell"""

from typing import Optional


class FellError(Exception):
    """Base exception for all fell errors."""
    pass


class ConfigurationError(FellError):
    """Exception raised when the repository catalog cannot be read or is malformed."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.message = message
        self.source = source

        error_msg = "Invalid configuration"
        if source:
            error_msg += f" in '{source}'"
        error_msg += f": {message}"

        super().__init__(error_msg)


class RepositoryError(FellError):
    """Exception raised when a VCS operation fails for a single repository."""

    def __init__(self, operation: str, repo: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.repo = repo
        self.message = message

        error_msg = f"Operation '{operation}' failed"
        if repo:
            error_msg += f" for '{repo}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class RepoAccessError(RepositoryError):
    """Exception raised when a path is not a usable git repository."""

    def __init__(self, repo: str, message: Optional[str] = None):
        super().__init__("open", repo, message or "Not a valid git repository")


class DivergedHistoryError(RepositoryError):
    """Exception raised when a sync cannot fast-forward."""

    def __init__(self, repo: str, upstream: str):
        self.upstream = upstream
        super().__init__(
            "sync", repo, f"Local history has diverged from '{upstream}', refusing to merge"
        )


class NothingToCommitError(RepositoryError):
    """Exception raised when a commit is requested on a clean working tree."""

    def __init__(self, repo: str):
        super().__init__("commit", repo, "Nothing to commit, working tree clean")


class NoHeadError(RepositoryError):
    """Exception raised when the repository has no commits yet."""

    def __init__(self, repo: str, operation: str = "commit"):
        super().__init__(operation, repo, "Repository has no commits yet")


class PushRejectedError(RepositoryError):
    """Exception raised when the remote rejects a non-forced push."""

    def __init__(self, repo: str, branch: str, message: Optional[str] = None):
        self.branch = branch
        detail = f"Remote rejected update of '{branch}'"
        if message:
            detail += f" ({message})"
        super().__init__("push", repo, detail)


class BranchExistsError(RepositoryError):
    """Exception raised when creating a branch that already exists."""

    def __init__(self, repo: str, branch: str):
        self.branch = branch
        super().__init__("create_branch", repo, f"Branch '{branch}' already exists")


class BranchNotFoundError(RepositoryError):
    """Exception raised when a branch is not found."""

    def __init__(self, repo: str, branch: str, operation: str = "find_branch"):
        self.branch = branch
        super().__init__(operation, repo, f"Branch '{branch}' not found")


class CloneError(RepositoryError):
    """Exception raised when a clone fails (network or destination path)."""

    def __init__(self, repo: str, url: str, message: Optional[str] = None):
        self.url = url
        detail = f"Could not clone {url}"
        if message:
            detail += f": {message}"
        super().__init__("clone", repo, detail)


class GitHubAPIError(FellError):
    """Exception raised for errors in GitHub API operations."""

    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        self.message = message

        error_msg = f"GitHub API operation '{operation}' failed"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)
