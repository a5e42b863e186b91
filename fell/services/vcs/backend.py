"""VCS backend capability used by the orchestration layer"""

from abc import ABC, abstractmethod
from typing import Optional

from fell.models.repository import (
    DefaultBranchRelation,
    RepositoryRef,
    SyncResult,
    WorkingTreeStatus,
)


class VcsBackend(ABC):
    """Per-repository VCS primitives.

    Every method acts on exactly one repository and raises a
    :class:`fell.exceptions.RepositoryError` subclass on failure. Methods do
    not retry; callers decide what a failure means for a batch.
    """

    default_branch: str = "master"
    remote_name: str = "origin"

    # Branch and status inspection

    @abstractmethod
    def current_branch(self, repo: RepositoryRef) -> str:
        """Name of the checked out branch ("HEAD" when detached)."""

    @abstractmethod
    def status(self, repo: RepositoryRef) -> WorkingTreeStatus:
        """CLEAN when there are no untracked, modified or staged files."""

    @abstractmethod
    def has_branch(self, repo: RepositoryRef, name: str) -> bool:
        """Whether a local branch called ``name`` exists."""

    @abstractmethod
    def default_branch_relation(
        self, repo: RepositoryRef, branch: Optional[str] = None
    ) -> DefaultBranchRelation:
        """Where ``branch`` (HEAD when omitted) stands relative to the default branch."""

    def is_ahead_of_default(self, repo: RepositoryRef, branch: Optional[str] = None) -> bool:
        """True only when the branch is strictly ahead of the default branch."""
        return self.default_branch_relation(repo, branch) is DefaultBranchRelation.AHEAD

    @abstractmethod
    def head_commit_message(self, repo: RepositoryRef, branch: Optional[str] = None) -> str:
        """Message of the tip commit of ``branch`` (HEAD when omitted)."""

    # Branch mutation

    @abstractmethod
    def delete_branch(self, repo: RepositoryRef, name: str) -> bool:
        """Delete a local branch; False when it is missing or checked out."""

    @abstractmethod
    def checkout_branch(self, repo: RepositoryRef, name: str) -> None:
        """Switch to an existing branch."""

    @abstractmethod
    def checkout_new_branch(self, repo: RepositoryRef, name: str) -> None:
        """Create ``name`` at HEAD and switch to it."""

    # Remote sync, commit, push, clone

    @abstractmethod
    def sync(self, repo: RepositoryRef) -> SyncResult:
        """Fetch all remotes, then fast-forward the current branch to the upstream default branch."""

    @abstractmethod
    def commit_all(self, repo: RepositoryRef, message: str) -> str:
        """Stage every change and commit it; returns the new commit id."""

    @abstractmethod
    def push(
        self,
        repo: RepositoryRef,
        branch: str,
        force: bool = False,
        remote: Optional[str] = None,
    ) -> None:
        """Push ``branch`` to the remote of the same name."""

    @abstractmethod
    def clone(self, repo: RepositoryRef, url: str) -> None:
        """Clone ``url`` into the repository's path."""

    @abstractmethod
    def remote_url(self, repo: RepositoryRef, remote: Optional[str] = None) -> Optional[str]:
        """URL of the remote, or None when it is not configured."""
