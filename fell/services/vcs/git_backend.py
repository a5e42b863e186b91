"""GitPython implementation of the VCS backend"""

from typing import Optional, Union, TYPE_CHECKING

import git
from git.remote import PushInfo

from fell.constants import DEFAULT_BRANCH, DEFAULT_REMOTE, DETACHED_HEAD
from fell.exceptions import (
    BranchExistsError,
    BranchNotFoundError,
    CloneError,
    DivergedHistoryError,
    NoHeadError,
    NothingToCommitError,
    PushRejectedError,
    RepoAccessError,
    RepositoryError,
)
from fell.logging_config import get_logger
from fell.models.repository import (
    DefaultBranchRelation,
    RepositoryRef,
    SyncResult,
    WorkingTreeStatus,
)
from fell.services.vcs.backend import VcsBackend
from fell.services.vcs.transport import TransportConfig

if TYPE_CHECKING:
    from fell.config import Config

logger = get_logger(__name__)


def describe_command_error(e: git.exc.GitCommandError) -> str:
    """Build a readable message from a GitCommandError."""
    command = e.command if hasattr(e, "command") else "git"
    if isinstance(command, (list, tuple)):
        command = " ".join(str(part) for part in command)
    stderr = (e.stderr if hasattr(e, "stderr") and e.stderr else "").strip()
    status = e.status if hasattr(e, "status") else "unknown"

    if stderr:
        return f"'{command}' failed (exit {status}): {stderr}"
    return f"'{command}' failed with exit code {status}"


class GitBackend(VcsBackend):
    """VCS backend on top of GitPython.

    A fresh ``git.Repo`` is opened (and closed) for every call, so one
    backend instance can be shared by all worker threads of a batch.
    """

    def __init__(
        self,
        default_branch: str = DEFAULT_BRANCH,
        remote_name: str = DEFAULT_REMOTE,
        transport: Optional[TransportConfig] = None,
    ):
        self.default_branch = default_branch
        self.remote_name = remote_name
        self.transport = transport or TransportConfig()

    @classmethod
    def from_config(cls, config: Union["Config", dict]) -> "GitBackend":
        if isinstance(config, dict):
            transport = TransportConfig(
                accept_all_host_keys=config.get("accept_all_host_keys", True),
                use_ssh_agent=config.get("use_ssh_agent", True),
            )
        else:
            transport = TransportConfig.from_config(config)
        return cls(
            default_branch=config.get("default_branch", DEFAULT_BRANCH),
            remote_name=config.get("remote_name", DEFAULT_REMOTE),
            transport=transport,
        )

    def _open(self, repo: RepositoryRef) -> git.Repo:
        """Open the repository, translating GitPython errors to RepoAccessError."""
        try:
            return git.Repo(str(repo.path))
        except git.exc.NoSuchPathError:
            raise RepoAccessError(repo.rel_path, f"Path does not exist: {repo.path}")
        except git.exc.InvalidGitRepositoryError:
            raise RepoAccessError(repo.rel_path, f"Not a git repository: {repo.path}")

    def _head_commit(self, r: git.Repo, repo: RepositoryRef, operation: str):
        if not r.head.is_valid():
            raise NoHeadError(repo.rel_path, operation)
        return r.head.commit

    def current_branch(self, repo: RepositoryRef) -> str:
        with self._open(repo) as r:
            try:
                branch = r.active_branch.name
            except TypeError:
                logger.debug(f"{repo.rel_path} is in detached HEAD state")
                branch = DETACHED_HEAD
        logger.debug(f"{repo.rel_path} is on branch {branch}")
        return branch

    def status(self, repo: RepositoryRef) -> WorkingTreeStatus:
        with self._open(repo) as r:
            try:
                porcelain = r.git.status("--porcelain")
            except git.exc.GitCommandError as e:
                raise RepositoryError("status", repo.rel_path, describe_command_error(e))
        status = WorkingTreeStatus.DIRTY if porcelain.strip() else WorkingTreeStatus.CLEAN
        logger.debug(f"{repo.rel_path} is {status.value}")
        return status

    def has_branch(self, repo: RepositoryRef, name: str) -> bool:
        with self._open(repo) as r:
            return any(head.name == name for head in r.heads)

    def default_branch_relation(
        self, repo: RepositoryRef, branch: Optional[str] = None
    ) -> DefaultBranchRelation:
        with self._open(repo) as r:
            heads = {head.name: head for head in r.heads}
            if self.default_branch not in heads:
                raise BranchNotFoundError(repo.rel_path, self.default_branch, "compare")
            default_commit = heads[self.default_branch].commit

            if branch is None:
                tip = self._head_commit(r, repo, "compare")
            elif branch in heads:
                tip = heads[branch].commit
            else:
                raise BranchNotFoundError(repo.rel_path, branch, "compare")

            if tip.hexsha == default_commit.hexsha:
                relation = DefaultBranchRelation.EQUAL
            elif r.is_ancestor(default_commit, tip):
                relation = DefaultBranchRelation.AHEAD
            elif r.is_ancestor(tip, default_commit):
                relation = DefaultBranchRelation.BEHIND
            else:
                relation = DefaultBranchRelation.DIVERGED

        logger.debug(
            f"{repo.rel_path}: {branch or 'HEAD'} is {relation.value} relative to {self.default_branch}"
        )
        return relation

    def head_commit_message(self, repo: RepositoryRef, branch: Optional[str] = None) -> str:
        with self._open(repo) as r:
            if branch is None:
                commit = self._head_commit(r, repo, "log")
            else:
                head = next((h for h in r.heads if h.name == branch), None)
                if head is None:
                    raise BranchNotFoundError(repo.rel_path, branch, "log")
                commit = head.commit
            message = commit.message
            # GitPython can return bytes for undecodable messages
            if not isinstance(message, str):
                message = message.decode("utf-8", errors="ignore")
            return message.strip()

    def delete_branch(self, repo: RepositoryRef, name: str) -> bool:
        with self._open(repo) as r:
            if not any(head.name == name for head in r.heads):
                logger.debug(f"{repo.rel_path}: no branch {name} to delete")
                return False
            try:
                if r.active_branch.name == name:
                    logger.warning(f"{repo.rel_path}: not deleting checked out branch {name}")
                    return False
            except TypeError:
                pass  # Detached HEAD, nothing checked out

            try:
                r.delete_head(name, force=True)
            except git.exc.GitCommandError as e:
                raise RepositoryError("delete_branch", repo.rel_path, describe_command_error(e))
        logger.debug(f"{repo.rel_path}: deleted branch {name}")
        return True

    def checkout_branch(self, repo: RepositoryRef, name: str) -> None:
        with self._open(repo) as r:
            head = next((h for h in r.heads if h.name == name), None)
            if head is None:
                raise BranchNotFoundError(repo.rel_path, name, "checkout")
            try:
                head.checkout()
            except git.exc.GitCommandError as e:
                raise RepositoryError("checkout", repo.rel_path, describe_command_error(e))
        logger.debug(f"{repo.rel_path}: checked out {name}")

    def checkout_new_branch(self, repo: RepositoryRef, name: str) -> None:
        with self._open(repo) as r:
            if any(head.name == name for head in r.heads):
                raise BranchExistsError(repo.rel_path, name)
            commit = self._head_commit(r, repo, "create_branch")
            try:
                new_head = r.create_head(name, commit)
                new_head.checkout()
            except git.exc.GitCommandError as e:
                raise RepositoryError("create_branch", repo.rel_path, describe_command_error(e))
        logger.debug(f"{repo.rel_path}: created and checked out {name}")

    def sync(self, repo: RepositoryRef) -> SyncResult:
        with self._open(repo) as r:
            if not r.remotes:
                raise RepositoryError("sync", repo.rel_path, "No remotes configured")

            try:
                with r.git.custom_environment(**self.transport.env()):
                    for remote in r.remotes:
                        logger.debug(f"{repo.rel_path}: fetching {remote.name}")
                        remote.fetch()
            except git.exc.GitCommandError as e:
                raise RepositoryError("fetch", repo.rel_path, describe_command_error(e))

            try:
                r.active_branch
            except TypeError:
                raise RepositoryError("sync", repo.rel_path, "HEAD is detached, nothing to merge into")
            head_commit = self._head_commit(r, repo, "sync")

            upstream_name = f"{self.remote_name}/{self.default_branch}"
            try:
                remote = r.remote(self.remote_name)
            except ValueError:
                raise RepositoryError("sync", repo.rel_path, f"No remote named '{self.remote_name}'")
            upstream = next((ref for ref in remote.refs if ref.remote_head == self.default_branch), None)
            if upstream is None:
                raise BranchNotFoundError(repo.rel_path, upstream_name, "sync")
            upstream_commit = upstream.commit

            if head_commit.hexsha == upstream_commit.hexsha:
                result = SyncResult.UP_TO_DATE
            elif r.is_ancestor(upstream_commit, head_commit):
                result = SyncResult.AHEAD
            elif r.is_ancestor(head_commit, upstream_commit):
                try:
                    r.git.merge("--ff-only", upstream.name)
                except git.exc.GitCommandError as e:
                    raise RepositoryError("merge", repo.rel_path, describe_command_error(e))
                result = SyncResult.FAST_FORWARDED
            else:
                raise DivergedHistoryError(repo.rel_path, upstream_name)

        logger.debug(f"{repo.rel_path}: sync {result.value}")
        return result

    def commit_all(self, repo: RepositoryRef, message: str) -> str:
        with self._open(repo) as r:
            self._head_commit(r, repo, "commit")
            try:
                r.git.add(A=True)
                if not r.index.diff("HEAD"):
                    raise NothingToCommitError(repo.rel_path)
                r.git.commit("-m", message)
            except git.exc.GitCommandError as e:
                raise RepositoryError("commit", repo.rel_path, describe_command_error(e))
            sha = r.head.commit.hexsha
        logger.debug(f"{repo.rel_path}: committed {sha[:7]}")
        return sha

    def push(
        self,
        repo: RepositoryRef,
        branch: str,
        force: bool = False,
        remote: Optional[str] = None,
    ) -> None:
        remote_name = remote or self.remote_name
        refspec = f"{'+' if force else ''}refs/heads/{branch}:refs/heads/{branch}"

        with self._open(repo) as r:
            if not any(head.name == branch for head in r.heads):
                raise BranchNotFoundError(repo.rel_path, branch, "push")
            try:
                git_remote = r.remote(remote_name)
            except ValueError:
                raise RepositoryError("push", repo.rel_path, f"No remote named '{remote_name}'")

            try:
                with r.git.custom_environment(**self.transport.env()):
                    push_infos = git_remote.push(refspec=refspec)
            except git.exc.GitCommandError as e:
                stderr = (e.stderr or "").lower() if hasattr(e, "stderr") else ""
                if "rejected" in stderr:
                    raise PushRejectedError(repo.rel_path, branch, describe_command_error(e))
                raise RepositoryError("push", repo.rel_path, describe_command_error(e))

        if not push_infos:
            raise RepositoryError("push", repo.rel_path, f"No push result for {refspec}")
        for info in push_infos:
            summary = (info.summary or "").strip()
            if info.flags & (PushInfo.REJECTED | PushInfo.REMOTE_REJECTED):
                raise PushRejectedError(repo.rel_path, branch, summary or None)
            if info.flags & PushInfo.ERROR:
                raise RepositoryError("push", repo.rel_path, summary or "remote reported an error")
        logger.debug(f"{repo.rel_path}: pushed {refspec} to {remote_name}")

    def clone(self, repo: RepositoryRef, url: str) -> None:
        destination = repo.path
        if destination.exists() and (not destination.is_dir() or any(destination.iterdir())):
            raise CloneError(repo.rel_path, url, f"Destination {destination} is not empty")
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CloneError(repo.rel_path, url, str(e))

        logger.debug(f"Cloning {url} into {destination}")
        try:
            cloned = git.Repo.clone_from(url, str(destination), env=self.transport.env())
        except git.exc.GitCommandError as e:
            raise CloneError(repo.rel_path, url, describe_command_error(e))
        cloned.close()

    def remote_url(self, repo: RepositoryRef, remote: Optional[str] = None) -> Optional[str]:
        with self._open(repo) as r:
            try:
                return r.remote(remote or self.remote_name).url
            except ValueError:
                return None
