"""Pytest fixtures for fell tests"""
import tempfile
import threading
import time
from pathlib import Path
from typing import Dict, Optional, Set

import git
import pytest

from fell.exceptions import (
    BranchExistsError,
    BranchNotFoundError,
    DivergedHistoryError,
    NothingToCommitError,
    RepoAccessError,
)
from fell.models.repository import (
    DefaultBranchRelation,
    RepositoryRef,
    RepositorySet,
    SyncResult,
    WorkingTreeStatus,
)
from fell.services.catalog import RepositoryCatalog
from fell.services.vcs.backend import VcsBackend


def configure_user(repo: git.Repo) -> None:
    """Set a commit identity so commits work on CI machines."""
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")


def commit_file(repo: git.Repo, name: str, content: str, message: str) -> git.Commit:
    """Write a file and commit it."""
    path = Path(repo.working_dir) / name
    path.write_text(content)
    repo.index.add([name])
    return repo.index.commit(message)


def make_ref(path: Path) -> RepositoryRef:
    return RepositoryRef(path=Path(path), name=Path(path).name, rel_path=Path(path).name)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_config():
    """Create a configuration dictionary."""
    return {
        "exclude": [],
        "scope": None,
        "default_branch": "master",
        "remote_name": "origin",
        "accept_all_host_keys": True,
        "use_ssh_agent": True,
        "github_token": "test_token_for_testing",
        "verbose": False,
        "debug": False,
    }


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository with one commit on master."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    repo = git.Repo.init(repo_path)
    configure_user(repo)
    commit_file(repo, "README.md", "# Test Repository\n", "Initial commit")
    repo.git.branch("-M", "master")

    yield repo

    repo.close()


@pytest.fixture
def origin(temp_dir):
    """Create a bare 'origin' repository whose master has one commit."""
    bare_path = temp_dir / "origin.git"
    bare = git.Repo.init(bare_path, bare=True)
    bare.git.symbolic_ref("HEAD", "refs/heads/master")

    seed_path = temp_dir / "seed"
    seed = git.Repo.init(seed_path)
    configure_user(seed)
    commit_file(seed, "README.md", "# Origin\n", "Initial commit")
    seed.git.branch("-M", "master")
    seed.create_remote("origin", str(bare_path))
    seed.git.push("origin", "master:master")
    seed.close()

    yield bare

    bare.close()


@pytest.fixture
def clone_factory(origin, temp_dir):
    """Return a function that clones origin into a new working copy."""
    clones = []

    def _clone(name: str) -> git.Repo:
        repo = git.Repo.clone_from(str(temp_dir / "origin.git"), str(temp_dir / name))
        configure_user(repo)
        clones.append(repo)
        return repo

    yield _clone

    for repo in clones:
        repo.close()


@pytest.fixture
def local_and_other(clone_factory):
    """Two clones of the same origin: the one under test and a collaborator."""
    return clone_factory("local"), clone_factory("other")


class FakeBackend(VcsBackend):
    """In-memory backend with injectable delays and failures."""

    def __init__(self, default_branch: str = "master"):
        self.default_branch = default_branch
        self.remote_name = "origin"
        self.branches: Dict[str, str] = {}
        self.local_branches: Dict[str, Set[str]] = {}
        self.dirty: Set[str] = set()
        self.relations: Dict[str, DefaultBranchRelation] = {}
        self.remote_urls: Dict[str, str] = {}
        self.delays: Dict[str, float] = {}
        self.failures: Dict[str, Exception] = {}
        self.diverged: Set[str] = set()
        self.calls = []
        self.commits: Dict[str, list] = {}
        self.pushed = []
        self.cloned = []
        self._lock = threading.Lock()

    def add(self, repo: RepositoryRef, branch: str = "master", dirty: bool = False,
            relation: DefaultBranchRelation = DefaultBranchRelation.EQUAL,
            url: Optional[str] = None) -> RepositoryRef:
        self.branches[repo.name] = branch
        self.local_branches[repo.name] = {self.default_branch, branch}
        if dirty:
            self.dirty.add(repo.name)
        self.relations[repo.name] = relation
        if url:
            self.remote_urls[repo.name] = url
        return repo

    def _enter(self, method: str, repo: RepositoryRef) -> None:
        with self._lock:
            self.calls.append((method, repo.name))
        delay = self.delays.get(repo.name)
        if delay:
            time.sleep(delay)
        if repo.name in self.failures:
            raise self.failures[repo.name]
        if repo.name not in self.branches:
            raise RepoAccessError(repo.rel_path)

    def current_branch(self, repo):
        self._enter("current_branch", repo)
        return self.branches[repo.name]

    def status(self, repo):
        self._enter("status", repo)
        return WorkingTreeStatus.DIRTY if repo.name in self.dirty else WorkingTreeStatus.CLEAN

    def has_branch(self, repo, name):
        self._enter("has_branch", repo)
        return name in self.local_branches[repo.name]

    def default_branch_relation(self, repo, branch=None):
        self._enter("default_branch_relation", repo)
        return self.relations[repo.name]

    def head_commit_message(self, repo, branch=None):
        self._enter("head_commit_message", repo)
        return f"Work on {branch or self.branches[repo.name]}\n\nDetails"

    def delete_branch(self, repo, name):
        self._enter("delete_branch", repo)
        if name not in self.local_branches[repo.name] or self.branches[repo.name] == name:
            return False
        self.local_branches[repo.name].discard(name)
        return True

    def checkout_branch(self, repo, name):
        self._enter("checkout_branch", repo)
        if name not in self.local_branches[repo.name]:
            raise BranchNotFoundError(repo.rel_path, name, "checkout")
        self.branches[repo.name] = name

    def checkout_new_branch(self, repo, name):
        self._enter("checkout_new_branch", repo)
        if name in self.local_branches[repo.name]:
            raise BranchExistsError(repo.rel_path, name)
        self.local_branches[repo.name].add(name)
        self.branches[repo.name] = name

    def sync(self, repo):
        self._enter("sync", repo)
        if repo.name in self.diverged:
            raise DivergedHistoryError(repo.rel_path, "origin/master")
        return SyncResult.UP_TO_DATE

    def commit_all(self, repo, message):
        self._enter("commit_all", repo)
        if repo.name not in self.dirty:
            raise NothingToCommitError(repo.rel_path)
        with self._lock:
            self.commits.setdefault(repo.name, []).append(message)
        self.dirty.discard(repo.name)
        return f"sha-{repo.name}"

    def push(self, repo, branch, force=False, remote=None):
        self._enter("push", repo)
        with self._lock:
            self.pushed.append((repo.name, branch, force))

    def clone(self, repo, url):
        # Clone targets do not exist yet, so skip the _enter checks
        with self._lock:
            self.calls.append(("clone", repo.name))
        if repo.name in self.failures:
            raise self.failures[repo.name]
        with self._lock:
            self.cloned.append((repo.name, url))

    def remote_url(self, repo, remote=None):
        self._enter("remote_url", repo)
        return self.remote_urls.get(repo.name)


@pytest.fixture
def fake_backend():
    """Create an empty FakeBackend."""
    return FakeBackend()


@pytest.fixture
def workspace(temp_dir):
    """Create a catalog file with three (empty) repository directories A, B, C."""
    root = temp_dir / "repos"
    for name in ("A", "B", "C"):
        (root / name).mkdir(parents=True)
    catalog_file = root / "repos.txt"
    catalog_file.write_text("# managed repositories\nA\nB\nC\n")
    return root


@pytest.fixture
def workspace_catalog(workspace):
    return RepositoryCatalog(workspace / "repos.txt")


@pytest.fixture
def workspace_repos(workspace_catalog) -> RepositorySet:
    return workspace_catalog.list_repositories()
