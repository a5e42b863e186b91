"""Core functionality for fell: one handler per command verb"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from fell.config import Config
from fell.exceptions import RepositoryError
from fell.logging_config import get_logger
from fell.models.outcome import BatchResult
from fell.models.repository import RepositoryRef, RepositorySet, SyncResult
from fell.services.batch import BatchExecutor
from fell.services.catalog import RepositoryCatalog
from fell.services.classifier import RepositoryClassifier
from fell.services.github_service import GitHubService, parse_github_repo
from fell.services.vcs import GitBackend, VcsBackend

logger = get_logger(__name__)


@dataclass
class CommandSummary:
    """What a command did, handed to the display layer.

    ``groups`` maps a label (branch name, "clean"/"dirty", workflow state)
    to its repositories; members of the groups named in ``expanded`` are
    listed individually. ``result`` holds every outcome that was produced,
    including failures of the inspection step.
    """
    verb: str
    headline: str
    result: BatchResult = field(default_factory=BatchResult)
    groups: Dict[str, RepositorySet] = field(default_factory=dict)
    expanded: List[str] = field(default_factory=list)
    skipped: RepositorySet = field(default_factory=RepositorySet)
    notes: List[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.result.has_failures

    @property
    def flagged(self) -> RepositorySet:
        return RepositorySet(repo for key in self.expanded for repo in self.groups.get(key, ()))

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0


def _repo_name_from_url(url: str) -> str:
    name = re.split(r"[/:]", url.rstrip("/"))[-1]
    return name[:-4] if name.endswith(".git") else name


class Fleet:
    """Runs fleet-wide commands over the repositories of the catalog."""

    def __init__(
        self,
        config: Union[Config, dict],
        backend: Optional[VcsBackend] = None,
        catalog: Optional[RepositoryCatalog] = None,
        executor: Optional[BatchExecutor] = None,
        github_service: Optional[GitHubService] = None,
    ):
        """Initialize Fleet.

        Args:
            config: Configuration dict or Config object
            backend: VCS backend (defaults to GitBackend built from config)
            catalog: Repository catalog (defaults to the catalog file named by config)
            executor: Batch executor shared by every command
            github_service: GitHub collaborator for workflows and pull requests
        """
        if isinstance(config, dict):
            self.config = Config.from_dict(config)
        else:
            self.config = config
        self.backend = backend or GitBackend.from_config(self.config)
        self._catalog = catalog
        self.executor = executor or BatchExecutor()
        self.classifier = RepositoryClassifier(self.backend, self.executor)
        self.github_service = github_service or GitHubService(self.config.github_token)
        self.default_branch = self.config.default_branch

    @property
    def catalog(self) -> RepositoryCatalog:
        if self._catalog is None:
            self._catalog = RepositoryCatalog.from_config(self.config)
        return self._catalog

    def repositories(self) -> RepositorySet:
        """Repositories selected by the configured exclude list and scope.

        Entries whose directory is gone stay in the set so the backend reports
        them as failures instead of silently shrinking the fleet.
        """
        return self.catalog.list_repositories(
            exclude=self.config.exclude,
            scope=self.config.scope,
            include_missing=True,
        )

    def branch(self) -> CommandSummary:
        """Report the current branch of every repository."""
        repos = self.repositories()
        branch_map, failures = self.classifier.classify_branches_detailed(repos)
        off_default = [branch for branch in branch_map if branch != self.default_branch]
        return CommandSummary(
            verb="branch",
            headline=f"{len(repos)} repos on {len(branch_map)} branch(es)",
            result=failures,
            groups=dict(branch_map),
            expanded=off_default,
        )

    def status(self) -> CommandSummary:
        """Report which repositories have uncommitted changes."""
        repos = self.repositories()
        groups, failures = self.classifier.classify_status_detailed(repos)
        return CommandSummary(
            verb="status",
            headline=f"{len(groups.clean)} clean, {len(groups.dirty)} dirty",
            result=failures,
            groups={"clean": groups.clean, "dirty": groups.dirty},
            expanded=["dirty"],
        )

    def sync(self) -> CommandSummary:
        """Fast-forward every clean repository to its upstream default branch."""
        repos = self.repositories()
        groups, failures = self.classifier.classify_status_detailed(repos)
        result = self.executor.run(groups.clean, self.backend.sync, label="sync")

        fast_forwarded = [o for o in result.succeeded if o.value is SyncResult.FAST_FORWARDED]
        headline = f"{len(result.succeeded)} repos synced"
        if fast_forwarded:
            headline += f" ({len(fast_forwarded)} fast-forwarded)"
        return CommandSummary(
            verb="sync",
            headline=headline,
            result=failures + result,
            skipped=groups.dirty,
        )

    def commit(self, message: str) -> CommandSummary:
        """Commit all changes in every dirty repository."""
        if not message or not message.strip():
            raise ValueError("commit message cannot be empty")

        repos = self.repositories()
        groups, failures = self.classifier.classify_status_detailed(repos)
        result = self.executor.run(
            groups.dirty, lambda repo: self.backend.commit_all(repo, message), label="commit"
        )
        return CommandSummary(
            verb="commit",
            headline=f'{len(result.succeeded)} repos added new commit "{message}"',
            result=failures + result,
            skipped=groups.clean,
        )

    def _push_branch_for(self, repo: RepositoryRef, branch: Optional[str]) -> Optional[str]:
        """Branch to push for repo, or None when the repo should be left alone."""
        target = branch or self.backend.current_branch(repo)
        if not self.backend.has_branch(repo, target):
            return None
        if target == self.default_branch:
            return target
        return target if self.backend.is_ahead_of_default(repo, target) else None

    def _open_pull_request(self, repo: RepositoryRef, branch: str) -> str:
        full_name = parse_github_repo(self.backend.remote_url(repo))
        if full_name is None:
            raise RepositoryError("pull_request", repo.rel_path, "remote is not a GitHub repository")
        title = self.backend.head_commit_message(repo, branch).splitlines()[0]
        return self.github_service.open_pull_request(full_name, branch, self.default_branch, title)

    def push(self, branch: Optional[str] = None, force: bool = False, open_pr: bool = False) -> CommandSummary:
        """Push a branch in every repository that has something to push.

        A non-default branch is pushed only where it is strictly ahead of the
        default branch. Without ``branch`` each repository's current branch is used.
        """
        repos = self.repositories()
        if open_pr:
            self.github_service.require_client()

        selection = self.executor.run(
            repos, lambda repo: self._push_branch_for(repo, branch), label="push-select"
        )
        targets = {o.repo: o.value for o in selection.succeeded if o.value}
        skipped = RepositorySet(o.repo for o in selection.succeeded if not o.value)

        result = self.executor.run(
            RepositorySet(targets),
            lambda repo: self.backend.push(repo, targets[repo], force=force),
            label="push",
        )

        outcomes = BatchResult(selection.failed) + result
        notes: List[str] = []
        if open_pr:
            pr_repos = RepositorySet(
                o.repo for o in result.succeeded if targets[o.repo] != self.default_branch
            )
            prs = self.executor.run(
                pr_repos, lambda repo: self._open_pull_request(repo, targets[repo]), label="pull-request"
            )
            notes = [f"{o.repo.rel_path}: {o.value}" for o in prs.succeeded]
            outcomes = outcomes + BatchResult(prs.failed)

        forced = " (forced)" if force else ""
        return CommandSummary(
            verb="push",
            headline=f"{len(result.succeeded)} repos pushed{forced}, {len(result.failed)} failed",
            result=outcomes,
            skipped=skipped,
            notes=notes,
        )

    def checkout(self, branch: str, new_branch: bool = False) -> CommandSummary:
        """Switch every repository to branch, creating it first when new_branch is set."""
        if not branch:
            raise ValueError("branch name cannot be empty")
        operation = self.backend.checkout_new_branch if new_branch else self.backend.checkout_branch
        repos = self.repositories()
        result = self.executor.run(repos, lambda repo: operation(repo, branch), label="checkout")
        created = "new branch " if new_branch else ""
        return CommandSummary(
            verb="checkout",
            headline=f"{len(result.succeeded)} repos switched to {created}<{branch}>",
            result=result,
        )

    def _delete_branch(self, repo: RepositoryRef, branch: str) -> bool:
        if not self.backend.delete_branch(repo, branch):
            raise RepositoryError("delete_branch", repo.rel_path, f"Branch '{branch}' is checked out")
        return True

    def delete(self, branch: str) -> CommandSummary:
        """Delete a local branch from every repository that has it."""
        if not branch:
            raise ValueError("branch name cannot be empty")
        repos = self.repositories()
        selection = self.executor.run(
            repos, lambda repo: self.backend.has_branch(repo, branch), label="delete-select"
        )
        targets = RepositorySet(o.repo for o in selection.succeeded if o.value)
        skipped = RepositorySet(o.repo for o in selection.succeeded if not o.value)
        result = self.executor.run(
            targets, lambda repo: self._delete_branch(repo, branch), label="delete"
        )
        return CommandSummary(
            verb="delete",
            headline=f"{len(result.succeeded)} repos deleted branch <{branch}>",
            result=BatchResult(selection.failed) + result,
            skipped=skipped,
        )

    def _clone_from_catalog(self, repo: RepositoryRef) -> None:
        if not repo.url:
            raise RepositoryError("clone", repo.rel_path, "No clone URL recorded in the catalog")
        self.backend.clone(repo, repo.url)

    def clone(self, url: Optional[str] = None, destination: Optional[str] = None) -> CommandSummary:
        """Clone repositories.

        With ``url``, clone that one repository to ``destination`` (a path that
        may contain ``{name}``, defaulting to ``./{name}``). Without it, clone
        every catalog entry whose directory does not exist yet.
        """
        if url:
            name = _repo_name_from_url(url)
            # Only {name} is substituted, other braces are kept literally
            path = Path(destination.replace("{name}", name) if destination else name).expanduser().resolve()
            repo = RepositoryRef(path=path, name=path.name, rel_path=str(path), url=url)
            result = self.executor.run(
                RepositorySet([repo]), lambda r: self.backend.clone(r, url), label="clone"
            )
            skipped = RepositorySet()
        else:
            repos = self.repositories()
            missing = repos.filter(lambda repo: not repo.path.exists())
            skipped = repos.filter(lambda repo: repo.path.exists())
            result = self.executor.run(missing, self._clone_from_catalog, label="clone")

        return CommandSummary(
            verb="clone",
            headline=f"{len(result.succeeded)} repos cloned, {len(result.failed)} failed",
            result=result,
            skipped=skipped,
        )

    def _workflow_state(self, repo: RepositoryRef) -> str:
        full_name = parse_github_repo(self.backend.remote_url(repo))
        if full_name is None:
            raise RepositoryError("workflows", repo.rel_path, "remote is not a GitHub repository")
        branch = self.backend.current_branch(repo)
        run = self.github_service.latest_workflow_run(full_name, branch)
        return run.state if run else "no runs"

    def workflows(self) -> CommandSummary:
        """Report the latest CI workflow run state for each repository's current branch."""
        self.github_service.require_client()
        repos = self.repositories()
        result = self.executor.run(repos, self._workflow_state, label="workflows")

        buckets: Dict[str, List[RepositoryRef]] = {}
        for outcome in result.succeeded:
            buckets.setdefault(outcome.value, []).append(outcome.repo)
        groups = {state: RepositorySet(members) for state, members in buckets.items()}
        return CommandSummary(
            verb="workflows",
            headline=f"{len(groups.get('success', ()))} of {len(repos)} repos passing",
            result=result,
            groups=groups,
            expanded=[state for state in groups if state != "success"],
        )
