"""GitHub API integration service"""

import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from github import Auth, Github, GithubException

from fell.exceptions import ConfigurationError, GitHubAPIError
from fell.logging_config import get_logger

logger = get_logger(__name__)


def parse_github_repo(remote_url: Optional[str]) -> Optional[str]:
    """Extract ``owner/name`` from a GitHub remote URL, or None for other hosts."""
    if not remote_url or "github.com" not in remote_url:
        return None

    if remote_url.startswith("git@"):
        # SSH URL format (git@github.com:org/repo.git)
        path = remote_url.split("github.com:", 1)[-1]
    else:
        # HTTPS / ssh:// URL format (https://github.com/org/repo.git)
        path = urlparse(remote_url).path.strip("/")

    if path.endswith(".git"):
        path = path[:-4]
    if path.count("/") != 1:
        return None
    return path


@dataclass(frozen=True)
class WorkflowRunInfo:
    """Latest CI workflow run for a branch."""
    name: str
    status: str
    conclusion: Optional[str]
    url: str

    @property
    def state(self) -> str:
        """Conclusion once finished, otherwise the run status (queued, in_progress...)."""
        return self.conclusion or self.status


class GitHubService:
    """Thin wrapper around PyGithub for workflow status and pull requests."""

    def __init__(self, token: Optional[str] = None, client: Optional[Github] = None):
        """Initialize the service.

        Args:
            token: GitHub token; falls back to $GITHUB_TOKEN
            client: Pre-built client (tests inject a mock here)
        """
        self.github_token = token or os.environ.get("GITHUB_TOKEN")
        self._client = client

    @property
    def github(self) -> Github:
        if self._client is None:
            if not self.github_token:
                raise ConfigurationError(
                    "a GitHub token is required (set GITHUB_TOKEN or pass --github-token)"
                )
            self._client = Github(auth=Auth.Token(self.github_token))
        return self._client

    def require_client(self) -> None:
        """Raise ConfigurationError now if no client can be built.

        Commands call this before starting a batch so a missing token fails
        the whole command instead of every repository.
        """
        self.github

    def latest_workflow_run(self, full_name: str, branch: str) -> Optional[WorkflowRunInfo]:
        """Return the most recent workflow run on branch, or None if there is none."""
        try:
            gh_repo = self.github.get_repo(full_name)
            runs = gh_repo.get_workflow_runs(branch=branch)
            run = next(iter(runs), None)
        except GithubException as e:
            raise GitHubAPIError("get_workflow_runs", f"{full_name}: {e}")

        if run is None:
            logger.debug(f"[GitHub] No workflow runs for {full_name}@{branch}")
            return None
        logger.debug(f"[GitHub] {full_name}@{branch}: {run.status} / {run.conclusion}")
        return WorkflowRunInfo(
            name=run.name or "",
            status=run.status,
            conclusion=run.conclusion,
            url=run.html_url,
        )

    def open_pull_request(self, full_name: str, head: str, base: str, title: str, body: str = "") -> str:
        """Open a pull request and return its URL."""
        try:
            gh_repo = self.github.get_repo(full_name)
            pr = gh_repo.create_pull(title=title, body=body, base=base, head=head)
        except GithubException as e:
            raise GitHubAPIError("create_pull", f"{full_name}: {e}")
        logger.info(f"[GitHub] Opened {pr.html_url}")
        return pr.html_url
