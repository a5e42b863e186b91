"""Configuration handling for fell"""

import os
from dataclasses import dataclass, field
from typing import Optional, List

from fell.constants import DEFAULT_BRANCH, DEFAULT_REMOTE


@dataclass
class Config:
    """Configuration for fell with validation."""

    # Catalog location
    catalog_file: Optional[str] = None
    repos_root: Optional[str] = None

    # Repository filtering
    exclude: List[str] = field(default_factory=list)
    scope: Optional[str] = None

    # Branch and remote conventions
    default_branch: str = DEFAULT_BRANCH
    remote_name: str = DEFAULT_REMOTE

    # Remote transport
    accept_all_host_keys: bool = True
    use_ssh_agent: bool = True

    # GitHub integration (workflows, pull requests)
    github_token: Optional[str] = None

    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_exclude()
        self._validate_scope()
        self._validate_default_branch()
        self._validate_remote_name()
        if not self.github_token:
            self.github_token = os.environ.get("GITHUB_TOKEN") or None

    def _validate_exclude(self):
        """Validate exclude is a list of non-empty names."""
        if isinstance(self.exclude, (str, bytes)) or not isinstance(self.exclude, (list, tuple, set)):
            raise ValueError("exclude must be a list of repository names")
        cleaned = [name.strip() for name in self.exclude]
        if any(not name for name in cleaned):
            raise ValueError("exclude cannot contain empty names")
        self.exclude = cleaned

    def _validate_scope(self):
        """Normalize an empty scope to None."""
        if self.scope is not None:
            self.scope = self.scope.strip() or None

    def _validate_default_branch(self):
        """Validate default_branch is not empty."""
        if not self.default_branch or not self.default_branch.strip():
            raise ValueError("default_branch cannot be empty")
        self.default_branch = self.default_branch.strip()

    def _validate_remote_name(self):
        """Validate remote_name is not empty."""
        if not self.remote_name or not self.remote_name.strip():
            raise ValueError("remote_name cannot be empty")
        self.remote_name = self.remote_name.strip()

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "catalog_file": self.catalog_file,
            "repos_root": self.repos_root,
            "exclude": list(self.exclude),
            "scope": self.scope,
            "default_branch": self.default_branch,
            "remote_name": self.remote_name,
            "accept_all_host_keys": self.accept_all_host_keys,
            "use_ssh_agent": self.use_ssh_agent,
            "github_token": self.github_token,
            "verbose": self.verbose,
            "debug": self.debug,
        }

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = set(cls.__dataclass_fields__)
        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)
