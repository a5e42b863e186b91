"""Repository model and classification types"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple


class WorkingTreeStatus(Enum):
    """Working tree state of a repository."""
    CLEAN = "clean"
    DIRTY = "dirty"


class DefaultBranchRelation(Enum):
    """Position of a branch relative to the default branch."""
    EQUAL = "equal"
    AHEAD = "ahead"
    BEHIND = "behind"
    DIVERGED = "diverged"


class SyncResult(Enum):
    """What a fast-forward-only sync did to the current branch."""
    UP_TO_DATE = "up-to-date"
    FAST_FORWARDED = "fast-forwarded"
    AHEAD = "ahead"


@dataclass(frozen=True)
class RepositoryRef:
    """One managed repository."""
    path: Path
    name: str
    rel_path: str
    url: Optional[str] = field(default=None, compare=False)

    def __str__(self) -> str:
        return self.rel_path


class RepositorySet:
    """Ordered, duplicate-free sequence of repositories (unique by path)."""

    def __init__(self, repos: Iterable[RepositoryRef] = ()):
        seen = set()
        ordered = []
        for repo in repos:
            if repo.path in seen:
                continue
            seen.add(repo.path)
            ordered.append(repo)
        self._repos: Tuple[RepositoryRef, ...] = tuple(ordered)

    def __iter__(self) -> Iterator[RepositoryRef]:
        return iter(self._repos)

    def __len__(self) -> int:
        return len(self._repos)

    def __getitem__(self, index: int) -> RepositoryRef:
        return self._repos[index]

    def __contains__(self, repo: object) -> bool:
        return repo in self._repos

    def __bool__(self) -> bool:
        return bool(self._repos)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RepositorySet):
            return self._repos == other._repos
        if isinstance(other, (list, tuple)):
            return list(self._repos) == list(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._repos)

    def __repr__(self) -> str:
        return f"RepositorySet({[repo.rel_path for repo in self._repos]!r})"

    @property
    def names(self) -> List[str]:
        return [repo.name for repo in self._repos]

    def filter(self, predicate) -> "RepositorySet":
        """Return the members for which predicate(repo) is true, order preserved."""
        return RepositorySet(repo for repo in self._repos if predicate(repo))


@dataclass
class StatusGroups:
    """Partition of a repository set into clean and dirty repositories."""
    clean: RepositorySet
    dirty: RepositorySet


# branch name -> repositories currently on that branch
BranchMap = Dict[str, RepositorySet]
