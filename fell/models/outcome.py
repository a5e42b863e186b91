"""Per-repository operation outcomes"""
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional

from fell.models.repository import RepositoryRef, RepositorySet


@dataclass(frozen=True)
class OperationOutcome:
    """Result of one operation on one repository.

    Exactly one of ``value`` (success) or ``error`` (failure) is meaningful,
    discriminated by ``ok``.
    """
    repo: RepositoryRef
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, repo: RepositoryRef, value: Any = None) -> "OperationOutcome":
        return cls(repo=repo, ok=True, value=value)

    @classmethod
    def failure(cls, repo: RepositoryRef, error: BaseException) -> "OperationOutcome":
        return cls(repo=repo, ok=False, error=error)

    @property
    def reason(self) -> str:
        """Human readable failure description (empty for successes)."""
        if self.ok or self.error is None:
            return ""
        return str(self.error) or type(self.error).__name__


class BatchResult:
    """Outcomes of a batch, in the order of the input repository set."""

    def __init__(self, outcomes: Optional[List[OperationOutcome]] = None):
        self.outcomes: List[OperationOutcome] = list(outcomes or [])

    def __iter__(self) -> Iterator[OperationOutcome]:
        return iter(self.outcomes)

    def __len__(self) -> int:
        return len(self.outcomes)

    def __getitem__(self, index: int) -> OperationOutcome:
        return self.outcomes[index]

    def __add__(self, other: "BatchResult") -> "BatchResult":
        return BatchResult(self.outcomes + other.outcomes)

    @property
    def succeeded(self) -> List[OperationOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> List[OperationOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def has_failures(self) -> bool:
        return any(not outcome.ok for outcome in self.outcomes)

    @property
    def repos(self) -> RepositorySet:
        return RepositorySet(outcome.repo for outcome in self.outcomes)

    def succeeded_repos(self) -> RepositorySet:
        return RepositorySet(outcome.repo for outcome in self.succeeded)

    def __repr__(self) -> str:
        return f"BatchResult(succeeded={len(self.succeeded)}, failed={len(self.failed)})"
