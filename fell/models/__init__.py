"""Data models for fell."""

from .repository import (
    BranchMap,
    DefaultBranchRelation,
    RepositoryRef,
    RepositorySet,
    StatusGroups,
    SyncResult,
    WorkingTreeStatus,
)
from .outcome import BatchResult, OperationOutcome

__all__ = [
    "BatchResult",
    "BranchMap",
    "DefaultBranchRelation",
    "OperationOutcome",
    "RepositoryRef",
    "RepositorySet",
    "StatusGroups",
    "SyncResult",
    "WorkingTreeStatus",
]
