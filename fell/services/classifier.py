"""Groups repositories by working tree state and current branch"""

from typing import Dict, List, Optional, Tuple

from fell.logging_config import get_logger
from fell.models.outcome import BatchResult
from fell.models.repository import (
    BranchMap,
    RepositoryRef,
    RepositorySet,
    StatusGroups,
    WorkingTreeStatus,
)
from fell.services.batch import BatchExecutor
from fell.services.vcs.backend import VcsBackend

logger = get_logger(__name__)


class RepositoryClassifier:
    """Classifies a repository set with one concurrent backend query per repository."""

    def __init__(self, backend: VcsBackend, executor: Optional[BatchExecutor] = None):
        self.backend = backend
        self.executor = executor or BatchExecutor()

    def classify_status_detailed(self, repos: RepositorySet) -> Tuple[StatusGroups, BatchResult]:
        """Partition repos into clean/dirty.

        Returns:
            (groups, failures): repositories whose status could not be read are
            left out of both groups and reported in failures instead.
        """
        result = self.executor.run(repos, self.backend.status, label="status")
        clean = [o.repo for o in result.succeeded if o.value is WorkingTreeStatus.CLEAN]
        dirty = [o.repo for o in result.succeeded if o.value is WorkingTreeStatus.DIRTY]
        logger.debug(f"{len(clean)} clean, {len(dirty)} dirty, {len(result.failed)} unreadable")
        return StatusGroups(clean=RepositorySet(clean), dirty=RepositorySet(dirty)), BatchResult(result.failed)

    def classify_status(self, repos: RepositorySet) -> StatusGroups:
        groups, _ = self.classify_status_detailed(repos)
        return groups

    def classify_branches_detailed(self, repos: RepositorySet) -> Tuple[BranchMap, BatchResult]:
        """Group repos by their current branch.

        Buckets appear in order of first occurrence in the input set.
        """
        result = self.executor.run(repos, self.backend.current_branch, label="branch")
        buckets: Dict[str, List[RepositoryRef]] = {}
        for outcome in result.succeeded:
            buckets.setdefault(outcome.value, []).append(outcome.repo)
        branch_map: BranchMap = {branch: RepositorySet(members) for branch, members in buckets.items()}
        return branch_map, BatchResult(result.failed)

    def classify_branches(self, repos: RepositorySet) -> BranchMap:
        branch_map, _ = self.classify_branches_detailed(repos)
        return branch_map
