"""Concurrent fan-out of one operation across a repository set"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Optional

from fell.logging_config import get_logger
from fell.models.outcome import BatchResult, OperationOutcome
from fell.models.repository import RepositoryRef, RepositorySet

logger = get_logger(__name__)

Operation = Callable[[RepositoryRef], Any]


class BatchExecutor:
    """Runs a per-repository operation on every repository at once.

    Each repository gets its own worker thread (no concurrency cap), the
    caller blocks until all of them finish, and an exception in one task is
    recorded as that repository's failure outcome instead of propagating.
    Nothing is retried.
    """

    def __init__(self, on_complete: Optional[Callable[[OperationOutcome], None]] = None):
        """Initialize the executor.

        Args:
            on_complete: Optional callback invoked (from the collecting thread)
                as each outcome arrives, in completion order. Used for progress display.
        """
        self.on_complete = on_complete

    def _run_one(self, operation: Operation, repo: RepositoryRef) -> OperationOutcome:
        try:
            return OperationOutcome.success(repo, operation(repo))
        except Exception as e:
            logger.warning(f"{repo.rel_path}: {e}")
            return OperationOutcome.failure(repo, e)

    def run(self, repos: RepositorySet, operation: Operation, label: str = "operation") -> BatchResult:
        """Apply operation to every repository concurrently.

        Args:
            repos: Target repositories
            operation: Callable taking a RepositoryRef; its return value becomes the outcome value
            label: Name used in log messages

        Returns:
            BatchResult with one outcome per repository, in input order
        """
        repos = list(repos)
        if not repos:
            logger.debug(f"No repositories for {label}, nothing to do")
            return BatchResult()

        logger.debug(f"Dispatching {label} to {len(repos)} repositories")
        outcomes: List[Optional[OperationOutcome]] = [None] * len(repos)

        with ThreadPoolExecutor(max_workers=len(repos), thread_name_prefix="fell") as executor:
            future_to_index: Dict = {
                executor.submit(self._run_one, operation, repo): index
                for index, repo in enumerate(repos)
            }

            # Collect results as they complete
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    outcome = future.result()
                except Exception as e:
                    # _run_one already traps task errors; this covers executor failures
                    logger.error(f"Error running {label} on {repos[index].rel_path}: {e}")
                    outcome = OperationOutcome.failure(repos[index], e)
                outcomes[index] = outcome
                if self.on_complete:
                    self.on_complete(outcome)

        result = BatchResult([outcome for outcome in outcomes if outcome is not None])
        logger.info(f"{label}: {len(result.succeeded)} succeeded, {len(result.failed)} failed")
        return result
