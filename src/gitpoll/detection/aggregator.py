"""Aggregation of per-commit diffs for a range of new commits."""

from pathlib import Path
from typing import Callable, List, Optional, Sequence

import structlog

from gitpoll.detection.diff import DiffEngine
from gitpoll.models.commit import CommitDiff, CommitInfo, FileChange

logger = structlog.get_logger(__name__)


class ChangeAggregator:
    """Builds one CommitDiff per step of an ancestry chain.

    Every diff is passed through the consumer filter and has its paths
    rewritten to absolute paths under the clone directory. A diff whose
    changes are all filtered out is still returned, with no changes.
    """

    def __init__(
        self,
        diff_engine: DiffEngine,
        clone_directory: Path,
        file_filter: Optional[Callable[[FileChange], bool]] = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            diff_engine: Engine used to diff each pair of commits
            clone_directory: Absolute directory paths are rewritten under
            file_filter: Optional predicate; changes it rejects are dropped
        """
        self.diff_engine = diff_engine
        self.clone_directory = Path(clone_directory)
        self.file_filter = file_filter

    def aggregate(self, handle, commits: Sequence[CommitInfo]) -> List[CommitDiff]:
        """Diff each adjacent pair of commits.

        Args:
            handle: Repository handle
            commits: Ancestry chain, oldest first

        Returns:
            One CommitDiff per adjacent pair, in chain order
        """
        diffs = []
        for from_commit, to_commit in zip(commits, commits[1:]):
            diff = self.diff_engine.diff(handle, from_commit, to_commit)
            diffs.append(self.apply(diff))

        if diffs:
            logger.debug(
                "aggregated_commit_diffs",
                diffs=len(diffs),
                changes=sum(len(diff.changes) for diff in diffs),
            )
        return diffs

    def apply(self, diff: CommitDiff) -> CommitDiff:
        """Filter a diff's changes and make their paths absolute.

        Args:
            diff: CommitDiff with repository-relative paths

        Returns:
            New CommitDiff with the surviving changes, in their original order
        """
        changes = []
        for change in diff.changes:
            if self.file_filter is not None and not self.file_filter(change):
                continue
            changes.append(self.rewrite_path(change))
        return diff.model_copy(update={"changes": changes})

    def rewrite_path(self, change: FileChange) -> FileChange:
        """Prefix a repository-relative path with the clone directory."""
        return change.model_copy(update={"filepath": str(self.clone_directory / change.filepath)})
