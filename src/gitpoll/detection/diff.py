"""Classification of tree diffs into file changes."""

from typing import List

from gitpoll.models.commit import ChangeType, CommitDiff, CommitInfo, FileChange
from gitpoll.models.tree import TreeAction, TreeChange

_CHANGE_TYPES = {
    TreeAction.MODIFY: ChangeType.UPDATE,
    TreeAction.INSERT: ChangeType.CREATE,
    TreeAction.DELETE: ChangeType.DELETE,
}


def classify(tree_change: TreeChange) -> FileChange:
    """Turn one raw tree diff entry into a FileChange.

    Deletes are reported at the path they had in the 'from' tree, everything
    else at the path in the 'to' tree.
    """
    change_type = _CHANGE_TYPES[tree_change.action]
    if change_type == ChangeType.DELETE:
        filepath = tree_change.from_path
    else:
        filepath = tree_change.to_path or tree_change.from_path
    return FileChange(filepath=filepath or "", change_type=change_type)


class DiffEngine:
    """Computes the classified file changes between two commits."""

    def __init__(self, provider) -> None:
        self.provider = provider

    def diff(self, handle, from_commit: CommitInfo, to_commit: CommitInfo) -> CommitDiff:
        """Diff two commits.

        Changes keep the provider's enumeration order, which is stable but
        not necessarily sorted by path.

        Args:
            handle: Repository handle
            from_commit: Base commit
            to_commit: Result commit

        Returns:
            CommitDiff with repository-relative paths
        """
        tree_changes = self.provider.diff_trees(handle, from_commit, to_commit)
        changes: List[FileChange] = [classify(tree_change) for tree_change in tree_changes]
        return CommitDiff(changes=changes, from_commit=from_commit, to_commit=to_commit)
