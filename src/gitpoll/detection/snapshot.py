"""Snapshot of the working tree right after cloning."""

import os
from pathlib import Path

from gitpoll.models.commit import ChangeType, CommitDiff, CommitInfo, FileChange

GIT_DIR = ".git"


def snapshot_working_tree(directory: Path, head: CommitInfo) -> CommitDiff:
    """List every file of a clone as an ``init`` change.

    Version control metadata (any ``.git`` directory or file) is skipped.

    Args:
        directory: Root of the working tree
        head: Commit currently checked out

    Returns:
        CommitDiff from head to head with repository-relative paths
    """
    root = Path(directory)
    changes = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name != GIT_DIR)
        for filename in sorted(filenames):
            if filename == GIT_DIR:
                continue
            relative = Path(dirpath, filename).relative_to(root)
            changes.append(FileChange(filepath=relative.as_posix(), change_type=ChangeType.INIT))

    return CommitDiff(changes=changes, from_commit=head, to_commit=head)
