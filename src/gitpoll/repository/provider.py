"""Repository provider capability.

The poller never talks to git directly. Everything it needs from a version
control backend goes through a RepositoryProvider, so tests can substitute an
in-memory provider for a real network-backed repository.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional

from gitpoll.detection.ancestry import AncestryWalker
from gitpoll.models.commit import CommitInfo
from gitpoll.models.tree import TreeChange
from gitpoll.repository.auth import AuthMethod

# Opaque handle to a local clone, owned by whoever called clone().
RepoHandle = Any



class RepositoryProvider(ABC):
    """Abstract base class for repository backends."""

    @abstractmethod
    def clone(self, remote: str, branch: Optional[str], directory: Path, auth: AuthMethod) -> RepoHandle:
        """Clone the remote into directory, or open the clone already there.

        Args:
            remote: Remote repository URL
            branch: Branch to check out, or None for the remote's default
            directory: Local clone directory
            auth: Credentials for the remote

        Returns:
            Handle to the local clone

        Raises:
            RepositoryError: If cloning or opening fails
        """
        pass

    @abstractmethod
    def fetch(self, handle: RepoHandle, auth: AuthMethod) -> None:
        """Fetch all branches from the remote. Being up to date is not an error."""
        pass

    @abstractmethod
    def pull(
        self,
        handle: RepoHandle,
        branch: str,
        auth: AuthMethod,
        target: Optional[CommitInfo] = None,
    ) -> None:
        """Fast-forward the local branch.

        Args:
            handle: Local clone
            branch: Branch to fast-forward
            auth: Credentials for the remote
            target: Already fetched commit to fast-forward to. When None, the
                remote branch head is pulled.
        """
        pass

    @abstractmethod
    def resolve_head(self, handle: RepoHandle) -> CommitInfo:
        """Return the commit currently checked out."""
        pass

    @abstractmethod
    def resolve_remote_branch_head(self, handle: RepoHandle, branch: str, auth: AuthMethod) -> CommitInfo:
        """Return the latest commit of branch on the remote as of the last fetch.

        Raises:
            RemoteBranchNotFoundError: If the remote has no such branch
        """
        pass

    @abstractmethod
    def current_branch(self, handle: RepoHandle) -> str:
        """Return the name of the branch checked out in the clone."""
        pass

    @abstractmethod
    def first_parent(self, handle: RepoHandle, commit: CommitInfo) -> Optional[CommitInfo]:
        """Return the first parent of commit, or None for a root commit."""
        pass

    @abstractmethod
    def diff_trees(self, handle: RepoHandle, from_commit: CommitInfo, to_commit: CommitInfo) -> List[TreeChange]:
        """Compare the trees of two commits.

        Renames are reported as a delete of the old path and an insert of the
        new one.
        """
        pass

    def walk_first_parent_ancestry(
        self, handle: RepoHandle, from_commit: CommitInfo, to_commit: CommitInfo
    ) -> List[CommitInfo]:
        """Return the first-parent chain from from_commit to to_commit, oldest first.

        Raises:
            AncestryNotFoundError: If from_commit is not reached
        """
        return AncestryWalker(self).walk(handle, from_commit, to_commit)
