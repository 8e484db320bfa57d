"""First-parent ancestry walking between two commits."""

from typing import List

import structlog

from gitpoll.exceptions import AncestryNotFoundError
from gitpoll.models.commit import CommitInfo

logger = structlog.get_logger(__name__)


class AncestryWalker:
    """Linearizes the history between a known commit and a newer one.

    Only first parents are followed, so merged side branches show up as a
    single step from the merge's first parent to the merge commit.
    """

    def __init__(self, provider) -> None:
        """Initialize the walker.

        Args:
            provider: RepositoryProvider supplying ``first_parent``
        """
        self.provider = provider

    def walk(self, handle, local_head: CommitInfo, remote_head: CommitInfo) -> List[CommitInfo]:
        """Find the commits connecting local_head to remote_head.

        Args:
            handle: Repository handle
            local_head: Last observed commit
            remote_head: Newly fetched commit

        Returns:
            ``[local_head, c1, ..., remote_head]`` oldest first, or an empty
            list when both heads are the same commit

        Raises:
            AncestryNotFoundError: If local_head is not a first-parent
                ancestor of remote_head
        """
        if local_head.sha == remote_head.sha:
            return []

        chain = []
        commit = remote_head
        while commit.sha != local_head.sha:
            chain.append(commit)
            parent = self.provider.first_parent(handle, commit)
            if parent is None:
                logger.warning(
                    "ancestry_not_found",
                    local=local_head.short_sha,
                    remote=remote_head.short_sha,
                    walked=len(chain),
                )
                raise AncestryNotFoundError(local_head.sha, remote_head.sha)
            commit = parent

        chain.append(local_head)
        chain.reverse()
        return chain
