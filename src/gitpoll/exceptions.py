"""Exceptions raised by gitpoll."""


class GitPollError(Exception):
    """Base class for all gitpoll errors."""


class ConfigurationError(GitPollError, ValueError):
    """Missing or contradictory configuration. Raised at construction."""


class LifecycleError(GitPollError):
    """An operation was called in the wrong poller state."""


class AlreadyStartedError(LifecycleError):
    """The poller was already set up, started or stopped."""


class NotSetUpError(LifecycleError):
    """The poller has no repository yet; call setup() or start first."""


class SetupError(GitPollError):
    """Cloning, opening or the initial snapshot failed. Polling never starts."""


class PollError(GitPollError):
    """A single polling tick failed. Nothing from the tick is delivered."""


class AncestryNotFoundError(PollError):
    """The local head is not a first-parent ancestor of the remote head."""

    def __init__(self, local_sha: str, remote_sha: str) -> None:
        self.local_sha = local_sha
        self.remote_sha = remote_sha
        super().__init__(
            f"Commit {local_sha[:7]} is not a first-parent ancestor of {remote_sha[:7]} "
            "(history was rewritten or the branches diverged)"
        )


class RepositoryError(GitPollError):
    """A repository provider operation failed."""


class RemoteBranchNotFoundError(RepositoryError):
    """The tracked branch does not exist on the remote."""

    def __init__(self, branch: str) -> None:
        self.branch = branch
        super().__init__(f"Branch {branch} not found on remote")


class TransportAuthError(RepositoryError):
    """The remote rejected our credentials. Never retried automatically."""
