"""Poll a remote Git repository and stream file-level changes per commit."""

from gitpoll.detection.filters import PathFilter
from gitpoll.exceptions import (
    AlreadyStartedError,
    AncestryNotFoundError,
    ConfigurationError,
    GitPollError,
    NotSetUpError,
    PollError,
    RemoteBranchNotFoundError,
    RepositoryError,
    SetupError,
    TransportAuthError,
)
from gitpoll.models import AuthConfig, Author, ChangeType, CommitDiff, CommitInfo, FileChange, PollConfig
from gitpoll.poller import Poller, PollerState

__version__ = "0.1.0"

__all__ = [
    "Poller",
    "PollerState",
    "PollConfig",
    "AuthConfig",
    "Author",
    "ChangeType",
    "CommitDiff",
    "CommitInfo",
    "FileChange",
    "PathFilter",
    "GitPollError",
    "ConfigurationError",
    "AlreadyStartedError",
    "NotSetUpError",
    "SetupError",
    "PollError",
    "AncestryNotFoundError",
    "RepositoryError",
    "RemoteBranchNotFoundError",
    "TransportAuthError",
]
