"""Repository providers and authentication."""

from gitpoll.repository.auth import AuthMethod, BasicAuth, SshKeyAuth, to_auth_method
from gitpoll.repository.git_provider import GitRepositoryProvider
from gitpoll.repository.provider import RepositoryProvider

__all__ = [
    "AuthMethod",
    "BasicAuth",
    "SshKeyAuth",
    "to_auth_method",
    "GitRepositoryProvider",
    "RepositoryProvider",
]
