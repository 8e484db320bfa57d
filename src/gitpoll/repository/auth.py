"""Authentication methods for talking to the remote.

An auth method is built once from configuration and handed explicitly to
every network operation of a repository provider.
"""

import shlex
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict
from urllib.parse import quote, urlsplit, urlunsplit

from gitpoll.exceptions import ConfigurationError
from gitpoll.models.config import AuthConfig


class AuthMethod(ABC):
    """Immutable credentials applied to git network commands."""

    @abstractmethod
    def env(self) -> Dict[str, str]:
        """Environment variables to set for a git command."""

    def url(self, remote: str) -> str:
        """Remote URL to use for a git command."""
        return remote


class SshKeyAuth(AuthMethod):
    """Authenticate with an SSH private key file."""

    def __init__(self, key_path: Path) -> None:
        self._key_path = Path(key_path)

    @property
    def key_path(self) -> Path:
        return self._key_path

    def env(self) -> Dict[str, str]:
        command = f"ssh -i {shlex.quote(str(self._key_path))} -o IdentitiesOnly=yes"
        return {"GIT_SSH_COMMAND": command, "GIT_TERMINAL_PROMPT": "0"}

    def __repr__(self) -> str:
        return f"SshKeyAuth(key_path={str(self._key_path)!r})"


class BasicAuth(AuthMethod):
    """Authenticate with a username and password over HTTP(S).

    Credentials are only spliced into the URL of the command being run, so
    they never end up in the clone's stored remote URL.
    """

    def __init__(self, username: str, password: str) -> None:
        self._username = username
        self._password = password

    @property
    def username(self) -> str:
        return self._username

    def env(self) -> Dict[str, str]:
        return {"GIT_TERMINAL_PROMPT": "0"}

    def url(self, remote: str) -> str:
        parts = urlsplit(remote)
        if parts.scheme not in ("http", "https"):
            return remote

        host = parts.hostname or ""
        if parts.port:
            host = f"{host}:{parts.port}"
        userinfo = f"{quote(self._username, safe='')}:{quote(self._password, safe='')}"
        return urlunsplit((parts.scheme, f"{userinfo}@{host}", parts.path, parts.query, parts.fragment))

    def __repr__(self) -> str:
        return f"BasicAuth(username={self._username!r}, password='**********')"


def to_auth_method(config: AuthConfig) -> AuthMethod:
    """Build the auth method selected by configuration.

    Args:
        config: Validated auth configuration

    Returns:
        SshKeyAuth or BasicAuth

    Raises:
        ConfigurationError: If the SSH key file cannot be found
    """
    if config.ssh_key is not None:
        key_path = config.ssh_key.expanduser()
        if not key_path.is_file():
            raise ConfigurationError(f"SSH key file does not exist: {key_path}")
        return SshKeyAuth(key_path)

    return BasicAuth(config.username or "", config.password.get_secret_value() if config.password else "")


def redact_url(url: str) -> str:
    """Strip any userinfo from a URL before logging it."""
    parts = urlsplit(url)
    if not parts.username and not parts.password:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, host, parts.path, parts.query, parts.fragment))
