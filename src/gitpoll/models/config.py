"""Configuration models."""

from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from gitpoll.exceptions import ConfigurationError
from gitpoll.models.commit import CommitDiff, FileChange

FileChangeFilter = Callable[[FileChange], bool]
CommitHandler = Callable[[CommitDiff], None]
ErrorHandler = Callable[[Exception], None]

DEFAULT_INTERVAL_SECONDS = 30.0


class AuthConfig(BaseModel):
    """Credentials for the polled remote.

    Either ``ssh_key`` or ``username`` and ``password`` must be set, never both.
    Invalid combinations raise pydantic's ``ValidationError`` (a ``ValueError``);
    use ``Poller.from_options`` or ``Settings.to_poll_config`` to get a
    ``ConfigurationError`` instead.
    """

    model_config = ConfigDict(frozen=True)

    ssh_key: Optional[Path] = Field(None, description="Path to an SSH private key (~ is expanded)")
    username: Optional[str] = Field(None, description="Username for HTTP(S) remotes")
    password: Optional[SecretStr] = Field(None, description="Password or token for HTTP(S) remotes")

    @model_validator(mode="after")
    def _check_exclusive(self) -> "AuthConfig":
        has_basic = self.username is not None or self.password is not None
        if self.ssh_key is not None and has_basic:
            raise ValueError("ssh_key cannot be combined with username/password")
        if self.ssh_key is None:
            if not has_basic:
                raise ValueError("either ssh_key or username and password is required")
            if not self.username or self.password is None:
                raise ValueError("username and password must be set together")
        return self


class PollConfig(BaseModel):
    """Immutable configuration for a Poller.

    Constructing it directly raises pydantic's ``ValidationError`` on bad
    input. ``Poller.from_options`` and ``Settings.to_poll_config`` build it
    and raise ``ConfigurationError`` instead; both are ``ValueError``s.
    """

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,
        json_schema_extra={
            "example": {
                "remote": "https://github.com/example/repo.git",
                "branch": "main",
                "clone_directory": "/tmp/repo",
                "interval": 30,
                "auth": {"username": "bot", "password": "token"},
            }
        },
    )

    remote: str = Field(..., min_length=1, description="URL of the remote repository")
    auth: AuthConfig = Field(..., description="Credentials for the remote")
    branch: Optional[str] = Field(None, description="Branch to poll. Defaults to the remote's default branch")
    clone_directory: Path = Field(
        default_factory=Path.cwd,
        description="Directory the repository is cloned into. Defaults to the current directory",
    )
    interval: float = Field(DEFAULT_INTERVAL_SECONDS, gt=0, description="Polling interval in seconds")
    channel_capacity: int = Field(1, ge=1, description="Delivery channel buffer size")

    # Callables run synchronously on the polling thread; a slow one stalls polling.
    file_filter: Optional[FileChangeFilter] = Field(
        None, description="Return False to drop a FileChange from every CommitDiff"
    )
    on_change: Optional[CommitHandler] = Field(
        None, description="Called for each CommitDiff, in commit order, before channel delivery"
    )
    on_error: Optional[ErrorHandler] = Field(
        None, description="Called with errors that the polling loop skips over"
    )

    @field_validator("clone_directory")
    @classmethod
    def _absolute_directory(cls, value: Path) -> Path:
        return value.expanduser().absolute()

    @field_validator("branch")
    @classmethod
    def _blank_branch_is_default(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are prefixed with GITPOLL_ (e.g., GITPOLL_REMOTE).
    """

    model_config = SettingsConfigDict(
        env_prefix="GITPOLL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    remote: Optional[str] = None
    branch: Optional[str] = None
    clone_directory: Optional[Path] = None
    interval: float = DEFAULT_INTERVAL_SECONDS

    # Auth
    ssh_key: Optional[Path] = None
    username: Optional[str] = None
    password: Optional[SecretStr] = None

    # Logging
    log_level: str = "INFO"

    def to_poll_config(self, **overrides: Any) -> PollConfig:
        """Build a PollConfig from these settings.

        Args:
            **overrides: PollConfig fields that take precedence over settings.
                ``None`` values are ignored.

        Returns:
            PollConfig
        """
        values: dict = {"remote": self.remote, "branch": self.branch, "interval": self.interval}
        if self.clone_directory is not None:
            values["clone_directory"] = self.clone_directory
        values.update({key: value for key, value in overrides.items() if value is not None})

        try:
            if "auth" not in values:
                values["auth"] = AuthConfig(
                    ssh_key=self.ssh_key, username=self.username, password=self.password
                )
            return PollConfig(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid poll configuration: {e}") from e
