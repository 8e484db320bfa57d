"""Data models for commits and the file changes between them."""

from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ChangeType(str, Enum):
    """Kind of change made to a single file."""

    UPDATE = "update"
    CREATE = "create"
    DELETE = "delete"
    # Present after the initial clone. Only ever emitted once per poller.
    INIT = "init"


class FileChange(BaseModel):
    """A change to one file in the polled repository."""

    model_config = ConfigDict(frozen=True)

    filepath: str = Field(..., description="Path of the changed file")
    change_type: ChangeType = Field(..., description="Type of change")


class Author(BaseModel):
    """Author of a commit."""

    model_config = ConfigDict(frozen=True)

    name: str = Field("", description="Author name")
    email: str = Field("", description="Author email")


class CommitInfo(BaseModel):
    """Metadata for a single commit, as read from the repository."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "sha": "3f1c2a9d0e5b7c4f8a6d2e1b0c9f8e7d6a5b4c3d",
                "when": "2024-01-15T10:30:00Z",
                "author": {"name": "John Doe", "email": "john@example.com"},
                "message": "Fix authentication bug\n",
            }
        },
    )

    sha: str = Field(..., description="Full commit SHA")
    when: datetime = Field(..., description="Author timestamp in UTC")
    author: Author = Field(default_factory=Author, description="Commit author")
    message: str = Field("", description="Full commit message")

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    @property
    def summary(self) -> str:
        """First line of the commit message."""
        lines = self.message.strip().splitlines()
        return lines[0] if lines else ""


class CommitDiff(BaseModel):
    """The file changes between two commits.

    Each diff covers exactly one step of the first-parent ancestry walk. The
    synthetic diff emitted at startup has ``from_commit == to_commit`` and
    only ``init`` changes.
    """

    model_config = ConfigDict(frozen=True)

    changes: List[FileChange] = Field(default_factory=list, description="Ordered file changes")
    from_commit: CommitInfo = Field(..., description="Base of the changes")
    to_commit: CommitInfo = Field(..., description="Result of the changes")

    @property
    def is_init(self) -> bool:
        return self.from_commit.sha == self.to_commit.sha and all(
            change.change_type == ChangeType.INIT for change in self.changes
        )
