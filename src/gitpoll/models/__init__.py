"""Data models for change detection and configuration."""

from gitpoll.models.commit import Author, ChangeType, CommitDiff, CommitInfo, FileChange
from gitpoll.models.config import AuthConfig, PollConfig, Settings
from gitpoll.models.tree import TreeAction, TreeChange

__all__ = [
    "Author",
    "ChangeType",
    "CommitDiff",
    "CommitInfo",
    "FileChange",
    "AuthConfig",
    "PollConfig",
    "Settings",
    "TreeAction",
    "TreeChange",
]
