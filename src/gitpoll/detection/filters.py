"""Reusable file change filters."""

from pathlib import PurePosixPath
from typing import List

from pydantic import BaseModel, Field

from gitpoll.models.commit import FileChange


class PathFilter(BaseModel):
    """Filter file changes by extension and excluded path fragments.

    Instances are callable and can be passed as ``PollConfig.file_filter``.
    """

    included_extensions: List[str] = Field(
        default_factory=list,
        description="File extensions to include. Empty includes everything",
    )
    excluded_paths: List[str] = Field(
        default_factory=lambda: [".git/"],
        description="Changes whose path contains any of these are dropped",
    )

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "included_extensions": [".py", ".md"],
                "excluded_paths": ["node_modules/", ".git/"],
            }
        }

    def __call__(self, change: FileChange) -> bool:
        return self.should_include(change.filepath)

    def should_include(self, file_path: str) -> bool:
        """Check if a file should be included.

        Args:
            file_path: File path

        Returns:
            True if file should be included
        """
        for excluded in self.excluded_paths:
            if excluded in file_path:
                return False

        if not self.included_extensions:
            return True

        return PurePosixPath(file_path).suffix in self.included_extensions
