"""Raw tree diff entries reported by repository providers."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TreeAction(str, Enum):
    """Raw classification of a tree diff entry."""

    INSERT = "insert"
    DELETE = "delete"
    MODIFY = "modify"


class TreeChange(BaseModel):
    """One entry of a tree diff, before classification."""

    model_config = ConfigDict(frozen=True)

    action: TreeAction = Field(..., description="What happened to the entry")
    from_path: Optional[str] = Field(None, description="Path on the 'from' side, if any")
    to_path: Optional[str] = Field(None, description="Path on the 'to' side, if any")
