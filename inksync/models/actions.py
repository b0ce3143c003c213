"""
Reconciliation actions for InkSync.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class ActionType(str, Enum):
    """What a reconciliation pass decided for a block or line."""

    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"
    PRESERVE = "preserve"
    DELETE = "delete"


class BlockAction(BaseModel):
    """
    One decision of the block reconciler.

    CREATE carries only a line index; UPDATE and SKIP carry both a block id and
    a line index; PRESERVE and DELETE carry only a block id.
    """

    action_type: ActionType = Field(..., description="Kind of action")

    block_id: Optional[str] = Field(
        default=None,
        description="Existing block the action applies to"
    )

    line_index: Optional[int] = Field(
        default=None,
        description="Index of the line in the pass's page sequence"
    )

    extra_line_indices: List[int] = Field(
        default_factory=list,
        description="Further lines folded into the same block (merged blocks)"
    )

    inherit_parent: bool = Field(
        default=False,
        description="CREATE only: use parent_id as given instead of resolving it by indent"
    )

    parent_id: Optional[str] = Field(
        default=None,
        description="Parent for an inherited CREATE, None meaning the section root"
    )

    previous_content: Optional[str] = Field(
        default=None,
        description="UPDATE only: block content before the update"
    )

    reason: str = Field(
        default="",
        description="Short human-readable explanation, used in logs"
    )

    @property
    def line_indices(self) -> List[int]:
        """All lines covered by the action, primary line first."""
        if self.line_index is None:
            return []
        return [self.line_index, *self.extra_line_indices]

    @property
    def writes(self) -> bool:
        """True when executing the action touches the store."""
        return self.action_type in (ActionType.CREATE, ActionType.UPDATE, ActionType.DELETE)
