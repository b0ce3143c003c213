"""
Exception types for InkSync.

Ambiguous stroke matches and blocks at risk of being orphaned are handled
inside the engine and only logged; the errors below are the ones that reach
the caller.
"""

from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .sync.builder import BuildReport


class InkSyncError(Exception):
    """Base class for all InkSync errors."""


class FormatMismatchError(InkSyncError):
    """
    Raised when persisted stroke records are neither a valid chunked layout
    nor a valid legacy single-block layout.
    """


class BlockStoreError(InkSyncError):
    """Raised by block store implementations when a read or write fails."""


class RecognitionError(InkSyncError):
    """Raised when the handwriting recognizer fails; the pass stops there."""


class PartialBuildError(InkSyncError):
    """
    Raised when a block store write fails part way through a build.

    Levels listed in ``completed_levels`` were fully applied and are not
    reverted. ``failed_level`` is the indent level whose batch was aborted,
    or ``None`` when the failure happened while deleting blocks.
    """

    def __init__(
        self,
        message: str,
        completed_levels: List[int],
        failed_level: Optional[int],
        report: "BuildReport",
    ):
        super().__init__(message)
        self.completed_levels = completed_levels
        self.failed_level = failed_level
        self.report = report
