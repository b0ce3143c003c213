"""Transcript synchronization: reconcile recognized lines with stored blocks."""

from .context import SyncContext
from .reconciler import BlockReconciler
from .builder import BuildReport, HierarchicalBlockBuilder, preserve_task_marker
from .merges import MergeGroup, MergeTracker
from .engine import SyncResult, TranscriptSyncEngine

__all__ = [
    "SyncContext",
    "BlockReconciler",
    "BuildReport",
    "HierarchicalBlockBuilder",
    "preserve_task_marker",
    "MergeGroup",
    "MergeTracker",
    "SyncResult",
    "TranscriptSyncEngine"
]
