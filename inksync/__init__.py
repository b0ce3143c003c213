"""
InkSync: keeps smartpen handwriting and its transcript blocks in step.

Converts recognized handwriting lines into nested blocks of a note store and
keeps that mapping stable across repeated, incremental transcriptions.
"""

__version__ = "0.1.0"
__author__ = "InkSync Project"

# Import main components
from .models import Stroke, RecognizedLine, Block, BlockAction, ActionType
from .strokes import StrokeStore
from .storage import StoreStrokeArchive, StrokeCodec
from .matching import StrokeLineMatcher
from .sync import (
    SyncContext,
    BlockReconciler,
    HierarchicalBlockBuilder,
    MergeTracker,
    TranscriptSyncEngine,
)
from .store import BaseBlockStore, InMemoryBlockStore, LogseqBlockStore
from .database import StrokeRepository
from .search import search_blocks, tokenize

__all__ = [
    "Stroke",
    "RecognizedLine",
    "Block",
    "BlockAction",
    "ActionType",
    "StrokeStore",
    "StrokeCodec",
    "StoreStrokeArchive",
    "StrokeLineMatcher",
    "SyncContext",
    "BlockReconciler",
    "HierarchicalBlockBuilder",
    "MergeTracker",
    "TranscriptSyncEngine",
    "BaseBlockStore",
    "InMemoryBlockStore",
    "LogseqBlockStore",
    "StrokeRepository",
    "search_blocks",
    "tokenize",
]
