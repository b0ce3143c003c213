"""Data models for InkSync."""

from .strokes import Point, PageInfo, Stroke, YBounds, BoundingBox, generate_stroke_id
from .blocks import Block, BlockProperties, RecognizedLine
from .actions import ActionType, BlockAction

__all__ = [
    "Point",
    "PageInfo",
    "Stroke",
    "YBounds",
    "BoundingBox",
    "generate_stroke_id",
    "Block",
    "BlockProperties",
    "RecognizedLine",
    "ActionType",
    "BlockAction"
]
