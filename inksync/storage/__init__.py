"""Persistence encoding of strokes."""

from .archive import StoreStrokeArchive
from .codec import (
    EncodedStrokes,
    StrokeCodec,
    format_json_block,
    format_page_name,
    parse_json_block,
)

__all__ = [
    "StoreStrokeArchive",
    "EncodedStrokes",
    "StrokeCodec",
    "format_json_block",
    "format_page_name",
    "parse_json_block"
]
