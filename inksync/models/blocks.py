"""
Transcript models for InkSync.

This module defines the recognized lines produced by a transcription pass and
the persisted blocks they are reconciled against. Block properties are kept as
a typed struct internally and only turned into the store's string-keyed bag at
the store boundary.
"""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Set
from pydantic import BaseModel, Field

from .strokes import YBounds


# Property keys as they appear in the block store
PROP_Y_BOUNDS = "stroke-y-bounds"
PROP_CANONICAL = "canonical-transcript"
PROP_STROKE_IDS = "stroke-ids"
PROP_MERGED_LINES = "merged-lines"

_BOUNDS_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*-\s*(-?\d+(?:\.\d+)?)\s*$")


def parse_y_bounds(value: Any) -> Optional[YBounds]:
    """
    Parse a ``stroke-y-bounds`` property value such as ``"120.5-148"``.

    Returns None for missing or unparseable values.
    """
    if value is None:
        return None
    match = _BOUNDS_RE.match(str(value))
    if not match:
        logging.debug(f"Ignoring unparseable y-bounds property: {value!r}")
        return None
    return YBounds(min_y=float(match.group(1)), max_y=float(match.group(2)))


def parse_stroke_ids(value: Any) -> Set[str]:
    """Parse the comma-joined ``stroke-ids`` property into a set."""
    if value is None:
        return set()
    if isinstance(value, (list, tuple, set)):
        return {str(item).strip() for item in value if str(item).strip()}
    return {part.strip() for part in str(value).split(",") if part.strip()}


class RecognizedLine(BaseModel):
    """
    One line of recognized text for a transcription pass.
    """

    text: str = Field(
        ...,
        description="Line text, possibly edited by the user"
    )

    indent_level: int = Field(
        0,
        ge=0,
        description="Depth of the line in the intended hierarchy"
    )

    y_bounds: Optional[YBounds] = Field(
        default=None,
        description="Vertical range of the ink that produced the line"
    )

    canonical: Optional[str] = Field(
        default=None,
        description="Original recognizer text, used for change detection"
    )

    source_line_ids: Optional[List[str]] = Field(
        default=None,
        description="Block ids of the lines this line was merged from in an editor"
    )

    block_id: Optional[str] = Field(
        default=None,
        description="Block the line is known to belong to, if any"
    )

    stroke_ids: Set[str] = Field(
        default_factory=set,
        description="Stroke ids reported by the recognizer for this line, if any"
    )

    @property
    def canonical_text(self) -> str:
        return self.canonical if self.canonical is not None else self.text


class BlockProperties(BaseModel):
    """
    Typed view of the transcript properties stored on a block.
    """

    y_bounds: Optional[YBounds] = None
    canonical_transcript: Optional[str] = None
    stroke_ids: Set[str] = Field(default_factory=set)
    merged_lines: int = 1

    @classmethod
    def from_store(cls, properties: Optional[Mapping[str, Any]]) -> "BlockProperties":
        """
        Build from the store's property bag.

        Logseq hands property keys back in camelCase, so both spellings are
        accepted.
        """
        props = dict(properties or {})

        def lookup(key: str) -> Any:
            if key in props:
                return props[key]
            parts = key.split("-")
            camel = parts[0] + "".join(part.title() for part in parts[1:])
            return props.get(camel)

        merged = lookup(PROP_MERGED_LINES)
        try:
            merged_lines = max(1, int(merged)) if merged not in (None, "") else 1
        except (TypeError, ValueError):
            merged_lines = 1

        canonical = lookup(PROP_CANONICAL)
        return cls(
            y_bounds=parse_y_bounds(lookup(PROP_Y_BOUNDS)),
            canonical_transcript=str(canonical) if canonical is not None else None,
            stroke_ids=parse_stroke_ids(lookup(PROP_STROKE_IDS)),
            merged_lines=merged_lines,
        )

    def to_store(self) -> Dict[str, str]:
        """Serialize to string-valued store properties."""
        props: Dict[str, str] = {}
        if self.y_bounds is not None:
            props[PROP_Y_BOUNDS] = self.y_bounds.to_property()
        if self.canonical_transcript is not None:
            props[PROP_CANONICAL] = self.canonical_transcript
        props[PROP_STROKE_IDS] = ",".join(sorted(self.stroke_ids))
        if self.merged_lines > 1:
            props[PROP_MERGED_LINES] = str(self.merged_lines)
        return props


class Block(BaseModel):
    """
    A node of the persisted transcript tree.
    """

    id: str = Field(
        ...,
        description="Opaque unique identifier assigned by the block store"
    )

    parent_id: Optional[str] = Field(
        default=None,
        description="Parent block id, None for a top-level block under the section root"
    )

    content: str = Field(
        "",
        description="Text content of the block"
    )

    properties: BlockProperties = Field(
        default_factory=BlockProperties,
        description="Transcript properties of the block"
    )

    @classmethod
    def from_store(cls, record: Mapping[str, Any], section_root_id: Optional[str] = None) -> "Block":
        """Build from a ``get_block_tree`` record."""
        parent_id = record.get("parentId")
        if parent_id is not None and parent_id == section_root_id:
            parent_id = None
        return cls(
            id=str(record["id"]),
            parent_id=parent_id,
            content=record.get("content") or "",
            properties=BlockProperties.from_store(record.get("properties")),
        )
