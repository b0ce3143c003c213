"""
Stroke store for InkSync.

Holds the captured strokes of a page and their optional ownership reference
to the block each one was transcribed into.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from .models import BoundingBox, Stroke


class StrokeStore:
    """
    Ordered collection of strokes keyed by stroke id.

    Ownership is one-directional: a stroke may name its block, and the strokes
    of a block are found by filtering.
    """

    def __init__(self, strokes: Optional[Iterable[Stroke]] = None):
        self._strokes: Dict[str, Stroke] = {}
        if strokes:
            self.add_many(strokes)

    def __len__(self) -> int:
        return len(self._strokes)

    def __iter__(self) -> Iterator[Stroke]:
        return iter(self._strokes.values())

    def __contains__(self, stroke_id: object) -> bool:
        return stroke_id in self._strokes

    def add(self, stroke: Stroke) -> bool:
        """
        Add a stroke unless one with the same id is already held.

        Returns:
            True if the stroke was added
        """
        if stroke.id in self._strokes:
            return False
        self._strokes[stroke.id] = stroke
        return True

    def add_many(self, strokes: Iterable[Stroke]) -> int:
        """
        Add strokes, skipping ids already present.

        Offline batches downloaded from the pen often repeat strokes that were
        also captured in real time.

        Returns:
            Number of strokes actually added
        """
        added = sum(1 for stroke in strokes if self.add(stroke))
        logging.debug(f"Added {added} strokes ({len(self._strokes)} total)")
        return added

    def get(self, stroke_id: str) -> Optional[Stroke]:
        return self._strokes.get(stroke_id)

    def ids(self) -> List[str]:
        return list(self._strokes)

    def owned_by(self, block_id: str) -> List[Stroke]:
        """Strokes currently transcribed into ``block_id``."""
        return [stroke for stroke in self._strokes.values() if stroke.block_id == block_id]

    def assign(self, stroke_ids: Iterable[str], block_id: Optional[str]) -> int:
        """Set the owning block of the given strokes; unknown ids are ignored."""
        count = 0
        for stroke_id in stroke_ids:
            stroke = self._strokes.get(stroke_id)
            if stroke is not None:
                stroke.block_id = block_id
                count += 1
        return count

    def reassign(self, from_block_id: str, to_block_id: str) -> int:
        """Move every stroke owned by ``from_block_id`` to ``to_block_id``."""
        moved = self.owned_by(from_block_id)
        for stroke in moved:
            stroke.block_id = to_block_id
        return len(moved)

    def release(self, block_id: str) -> int:
        """Clear ownership of every stroke owned by ``block_id``."""
        released = self.owned_by(block_id)
        for stroke in released:
            stroke.block_id = None
        return len(released)

    def bounds(self) -> BoundingBox:
        return BoundingBox.from_strokes(self._strokes.values())
