"""
Merge tracking for InkSync.

When a user joins several transcript lines into one in an editor, the blocks
of the absorbed lines disappear and their ink must follow the surviving
block. Otherwise the next reconciliation pass would see those strokes as
belonging to nothing. Reassignments have to be persisted before that pass.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel, Field

from ..models import Block, RecognizedLine, Stroke, YBounds
from ..models.blocks import PROP_CANONICAL, PROP_MERGED_LINES, PROP_STROKE_IDS, PROP_Y_BOUNDS
from ..store import BaseBlockStore
from ..strokes import StrokeStore
from .builder import preserve_task_marker


class MergeGroup(BaseModel):
    """One surviving block and the blocks merged into it."""

    surviving_block_id: str = Field(..., description="Block that keeps the merged content")
    absorbed_block_ids: List[str] = Field(..., description="Blocks folded into the survivor")
    line: Optional[RecognizedLine] = Field(default=None, description="The edited line that produced the merge")

    @property
    def block_ids(self) -> List[str]:
        return [self.surviving_block_id] + self.absorbed_block_ids


def merged_canonical(blocks: Sequence[Block]) -> Optional[str]:
    """
    Canonical transcript of merged blocks: their stored transcripts in page
    order, joined by a single space.

    Blocks are ordered by the top of their ink, then by the order given.
    Returns None when no block is given.
    """
    if not blocks:
        return None
    ordered = sorted(
        enumerate(blocks),
        key=lambda item: (
            (0, item[1].properties.y_bounds.min_y, item[0])
            if item[1].properties.y_bounds is not None
            else (1, 0.0, item[0])
        ),
    )
    parts = []
    for _, block in ordered:
        canonical = block.properties.canonical_transcript
        parts.append(canonical if canonical is not None else block.content)
    return " ".join(parts)


class MergeTracker:
    """
    Detects merged lines and moves stroke ownership to the surviving block.
    """

    def __init__(self, store: BaseBlockStore):
        self.store = store

    def detect_merges(self, edited_lines: Iterable[RecognizedLine]) -> List[MergeGroup]:
        """
        Find edited lines that fuse previously separate blocks.

        The survivor is the line's own block when it has one, otherwise the
        first source id. Lines referencing fewer than two distinct blocks are
        not merges.
        """
        groups = []
        for line in edited_lines:
            sources = list(dict.fromkeys(line.source_line_ids or []))
            survivor = line.block_id or (sources[0] if sources else None)
            absorbed = [block_id for block_id in sources if block_id != survivor]
            if survivor is None or not absorbed:
                continue
            groups.append(MergeGroup(surviving_block_id=survivor, absorbed_block_ids=absorbed, line=line))

        logging.info(f"Detected {len(groups)} merged lines")
        return groups

    def apply_reassignment(
        self,
        surviving_block_id: str,
        absorbed_block_ids: List[str],
        strokes: Union[StrokeStore, Iterable[Stroke]],
        line: Optional[RecognizedLine] = None,
        blocks: Optional[Sequence[Block]] = None,
    ) -> int:
        """
        Hand the strokes of absorbed blocks to the survivor and delete the absorbed blocks.

        Args:
            surviving_block_id: Block that keeps the content
            absorbed_block_ids: Blocks merged into the survivor
            strokes: Strokes of the page; ownership is changed in place
            line: The merged line, used to refresh the survivor's text and transcript
            blocks: Blocks of the page as loaded before the merge. Their stored
                transcripts become the survivor's canonical transcript unless
                the line carries an explicit one

        Returns:
            Number of strokes whose owner changed
        """
        stroke_store = strokes if isinstance(strokes, StrokeStore) else StrokeStore(strokes)
        moved = sum(stroke_store.reassign(block_id, surviving_block_id) for block_id in absorbed_block_ids)

        owned = sorted(stroke.id for stroke in stroke_store.owned_by(surviving_block_id))
        self.store.update_block_property(surviving_block_id, PROP_STROKE_IDS, ",".join(owned))

        if line is not None:
            self._refresh_survivor(surviving_block_id, absorbed_block_ids, line, blocks or [])

        for block_id in absorbed_block_ids:
            self.store.delete_block(block_id)

        logging.info(
            f"Merged {len(absorbed_block_ids)} blocks into {surviving_block_id}, "
            f"{moved} strokes reassigned"
        )
        return moved

    def _refresh_survivor(
        self,
        surviving_block_id: str,
        absorbed_block_ids: List[str],
        line: RecognizedLine,
        blocks: Sequence[Block],
    ) -> None:
        by_id = {block.id: block for block in blocks}
        survivor = by_id.get(surviving_block_id)
        group = [by_id[block_id] for block_id in [surviving_block_id] + absorbed_block_ids if block_id in by_id]

        canonical = line.canonical
        if canonical is None:
            canonical = merged_canonical(group) if len(group) == len(absorbed_block_ids) + 1 else None
        if canonical is None:
            logging.debug(f"Merged blocks of {surviving_block_id} not all known; using the edited text")
            canonical = line.text

        y_bounds: Optional[YBounds] = line.y_bounds
        if y_bounds is None:
            for bounds in (block.properties.y_bounds for block in group):
                if bounds is not None:
                    y_bounds = bounds if y_bounds is None else y_bounds.union(bounds)

        content = preserve_task_marker(survivor.content if survivor is not None else None, line.text)
        self.store.update_block_content(surviving_block_id, content)
        self.store.update_block_property(surviving_block_id, PROP_CANONICAL, canonical)
        self.store.update_block_property(surviving_block_id, PROP_MERGED_LINES, str(len(absorbed_block_ids) + 1))
        if y_bounds is not None:
            self.store.update_block_property(surviving_block_id, PROP_Y_BOUNDS, y_bounds.to_property())
