"""
Block reconciliation for InkSync.

Diffs the recognized lines of a pass against the transcript blocks already in
the store and decides, per block and per line, whether to create, update,
skip, preserve or delete. A block is only deleted when the ink it was
transcribed from is provably gone; a block that merely has no line in this
pass is preserved, because a pass may cover only part of a page.
"""

import logging
from collections import Counter
from typing import Dict, List, Sequence, Set

from ..models import ActionType, Block, BlockAction
from .context import SyncContext


class BlockReconciler:
    """
    Decides what to do with every existing block and every recognized line.
    """

    def reconcile(self, existing_blocks: Sequence[Block], context: SyncContext) -> List[BlockAction]:
        """
        Compute the actions of one pass.

        Args:
            existing_blocks: Transcript blocks currently in the store, in tree order
            context: Prepared pass context

        Returns:
            Actions for existing blocks in the given order, followed by CREATE
            actions for the lines no block claimed, in page order
        """
        actions: List[BlockAction] = []
        consumed: Set[int] = set()

        for block in existing_blocks:
            ink = block.properties.stroke_ids | context.owned_stroke_ids(block.id)
            overlapping = self._overlapping_lines(block, ink, context, consumed)

            if not overlapping:
                actions.append(self._unmatched(block, ink, context))
                continue

            consumed.update(overlapping)

            if block.properties.merged_lines > 1:
                actions.append(self._merged(block, overlapping, context))
            elif len(overlapping) == 1:
                actions.append(self._single(block, overlapping[0], context))
            else:
                actions.extend(self._split(block, overlapping))

        self._protect_surviving_children(existing_blocks, actions)

        for index in range(len(context.lines)):
            if index not in consumed:
                actions.append(BlockAction(
                    action_type=ActionType.CREATE,
                    line_index=index,
                    reason="new line",
                ))

        counts = Counter(action.action_type.value for action in actions)
        logging.info(f"Reconciled {len(existing_blocks)} blocks against {len(context.lines)} lines: {dict(counts)}")
        return actions

    def _overlapping_lines(
        self,
        block: Block,
        ink: Set[str],
        context: SyncContext,
        consumed: Set[int],
    ) -> List[int]:
        """
        Indices of unclaimed lines that belong to ``block``.

        Stroke id overlap is authoritative; vertical bounds are only used for
        legacy blocks that never recorded their strokes.
        """
        candidates = [index for index in range(len(context.lines)) if index not in consumed]

        if ink:
            return [index for index in candidates if context.line_stroke_ids[index] & ink]

        block_bounds = block.properties.y_bounds
        if block_bounds is None:
            return []
        return [
            index for index in candidates
            if context.bounds[index] is not None and block_bounds.overlaps(context.bounds[index])
        ]

    def _unmatched(self, block: Block, ink: Set[str], context: SyncContext) -> BlockAction:
        if not ink:
            logging.info(f"Preserving block {block.id}: no line matched and it records no strokes")
            return BlockAction(action_type=ActionType.PRESERVE, block_id=block.id, reason="no ink reference")

        surviving = ink & context.current_stroke_ids
        if surviving:
            logging.info(
                f"Preserving block {block.id}: no line matched but {len(surviving)} of its strokes still exist"
            )
            return BlockAction(action_type=ActionType.PRESERVE, block_id=block.id, reason="ink still present")

        logging.info(f"Deleting block {block.id}: none of its {len(ink)} strokes exist anymore")
        return BlockAction(action_type=ActionType.DELETE, block_id=block.id, reason="ink removed")

    def _protect_surviving_children(self, existing_blocks: Sequence[Block], actions: List[BlockAction]) -> None:
        """
        Turn DELETE into PRESERVE for blocks that still have a surviving descendant.

        Deleting a block removes its whole subtree, so a block whose own ink
        is gone stays as long as any child below it is kept.
        """
        deletions = {
            action.block_id: position
            for position, action in enumerate(actions)
            if action.action_type == ActionType.DELETE
        }
        if not deletions:
            return

        children: Dict[str, List[str]] = {}
        for block in existing_blocks:
            if block.parent_id is not None:
                children.setdefault(block.parent_id, []).append(block.id)

        # Children follow their parents in tree order, so walk it backwards
        for block in reversed(existing_blocks):
            position = deletions.get(block.id)
            if position is None:
                continue
            kept = [child for child in children.get(block.id, []) if child not in deletions]
            if kept:
                logging.warning(
                    f"Preserving block {block.id}: its ink is gone but {len(kept)} child blocks remain"
                )
                actions[position] = BlockAction(
                    action_type=ActionType.PRESERVE,
                    block_id=block.id,
                    reason="children still present",
                )
                del deletions[block.id]

    def _single(self, block: Block, index: int, context: SyncContext) -> BlockAction:
        line = context.lines[index]
        if line.canonical_text == block.properties.canonical_transcript:
            return BlockAction(
                action_type=ActionType.SKIP,
                block_id=block.id,
                line_index=index,
                reason="canonical unchanged",
            )
        return BlockAction(
            action_type=ActionType.UPDATE,
            block_id=block.id,
            line_index=index,
            reason="canonical changed",
            previous_content=block.content,
        )

    def _merged(self, block: Block, overlapping: List[int], context: SyncContext) -> BlockAction:
        """A block a user merged from several lines keeps absorbing all of them."""
        combined = " ".join(context.lines[index].canonical_text for index in overlapping)
        expected = block.properties.merged_lines
        if abs(expected - len(overlapping)) > 1:
            logging.warning(
                f"Merged block {block.id} expected {expected} lines, found {len(overlapping)}"
            )

        unchanged = combined == block.properties.canonical_transcript
        return BlockAction(
            action_type=ActionType.SKIP if unchanged else ActionType.UPDATE,
            block_id=block.id,
            line_index=overlapping[0],
            extra_line_indices=overlapping[1:],
            reason="merged canonical unchanged" if unchanged else "merged canonical changed",
            previous_content=None if unchanged else block.content,
        )

    def _split(self, block: Block, overlapping: List[int]) -> List[BlockAction]:
        """The first line keeps the block, the others become its new siblings."""
        logging.info(f"Block {block.id} now spans {len(overlapping)} lines; splitting")
        actions = [BlockAction(
            action_type=ActionType.UPDATE,
            block_id=block.id,
            line_index=overlapping[0],
            reason="split: first line",
            previous_content=block.content,
        )]
        for index in overlapping[1:]:
            actions.append(BlockAction(
                action_type=ActionType.CREATE,
                line_index=index,
                inherit_parent=True,
                parent_id=block.parent_id,
                reason=f"split from {block.id}",
            ))
        return actions
