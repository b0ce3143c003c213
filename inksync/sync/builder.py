"""
Hierarchical block building for InkSync.

Turns reconciler actions into store writes. The store cannot create a block
under a parent that does not exist yet, and recognized lines may interleave
indent depths, so CREATE and UPDATE actions are applied one indent level at a
time, shallowest first. Each child's parent is the nearest preceding line of
a lower level, which by then always has a block.
"""

import logging
import re
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..errors import BlockStoreError, PartialBuildError
from ..models import ActionType, BlockAction, BlockProperties, YBounds
from ..store import BaseBlockStore
from .context import SyncContext


_TASK_MARKER_RE = re.compile(r"^(TODO|DOING|DONE|LATER|NOW|WAITING|CANCELED)\s+")


def preserve_task_marker(previous_content: Optional[str], new_text: str) -> str:
    """
    Keep a Logseq task marker the user added to a block across re-transcription.

    Example: ("DONE buy milk", "buy oat milk") -> "DONE buy oat milk"
    """
    marker = _TASK_MARKER_RE.match(previous_content or "")
    if marker and not _TASK_MARKER_RE.match(new_text):
        return f"{marker.group(1)} {new_text}"
    return new_text


class BuildReport(BaseModel):
    """
    What a build did, filled in as it goes so a failed build still reports
    how far it got.
    """

    line_blocks: Dict[int, str] = Field(default_factory=dict)
    created: List[str] = Field(default_factory=list)
    updated: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    preserved: List[str] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)
    completed_levels: List[int] = Field(default_factory=list)

    @property
    def stats(self) -> Dict[str, int]:
        return {
            "created": len(self.created),
            "updated": len(self.updated),
            "skipped": len(self.skipped),
            "preserved": len(self.preserved),
            "deleted": len(self.deleted),
        }


class HierarchicalBlockBuilder:
    """
    Applies reconciler actions to a block store in dependency order.
    """

    def __init__(self, store: BaseBlockStore):
        """
        Initialize the builder.

        Args:
            store: Block store that receives the writes
        """
        self.store = store

    def build(self, actions: List[BlockAction], context: SyncContext) -> BuildReport:
        """
        Apply the actions of one pass.

        Writes are issued strictly one after another. Deletions run after every
        level has been created or updated.

        Args:
            actions: Output of the reconciler
            context: The pass context the actions were computed from; its
                ``line_blocks`` is filled in

        Returns:
            Report of the writes performed

        Raises:
            PartialBuildError: If a store write fails; levels already applied stay applied
        """
        report = BuildReport()
        levels: Dict[int, List[BlockAction]] = {}
        deletions: List[BlockAction] = []

        for action in actions:
            if action.action_type == ActionType.SKIP:
                for index in action.line_indices:
                    context.line_blocks[index] = action.block_id
                report.skipped.append(action.block_id)
            elif action.action_type == ActionType.PRESERVE:
                report.preserved.append(action.block_id)
            elif action.action_type == ActionType.DELETE:
                deletions.append(action)
            else:
                level = context.lines[action.line_index].indent_level
                levels.setdefault(level, []).append(action)

        if levels and context.section_root_id is None:
            raise ValueError("A section root block is required to build transcript blocks")

        for level in sorted(levels):
            batch = sorted(levels[level], key=lambda a: a.line_index)
            logging.debug(f"Building level {level}: {len(batch)} actions")
            try:
                for action in batch:
                    if action.action_type == ActionType.CREATE:
                        self._create(action, context, report)
                    else:
                        self._update(action, context, report)
            except BlockStoreError as e:
                self._finish(context, report)
                logging.error(f"Store write failed at indent level {level}: {e}")
                raise PartialBuildError(
                    f"Build aborted at indent level {level}: {e}",
                    completed_levels=list(report.completed_levels),
                    failed_level=level,
                    report=report,
                ) from e
            report.completed_levels.append(level)

        # Reconciler order is parents first; delete children before their parents
        for action in reversed(deletions):
            try:
                self.store.delete_block(action.block_id)
            except BlockStoreError as e:
                self._finish(context, report)
                logging.error(f"Failed to delete block {action.block_id}: {e}")
                raise PartialBuildError(
                    f"Build aborted while deleting {action.block_id}: {e}",
                    completed_levels=list(report.completed_levels),
                    failed_level=None,
                    report=report,
                ) from e
            report.deleted.append(action.block_id)

        self._finish(context, report)
        logging.info(f"Build finished: {report.stats}")
        return report

    def resolve_parent(self, action: BlockAction, context: SyncContext) -> str:
        """
        Parent block for a CREATE action.

        Scans back from the action's line for the nearest line of a lower
        indent level that already has a block. Falls back to the section root.
        """
        if action.inherit_parent:
            return action.parent_id or context.section_root_id

        level = context.lines[action.line_index].indent_level
        for index in range(action.line_index - 1, -1, -1):
            if context.lines[index].indent_level < level and index in context.line_blocks:
                return context.line_blocks[index]
        return context.section_root_id

    def _payload(self, action: BlockAction, context: SyncContext):
        indices = action.line_indices
        lines = [context.lines[index] for index in indices]

        bounds: Optional[YBounds] = None
        for index in indices:
            if context.bounds[index] is not None:
                bounds = context.bounds[index] if bounds is None else bounds.union(context.bounds[index])

        stroke_ids = set()
        for index in indices:
            stroke_ids |= context.line_stroke_ids[index]

        properties = BlockProperties(
            y_bounds=bounds,
            canonical_transcript=" ".join(line.canonical_text for line in lines),
            stroke_ids=stroke_ids,
            merged_lines=len(indices),
        )
        return " ".join(line.text for line in lines), properties

    def _create(self, action: BlockAction, context: SyncContext, report: BuildReport) -> None:
        content, properties = self._payload(action, context)
        parent_id = self.resolve_parent(action, context)
        block_id = self.store.create_block(parent_id, content, properties.to_store())
        for index in action.line_indices:
            context.line_blocks[index] = block_id
        report.created.append(block_id)
        logging.debug(f"Created block {block_id} under {parent_id}: {content!r}")

    def _update(self, action: BlockAction, context: SyncContext, report: BuildReport) -> None:
        text, properties = self._payload(action, context)
        content = preserve_task_marker(action.previous_content, text)
        self.store.update_block_content(action.block_id, content)
        for key, value in properties.to_store().items():
            self.store.update_block_property(action.block_id, key, value)
        for index in action.line_indices:
            context.line_blocks[index] = action.block_id
        report.updated.append(action.block_id)
        logging.debug(f"Updated block {action.block_id}: {content!r}")

    def _finish(self, context: SyncContext, report: BuildReport) -> None:
        """Record line blocks on the report and point matched strokes at their blocks."""
        report.line_blocks = dict(context.line_blocks)
        deleted = set(report.deleted)
        for stroke in context.strokes:
            index = context.stroke_assignment.get(stroke.id)
            if index is not None and index in context.line_blocks:
                stroke.block_id = context.line_blocks[index]
            elif stroke.block_id in deleted:
                stroke.block_id = None
