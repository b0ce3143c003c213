"""
Transcript synchronization engine for InkSync.

Runs one reconciliation pass for a page: find the transcript section, load
the blocks already written there, match strokes to the recognized lines,
reconcile, build, and persist the resulting stroke ownership.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel

from ..config import config
from ..database import StrokeRepository
from ..errors import PartialBuildError, RecognitionError
from ..matching import StrokeLineMatcher
from ..models import Block, BlockAction, RecognizedLine, Stroke
from ..recognition import BaseRecognizer
from ..storage import StoreStrokeArchive, StrokeCodec
from ..store import BaseBlockStore
from ..strokes import StrokeStore
from .builder import BuildReport, HierarchicalBlockBuilder
from .context import SyncContext
from .merges import MergeGroup, MergeTracker
from .reconciler import BlockReconciler


class SyncResult(BaseModel):
    """Outcome of one pass over a page."""

    page_id: str
    section_root_id: str
    actions: List[BlockAction]
    report: BuildReport

    @property
    def stats(self) -> Dict[str, int]:
        return self.report.stats


class TranscriptSyncEngine:
    """
    Keeps a page's transcript blocks in step with its handwriting.
    """

    def __init__(
        self,
        store: BaseBlockStore,
        repository: Optional[StrokeRepository] = None,
        codec: Optional[StrokeCodec] = None,
        matcher: Optional[StrokeLineMatcher] = None,
        section_header: Optional[str] = None,
        archive: Optional[StoreStrokeArchive] = None,
    ):
        """
        Initialize the engine.

        Args:
            store: Block store holding the transcript tree
            repository: Where stroke ownership is persisted after each pass (optional)
            codec: Stroke codec used with the repository
            matcher: Stroke to line matcher
            section_header: Content of the section root block (defaults to config value)
            archive: Stroke archive inside the note store, written after each pass (optional)
        """
        self.store = store
        self.repository = repository
        self.archive = archive
        self.codec = codec or StrokeCodec()
        self.matcher = matcher or StrokeLineMatcher()
        self.section_header = section_header or config.transcript_section_header
        self.reconciler = BlockReconciler()
        self.builder = HierarchicalBlockBuilder(store)
        self.merge_tracker = MergeTracker(store)

    @property
    def _section_marker(self) -> str:
        # Tags appended to the header (e.g. "#Display_No_Properties") may be edited away
        return self.section_header.split(" #")[0].strip()

    def find_or_create_section(self, page_id: str) -> str:
        """
        Id of the page's transcript section root, created if missing.
        """
        self.store.ensure_page(page_id)
        for record in self.store.get_block_tree(page_id):
            if record["parentId"] is None and (record.get("content") or "").startswith(self._section_marker):
                return record["id"]

        logging.info(f"Creating transcript section on page {page_id}")
        return self.store.create_block(page_id, self.section_header, {})

    def load_transcript_blocks(self, page_id: str, section_root_id: str) -> List[Block]:
        """
        All blocks below the section root, parents before children.
        """
        inside = {section_root_id}
        blocks = []
        for record in self.store.get_block_tree(page_id):
            if record["parentId"] in inside:
                inside.add(record["id"])
                blocks.append(Block.from_store(record, section_root_id))
        return blocks

    def sync_page(
        self,
        page_id: str,
        strokes: Union[StrokeStore, Sequence[Stroke]],
        lines: Sequence[RecognizedLine],
        transcribed_stroke_ids: Optional[Iterable[str]] = None,
    ) -> SyncResult:
        """
        Run one reconciliation pass for a page.

        Args:
            page_id: Store page holding the transcript
            strokes: Every stroke currently on the page; ownership is updated in place
            lines: Recognized lines of this pass
            transcribed_stroke_ids: Strokes sent to the recognizer, when only
                part of the page was transcribed

        Returns:
            The actions taken and the build report

        Raises:
            PartialBuildError: If the store failed part way; ownership of what
                was built is still persisted
        """
        stroke_store = self._stroke_store(strokes)
        section_root_id = self.find_or_create_section(page_id)
        existing = self.load_transcript_blocks(page_id, section_root_id)
        logging.info(f"Found {len(existing)} existing transcript blocks on page {page_id}")

        context = SyncContext.prepare(
            lines,
            stroke_store,
            matcher=self.matcher,
            section_root_id=section_root_id,
            transcribed_stroke_ids=transcribed_stroke_ids,
        )
        actions = self.reconciler.reconcile(existing, context)

        try:
            report = self.builder.build(actions, context)
        except PartialBuildError:
            self._persist(page_id, stroke_store)
            raise

        self._persist(page_id, stroke_store)
        return SyncResult(page_id=page_id, section_root_id=section_root_id, actions=actions, report=report)

    def transcribe_and_sync(
        self,
        page_id: str,
        strokes: Sequence[Stroke],
        recognizer: BaseRecognizer,
    ) -> SyncResult:
        """
        Recognize the strokes and sync the result.

        A recognizer failure stops the pass before anything is written.
        """
        try:
            lines = recognizer.recognize(strokes)
        except RecognitionError:
            raise
        except Exception as e:
            raise RecognitionError(f"Recognition failed for page {page_id}: {e}") from e

        return self.sync_page(page_id, strokes, lines, transcribed_stroke_ids=[stroke.id for stroke in strokes])

    def apply_merges(
        self,
        page_id: str,
        edited_lines: Iterable[RecognizedLine],
        strokes: Union[StrokeStore, Sequence[Stroke]],
    ) -> List[MergeGroup]:
        """
        Apply line merges made in an editor and persist the new ownership.

        Must run before the next :meth:`sync_page` of the page.
        """
        stroke_store = self._stroke_store(strokes)
        groups = self.merge_tracker.detect_merges(edited_lines)
        if not groups:
            return groups

        # Stored transcripts are read before any absorbed block is deleted
        blocks = [Block.from_store(record) for record in self.store.get_block_tree(page_id)]
        for group in groups:
            members = set(group.block_ids)
            self.merge_tracker.apply_reassignment(
                group.surviving_block_id,
                group.absorbed_block_ids,
                stroke_store,
                line=group.line,
                blocks=[block for block in blocks if block.id in members],
            )
        self._persist(page_id, stroke_store)
        return groups

    @staticmethod
    def _stroke_store(strokes: Union[StrokeStore, Sequence[Stroke]]) -> StrokeStore:
        if isinstance(strokes, StrokeStore):
            return strokes
        strokes = list(strokes)
        stroke_store = StrokeStore(strokes)
        if len(stroke_store) < len(strokes):
            logging.warning(f"Ignoring {len(strokes) - len(stroke_store)} strokes with duplicate ids")
        return stroke_store

    def _persist(self, page_id: str, strokes: StrokeStore) -> None:
        if self.repository is not None:
            self.repository.save_strokes(page_id, list(strokes), self.codec)
        if self.archive is not None:
            self.archive.save_strokes(page_id, list(strokes))
