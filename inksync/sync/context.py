"""
Per-pass state for a transcript synchronization run.

One SyncContext is built per reconciliation pass and handed from the matcher
to the reconciler and on to the builder, so no pass state lives at module
level.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

from ..matching import StrokeLineMatcher, line_bounds
from ..models import RecognizedLine, Stroke, YBounds
from ..strokes import StrokeStore


class SyncContext:
    """
    Everything one pass knows about its lines and strokes.

    Line indices used throughout a pass refer to ``lines``, which is the
    recognized lines in page order (top of their ink first).
    """

    def __init__(
        self,
        lines: List[RecognizedLine],
        bounds: List[Optional[YBounds]],
        strokes: Union[StrokeStore, Sequence[Stroke]],
        stroke_assignment: Dict[str, int],
        section_root_id: Optional[str] = None,
    ):
        self.lines = lines
        self.bounds = bounds
        self.stroke_store = strokes if isinstance(strokes, StrokeStore) else StrokeStore(strokes)
        self.strokes = list(self.stroke_store)
        self.stroke_assignment = stroke_assignment
        self.section_root_id = section_root_id
        self.current_stroke_ids: Set[str] = set(self.stroke_store.ids())
        self.line_stroke_ids: List[Set[str]] = StrokeLineMatcher.strokes_by_line(stroke_assignment, len(lines))
        # Filled by the builder as blocks are resolved
        self.line_blocks: Dict[int, str] = {}

    @classmethod
    def prepare(
        cls,
        lines: Sequence[RecognizedLine],
        strokes: Union[StrokeStore, Sequence[Stroke]],
        matcher: Optional[StrokeLineMatcher] = None,
        section_root_id: Optional[str] = None,
        transcribed_stroke_ids: Optional[Iterable[str]] = None,
    ) -> "SyncContext":
        """
        Order the lines and estimate which strokes produced each of them.

        Args:
            lines: Recognized lines in any order
            strokes: Every stroke currently on the page
            matcher: Matcher to use (a default one when omitted)
            section_root_id: Block that top-level transcript blocks hang under
            transcribed_stroke_ids: Strokes that were sent to the recognizer;
                only these are matched to lines (all strokes when omitted)

        Returns:
            A context ready for reconciliation
        """
        matcher = matcher or StrokeLineMatcher()

        raw_bounds = [line_bounds(line, strokes) for line in lines]
        order = sorted(
            range(len(lines)),
            key=lambda i: (0, raw_bounds[i].min_y, i) if raw_bounds[i] is not None else (1, 0.0, i),
        )
        ordered_lines = [lines[i] for i in order]
        ordered_bounds = [raw_bounds[i] for i in order]

        candidates = list(strokes)
        if transcribed_stroke_ids is not None:
            wanted = set(transcribed_stroke_ids)
            candidates = [stroke for stroke in strokes if stroke.id in wanted]

        assignment = matcher.match(candidates, ordered_lines, ordered_bounds)

        # Strokes the recognizer attributed to a line explicitly override the estimate
        known_ids = {stroke.id for stroke in strokes}
        for index, line in enumerate(ordered_lines):
            for stroke_id in line.stroke_ids:
                if stroke_id in known_ids:
                    assignment[stroke_id] = index

        logging.info(
            f"Prepared pass: {len(ordered_lines)} lines, {len(strokes)} strokes, "
            f"{len(assignment)} matched"
        )
        return cls(ordered_lines, ordered_bounds, strokes, assignment, section_root_id)

    def owned_stroke_ids(self, block_id: str) -> Set[str]:
        """Ids of current strokes whose ownership reference is ``block_id``."""
        return {stroke.id for stroke in self.stroke_store.owned_by(block_id)}

    def line_index_of(self, line: RecognizedLine) -> int:
        """Page-order index of a line object passed to :meth:`prepare`."""
        for index, candidate in enumerate(self.lines):
            if candidate is line:
                return index
        raise ValueError(f"Line {line.text!r} is not part of this pass")

    def block_for(self, line: RecognizedLine) -> Optional[str]:
        """Block resolved for a line after the build, if any."""
        return self.line_blocks.get(self.line_index_of(line))
