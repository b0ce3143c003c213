"""
Stroke to line matching for InkSync.

Recognizers report lines with a vertical range but not always the strokes
behind them. This module estimates which strokes produced which line by
vertical overlap. It is a heuristic: descenders and ascenders of neighbouring
lines can overlap, so callers must tolerate the occasional misassignment.
"""

import logging
from typing import Dict, List, Optional, Sequence, Set

from .config import config
from .models import RecognizedLine, Stroke, YBounds


_DOT_OVERLAP = 1e-6


def line_bounds(line: RecognizedLine, strokes: Sequence[Stroke]) -> Optional[YBounds]:
    """
    Vertical range of a recognized line.

    Uses the recognizer's bounds when present, otherwise the extent of the
    strokes the recognizer attributed to the line.
    """
    if line.y_bounds is not None:
        return line.y_bounds
    if not line.stroke_ids:
        return None
    ys = [point.y for stroke in strokes if stroke.id in line.stroke_ids for point in stroke.points]
    return YBounds.from_points(ys)


class StrokeLineMatcher:
    """
    Assigns each stroke to the line it overlaps the most.
    """

    def __init__(self, tolerance: Optional[float] = None):
        """
        Initialize the matcher.

        Args:
            tolerance: Units added above and below each line's bounds
                (defaults to config value)
        """
        self.tolerance = config.match_tolerance if tolerance is None else tolerance

    def _overlaps(self, stroke: Stroke, bounds: Sequence[Optional[YBounds]]) -> List[float]:
        extent = stroke.y_extent()
        if extent is None:
            return [0.0] * len(bounds)
        result = []
        for line_range in bounds:
            if line_range is None:
                result.append(0.0)
                continue
            expanded = line_range.expanded(self.tolerance)
            amount = extent.overlap_amount(expanded)
            if amount == 0 and extent.min_y == extent.max_y and expanded.overlaps(extent):
                # A single dot has no height but still sits inside the line
                amount = _DOT_OVERLAP
            result.append(max(0.0, amount))
        return result

    def match(
        self,
        strokes: Sequence[Stroke],
        lines: Sequence[RecognizedLine],
        bounds: Optional[Sequence[Optional[YBounds]]] = None,
    ) -> Dict[str, int]:
        """
        Map stroke ids to the index of the line they belong to.

        Args:
            strokes: Strokes to assign
            lines: Recognized lines of the pass
            bounds: Precomputed bounds per line; computed with
                :func:`line_bounds` when omitted

        Returns:
            Mapping of stroke id to line index; strokes with no positive
            overlap against any line are left out
        """
        if bounds is None:
            bounds = [line_bounds(line, strokes) for line in lines]

        assignment: Dict[str, int] = {}
        ambiguous = 0
        for stroke in strokes:
            overlaps = self._overlaps(stroke, bounds)
            best_index = None
            best_overlap = 0.0
            for index, amount in enumerate(overlaps):
                # Strictly greater: on a tie the first line seen keeps the stroke
                if amount > best_overlap:
                    best_index = index
                    best_overlap = amount
            if best_index is not None:
                assignment[stroke.id] = best_index
            if sum(1 for amount in overlaps if amount > 0) > 1:
                ambiguous += 1

        if ambiguous:
            logging.debug(f"{ambiguous} strokes overlap more than one line; assigned by largest overlap")
        logging.debug(f"Matched {len(assignment)} of {len(strokes)} strokes to {len(lines)} lines")
        return assignment

    def ambiguous_strokes(
        self,
        strokes: Sequence[Stroke],
        lines: Sequence[RecognizedLine],
        bounds: Optional[Sequence[Optional[YBounds]]] = None,
    ) -> Set[str]:
        """Ids of strokes that overlap more than one line."""
        if bounds is None:
            bounds = [line_bounds(line, strokes) for line in lines]
        return {
            stroke.id
            for stroke in strokes
            if sum(1 for amount in self._overlaps(stroke, bounds) if amount > 0) > 1
        }

    @staticmethod
    def strokes_by_line(assignment: Dict[str, int], line_count: int) -> List[Set[str]]:
        """Invert a stroke assignment into one stroke id set per line."""
        grouped: List[Set[str]] = [set() for _ in range(line_count)]
        for stroke_id, index in assignment.items():
            grouped[index].add(stroke_id)
        return grouped
