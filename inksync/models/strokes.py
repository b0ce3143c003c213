"""
Ink models for InkSync.

A stroke is one pen-down-to-pen-up path. Strokes only point at the block
they were transcribed into; the reverse lookup (block -> strokes) is always
computed by filtering, never stored.
"""

from typing import Iterable, List, Optional
from pydantic import BaseModel, Field


def generate_stroke_id(start_time: int) -> str:
    """
    Build the stable stroke identifier from its pen-down timestamp.

    Example: 1765313505107 -> "s1765313505107"
    """
    return f"s{start_time}"


def _format_number(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


class Point(BaseModel):
    """A single timestamped dot of a stroke."""

    x: float = Field(..., description="Horizontal page coordinate")
    y: float = Field(..., description="Vertical page coordinate")
    timestamp: int = Field(0, description="Capture time in milliseconds")


class PageInfo(BaseModel):
    """Addressing of the physical notebook page a stroke was written on."""

    section: int = Field(0, description="Ncode section")
    owner: int = Field(0, description="Ncode owner")
    book: int = Field(0, description="Notebook identifier")
    page: int = Field(0, description="Page number inside the notebook")

    @property
    def page_key(self) -> str:
        return f"S{self.section}/O{self.owner}/B{self.book}/P{self.page}"


class YBounds(BaseModel):
    """Vertical extent of a piece of ink, a recognized line or a block."""

    min_y: float = Field(..., description="Top of the ink")
    max_y: float = Field(..., description="Bottom of the ink")

    def expanded(self, tolerance: float) -> "YBounds":
        return YBounds(min_y=self.min_y - tolerance, max_y=self.max_y + tolerance)

    def overlap_amount(self, other: "YBounds") -> float:
        """Length of the shared vertical range; zero or negative when disjoint."""
        return min(self.max_y, other.max_y) - max(self.min_y, other.min_y)

    def overlaps(self, other: "YBounds") -> bool:
        """Inclusive overlap test, touching ranges count as overlapping."""
        return not (self.max_y < other.min_y or other.max_y < self.min_y)

    def union(self, other: "YBounds") -> "YBounds":
        return YBounds(min_y=min(self.min_y, other.min_y), max_y=max(self.max_y, other.max_y))

    def to_property(self) -> str:
        """Serialize as the ``stroke-y-bounds`` property value, e.g. ``"120.5-148"``."""
        return f"{_format_number(self.min_y)}-{_format_number(self.max_y)}"

    @classmethod
    def from_points(cls, ys: Iterable[float]) -> Optional["YBounds"]:
        ys = list(ys)
        if not ys:
            return None
        return cls(min_y=min(ys), max_y=max(ys))


class BoundingBox(BaseModel):
    """Spatial extent of a set of strokes."""

    min_x: float = 0.0
    max_x: float = 0.0
    min_y: float = 0.0
    max_y: float = 0.0

    @classmethod
    def from_strokes(cls, strokes: Iterable["Stroke"]) -> "BoundingBox":
        points = [point for stroke in strokes for point in stroke.points]
        if not points:
            return cls()
        return cls(
            min_x=min(p.x for p in points),
            max_x=max(p.x for p in points),
            min_y=min(p.y for p in points),
            max_y=max(p.y for p in points),
        )


class Stroke(BaseModel):
    """
    One continuous pen-down-to-pen-up ink path.
    """

    id: str = Field(
        ...,
        description="Unique identifier derived from the start timestamp"
    )

    start_time: int = Field(
        ...,
        description="Pen-down timestamp in milliseconds"
    )

    end_time: int = Field(
        0,
        description="Pen-up timestamp in milliseconds"
    )

    points: List[Point] = Field(
        default_factory=list,
        description="Ordered sequence of timestamped points"
    )

    page_info: Optional[PageInfo] = Field(
        default=None,
        description="Notebook page the stroke was written on"
    )

    block_id: Optional[str] = Field(
        default=None,
        description="Block this stroke was transcribed into, None until transcribed"
    )

    @classmethod
    def from_points(
        cls,
        start_time: int,
        points: Iterable[tuple],
        page_info: Optional[PageInfo] = None,
        end_time: Optional[int] = None,
    ) -> "Stroke":
        """Convenience constructor from ``(x, y[, timestamp])`` tuples."""
        dots = []
        for raw in points:
            x, y = raw[0], raw[1]
            timestamp = raw[2] if len(raw) > 2 else start_time
            dots.append(Point(x=x, y=y, timestamp=timestamp))
        if end_time is None:
            end_time = dots[-1].timestamp if dots else start_time
        return cls(
            id=generate_stroke_id(start_time),
            start_time=start_time,
            end_time=end_time,
            points=dots,
            page_info=page_info,
        )

    def y_extent(self) -> Optional[YBounds]:
        """Vertical extent of the stroke, None for a stroke without points."""
        return YBounds.from_points(point.y for point in self.points)
