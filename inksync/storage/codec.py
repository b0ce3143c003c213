"""
Stroke storage codec for InkSync.

Converts strokes to and from the records kept under a page's
"Raw Stroke Data" section. A single block in the store has a hard size
ceiling, so strokes are split into fixed-capacity chunks preceded by one
metadata record. Pages written before chunking existed hold one legacy record
with the strokes inline; both layouts are decoded.
"""

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import config
from ..errors import FormatMismatchError
from ..models import BoundingBox, PageInfo, Point, Stroke, generate_stroke_id


FORMAT_VERSION = "2.0"

_JSON_BLOCK_RE = re.compile(r"```(?:json)?\n([\s\S]*?)\n```")


class _StoredStroke(BaseModel):
    """Wire shape of one stroke inside a chunk or legacy record."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    start_time: int = Field(..., alias="startTime")
    end_time: Optional[int] = Field(default=None, alias="endTime")
    points: List[List[float]]
    block_id: Optional[str] = Field(default=None, alias="blockId")
    # Older records named the ownership field after the Logseq uuid
    block_uuid: Optional[str] = Field(default=None, alias="blockUuid")


class EncodedStrokes(BaseModel):
    """Output of :meth:`StrokeCodec.encode`."""

    metadata: Dict[str, Any]
    chunks: List[Dict[str, Any]] = Field(default_factory=list)

    def to_records(self) -> List[Dict[str, Any]]:
        """All records in write order, metadata first."""
        return [self.metadata, *self.chunks]


class StrokeCodec:
    """
    Encodes the strokes of one page into size-bounded chunk records.
    """

    def __init__(self, chunk_size: Optional[int] = None):
        """
        Initialize the codec.

        Args:
            chunk_size: Strokes per chunk record (defaults to config value)
        """
        self.chunk_size = chunk_size or config.chunk_size
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")

    def encode(self, strokes: Sequence[Stroke]) -> EncodedStrokes:
        """
        Encode the strokes of a single page.

        Args:
            strokes: Strokes of one page, in capture order

        Returns:
            Metadata record plus ``ceil(len(strokes) / chunk_size)`` chunk records

        Raises:
            ValueError: If the strokes belong to more than one page
        """
        page_info = self._common_page_info(strokes)
        bounds = BoundingBox.from_strokes(strokes)

        chunks = []
        for chunk_index, start in enumerate(range(0, len(strokes), self.chunk_size)):
            group = strokes[start:start + self.chunk_size]
            chunks.append({
                "chunkIndex": chunk_index,
                "strokeCount": len(group),
                "strokes": [self._encode_stroke(stroke) for stroke in group],
            })

        metadata = {
            "version": FORMAT_VERSION,
            "pageInfo": page_info.model_dump() if page_info else None,
            "metadata": {
                "totalStrokeCount": len(strokes),
                "boundingBox": {
                    "minX": bounds.min_x,
                    "maxX": bounds.max_x,
                    "minY": bounds.min_y,
                    "maxY": bounds.max_y,
                },
                "chunks": len(chunks),
            },
        }

        logging.debug(f"Encoded {len(strokes)} strokes into {len(chunks)} chunks")
        return EncodedStrokes(metadata=metadata, chunks=chunks)

    def decode(self, records: Union[EncodedStrokes, Mapping[str, Any], Sequence[Mapping[str, Any]]]) -> List[Stroke]:
        """
        Decode chunked or legacy records back into strokes.

        Args:
            records: ``EncodedStrokes``, a list of records with the metadata
                record first, or a single legacy record

        Returns:
            Decoded strokes with their block ownership restored

        Raises:
            FormatMismatchError: If the input is neither layout
        """
        if isinstance(records, EncodedStrokes):
            records = records.to_records()
        elif isinstance(records, Mapping):
            records = [records]
        else:
            records = list(records)

        if not records:
            raise FormatMismatchError("No stroke records to decode")

        head = records[0]
        if not isinstance(head, Mapping):
            raise FormatMismatchError(f"Expected a record object, got {type(head).__name__}")

        head_metadata = head.get("metadata")
        if isinstance(head_metadata, Mapping) and "chunks" in head_metadata:
            return self._decode_chunked(head, records[1:])
        if "strokes" in head:
            return self._decode_legacy(head)

        raise FormatMismatchError(
            "Records are neither chunked (no 'metadata.chunks') nor legacy (no 'strokes')"
        )

    def decode_json_blocks(self, contents: Iterable[str]) -> List[Stroke]:
        """Decode records stored as fenced JSON code blocks."""
        records = []
        for content in contents:
            record = parse_json_block(content)
            if record is None:
                raise FormatMismatchError("Block does not contain a JSON code block")
            records.append(record)
        return self.decode(records)

    def _decode_chunked(self, head: Mapping[str, Any], chunk_records: Sequence[Any]) -> List[Stroke]:
        metadata = head["metadata"]
        try:
            chunk_count = int(metadata["chunks"])
        except (TypeError, ValueError):
            raise FormatMismatchError(f"Invalid chunk count: {metadata.get('chunks')!r}")

        if len(chunk_records) != chunk_count:
            raise FormatMismatchError(
                f"Metadata announces {chunk_count} chunks but {len(chunk_records)} were found"
            )

        by_index: Dict[int, Mapping[str, Any]] = {}
        for record in chunk_records:
            if not isinstance(record, Mapping) or not isinstance(record.get("strokes"), list):
                raise FormatMismatchError("Chunk record is missing its 'strokes' list")
            index = record.get("chunkIndex")
            if not isinstance(index, int) or index in by_index:
                raise FormatMismatchError(f"Invalid or duplicate chunkIndex: {index!r}")
            declared = record.get("strokeCount")
            if declared is not None and declared != len(record["strokes"]):
                raise FormatMismatchError(
                    f"Chunk {index} declares {declared} strokes but holds {len(record['strokes'])}"
                )
            by_index[index] = record

        if sorted(by_index) != list(range(chunk_count)):
            raise FormatMismatchError(f"Chunk indices {sorted(by_index)} are not contiguous")

        page_info = self._decode_page_info(head.get("pageInfo"))
        strokes = []
        for index in range(chunk_count):
            strokes.extend(self._decode_stroke(raw, page_info) for raw in by_index[index]["strokes"])

        total = metadata.get("totalStrokeCount")
        if total is not None and total != len(strokes):
            raise FormatMismatchError(f"Expected {total} strokes, decoded {len(strokes)}")

        logging.debug(f"Decoded {len(strokes)} strokes from {chunk_count} chunks")
        return strokes

    def _decode_legacy(self, record: Mapping[str, Any]) -> List[Stroke]:
        raw_strokes = record["strokes"]
        if not isinstance(raw_strokes, list):
            raise FormatMismatchError("Legacy record 'strokes' is not a list")
        page_info = self._decode_page_info(record.get("pageInfo"))
        strokes = [self._decode_stroke(raw, page_info) for raw in raw_strokes]
        logging.info(f"Decoded {len(strokes)} strokes from legacy single-block format")
        return strokes

    @staticmethod
    def _common_page_info(strokes: Sequence[Stroke]) -> Optional[PageInfo]:
        page_infos = {stroke.page_info.page_key if stroke.page_info else None: stroke.page_info for stroke in strokes}
        if len(page_infos) > 1:
            raise ValueError(f"Cannot encode strokes from several pages: {sorted(map(str, page_infos))}")
        return next(iter(page_infos.values()), None)

    @staticmethod
    def _encode_stroke(stroke: Stroke) -> Dict[str, Any]:
        return {
            "id": stroke.id,
            "startTime": stroke.start_time,
            "endTime": stroke.end_time,
            "points": [[point.x, point.y, point.timestamp] for point in stroke.points],
            "blockId": stroke.block_id,
        }

    @staticmethod
    def _decode_page_info(raw: Any) -> Optional[PageInfo]:
        if raw is None:
            return None
        try:
            return PageInfo.model_validate(raw)
        except ValidationError as e:
            raise FormatMismatchError(f"Invalid pageInfo: {e}") from e

    @staticmethod
    def _decode_stroke(raw: Any, page_info: Optional[PageInfo]) -> Stroke:
        try:
            stored = _StoredStroke.model_validate(raw)
        except ValidationError as e:
            raise FormatMismatchError(f"Invalid stroke record: {e}") from e

        points = []
        for point in stored.points:
            if len(point) < 2:
                raise FormatMismatchError(f"Point {point!r} of stroke {stored.id} has no y coordinate")
            timestamp = int(point[2]) if len(point) > 2 else stored.start_time
            points.append(Point(x=point[0], y=point[1], timestamp=timestamp))

        return Stroke(
            id=stored.id or generate_stroke_id(stored.start_time),
            start_time=stored.start_time,
            end_time=stored.end_time if stored.end_time is not None else stored.start_time,
            points=points,
            page_info=page_info.model_copy() if page_info else None,
            block_id=stored.block_id or stored.block_uuid,
        )


def format_json_block(data: Any) -> str:
    """Wrap a record in a fenced JSON code block for storage in a block."""
    return "```json\n" + json.dumps(data, indent=2, ensure_ascii=False) + "\n```"


def parse_json_block(content: str) -> Optional[Any]:
    """
    Extract the record from a fenced code block.

    Returns None when the content holds no code block or invalid JSON.
    """
    match = _JSON_BLOCK_RE.search(content or "")
    if not match:
        return None
    try:
        return json.loads(match.group(1))
    except json.JSONDecodeError as e:
        logging.error(f"Failed to parse JSON block: {e}")
        return None


def format_page_name(book: int, page: int) -> str:
    """Store page name for a notebook page, e.g. ``"Smartpen Data/B3017/P42"``."""
    return f"Smartpen Data/B{book}/P{page}"
