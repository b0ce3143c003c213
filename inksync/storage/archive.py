"""
Stroke archive kept inside the note store.

The encoded records of a page live as fenced JSON code blocks under a
"## Raw Stroke Data" section of the same page, metadata block first.
"""

import logging
from typing import List, Optional, Sequence

from ..config import config
from ..models import Stroke
from ..store import BaseBlockStore
from .codec import StrokeCodec, format_json_block


class StoreStrokeArchive:
    """
    Saves and loads a page's strokes through the block store.
    """

    def __init__(self, store: BaseBlockStore, codec: Optional[StrokeCodec] = None, section_header: Optional[str] = None):
        self.store = store
        self.codec = codec or StrokeCodec()
        self.section_header = section_header or config.stroke_section_header

    def _find_section(self, page_id: str) -> Optional[str]:
        for record in self.store.get_block_tree(page_id):
            if record["parentId"] is None and (record.get("content") or "").startswith(self.section_header):
                return record["id"]
        return None

    def _record_blocks(self, page_id: str, section_id: str) -> List[dict]:
        return [record for record in self.store.get_block_tree(page_id) if record["parentId"] == section_id]

    def save_strokes(self, page_id: str, strokes: Sequence[Stroke]) -> int:
        """
        Replace the archived records of a page.

        Returns:
            Number of record blocks written
        """
        self.store.ensure_page(page_id)
        section_id = self._find_section(page_id)
        if section_id is None:
            section_id = self.store.create_block(page_id, self.section_header, {"collapsed": "true"})
        else:
            for record in self._record_blocks(page_id, section_id):
                self.store.delete_block(record["id"])

        records = self.codec.encode(list(strokes)).to_records()
        # Metadata first: readers detect the layout from the first child
        for record in records:
            self.store.create_block(section_id, format_json_block(record), {})

        logging.info(f"Archived {len(strokes)} strokes as {len(records)} blocks on page {page_id}")
        return len(records)

    def load_strokes(self, page_id: str) -> List[Stroke]:
        """
        Decode the archived strokes of a page.

        Returns:
            Decoded strokes, empty if the page has no archive

        Raises:
            FormatMismatchError: If the archived blocks hold neither layout
        """
        section_id = self._find_section(page_id)
        if section_id is None:
            return []
        contents = [record["content"] for record in self._record_blocks(page_id, section_id)]
        if not contents:
            return []
        return self.codec.decode_json_blocks(contents)
