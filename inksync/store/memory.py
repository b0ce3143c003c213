"""
In-memory block store for InkSync.

Holds pages and blocks in dictionaries. Used for testing the pipeline without
a running note application, and strict about tree consistency: creating a
block under a parent that does not exist fails.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from ..errors import BlockStoreError
from .base import BaseBlockStore


class InMemoryBlockStore(BaseBlockStore):
    """
    Dictionary-backed block store that records every call it receives.
    """

    def __init__(self, fail_writes_after: Optional[int] = None):
        """
        Initialize an empty store.

        Args:
            fail_writes_after: Number of successful writes after which every
                further write raises ``BlockStoreError`` (None never fails)
        """
        self.pages: Dict[str, List[str]] = {}
        self.blocks: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[Any, ...]] = []
        self.fail_writes_after = fail_writes_after
        self._writes = 0

    def _write(self, *call: Any) -> None:
        if self.fail_writes_after is not None and self._writes >= self.fail_writes_after:
            raise BlockStoreError(f"Simulated write failure on {call[0]}")
        self._writes += 1
        self.calls.append(call)

    def _block(self, block_id: str) -> Dict[str, Any]:
        block = self.blocks.get(block_id)
        if block is None:
            raise BlockStoreError(f"Block not found: {block_id}")
        return block

    def ensure_page(self, page_id: str) -> None:
        if page_id not in self.pages:
            self.pages[page_id] = []
            logging.debug(f"Created page {page_id}")

    def create_block(self, parent_id: str, content: str, properties: Optional[Dict[str, str]] = None) -> str:
        if parent_id in self.blocks:
            page_id = self.blocks[parent_id]["pageId"]
            siblings = self.blocks[parent_id]["children"]
            parent_ref = parent_id
        elif parent_id in self.pages:
            page_id = parent_id
            siblings = self.pages[parent_id]
            parent_ref = None
        else:
            raise BlockStoreError(f"Cannot create block under missing parent: {parent_id}")

        self._write("create", parent_id, content, dict(properties or {}))
        block_id = str(uuid.uuid4())
        self.blocks[block_id] = {
            "id": block_id,
            "parentId": parent_ref,
            "pageId": page_id,
            "content": content,
            "properties": dict(properties or {}),
            "children": [],
        }
        siblings.append(block_id)
        return block_id

    def update_block_content(self, block_id: str, content: str) -> None:
        block = self._block(block_id)
        self._write("update_content", block_id, content)
        block["content"] = content

    def update_block_property(self, block_id: str, key: str, value: str) -> None:
        block = self._block(block_id)
        self._write("update_property", block_id, key, value)
        block["properties"][key] = value

    def delete_block(self, block_id: str) -> None:
        block = self._block(block_id)
        self._write("delete", block_id)
        if block["parentId"] is None:
            self.pages[block["pageId"]].remove(block_id)
        else:
            self.blocks[block["parentId"]]["children"].remove(block_id)
        self._drop(block_id)

    def _drop(self, block_id: str) -> None:
        for child_id in self.blocks[block_id]["children"]:
            self._drop(child_id)
        del self.blocks[block_id]

    def get_block_tree(self, page_id: str) -> List[Dict[str, Any]]:
        records: List[Dict[str, Any]] = []

        def walk(block_id: str) -> None:
            block = self.blocks[block_id]
            records.append({
                "id": block["id"],
                "parentId": block["parentId"],
                "content": block["content"],
                "properties": dict(block["properties"]),
            })
            for child_id in block["children"]:
                walk(child_id)

        for root_id in self.pages.get(page_id, []):
            walk(root_id)
        return records

    def children_of(self, block_id: str) -> List[str]:
        """Ids of the direct children of a block, in order."""
        return list(self._block(block_id)["children"])
