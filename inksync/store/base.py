"""
Base block store interface for InkSync.

This module defines the abstract interface every note store must implement so
the synchronization engine can read and write its block tree.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class BaseBlockStore(ABC):
    """
    Abstract base class for block stores.

    A store holds pages, each with a tree of blocks identified by opaque ids.
    Implementations raise ``BlockStoreError`` when a call fails.
    """

    @abstractmethod
    def ensure_page(self, page_id: str) -> None:
        """
        Make sure a page exists, creating it if needed.

        Args:
            page_id: Page name or identifier
        """
        pass

    @abstractmethod
    def create_block(self, parent_id: str, content: str, properties: Optional[Dict[str, str]] = None) -> str:
        """
        Create a block as the last child of ``parent_id``.

        Args:
            parent_id: Existing block id, or a page id for a page-level block
            content: Block text
            properties: String-valued block properties

        Returns:
            Id of the new block
        """
        pass

    @abstractmethod
    def update_block_content(self, block_id: str, content: str) -> None:
        """Replace the text of a block."""
        pass

    @abstractmethod
    def update_block_property(self, block_id: str, key: str, value: str) -> None:
        """Set one property of a block."""
        pass

    @abstractmethod
    def delete_block(self, block_id: str) -> None:
        """Delete a block together with its children."""
        pass

    @abstractmethod
    def get_block_tree(self, page_id: str) -> List[Dict[str, Any]]:
        """
        Retrieve every block of a page.

        Returns:
            Records with ``id``, ``parentId`` (None for page-level blocks),
            ``content`` and ``properties``, parents before children
        """
        pass
