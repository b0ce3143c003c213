"""
Logseq block store for InkSync.

This module talks to a running Logseq instance through its HTTP API server
(Settings > Features > HTTP APIs server). Every call is a POST of
``{"method": ..., "args": [...]}`` to ``{host}/api``.
"""

import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from ..config import config
from ..errors import BlockStoreError
from .base import BaseBlockStore


_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


class LogseqBlockStore(BaseBlockStore):
    """
    Block store backed by the Logseq HTTP API.
    """

    def __init__(self, host: Optional[str] = None, token: Optional[str] = None, timeout: Optional[float] = None):
        """
        Initialize the Logseq client.

        Args:
            host: The Logseq API server URL (defaults to config value)
            token: Authorization token configured in Logseq (defaults to config value)
            timeout: Request timeout in seconds (defaults to config value)
        """
        self.host = (host or config.logseq_host).rstrip('/')
        self.token = config.logseq_token if token is None else token
        self.client = httpx.Client(timeout=timeout or config.logseq_timeout)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.client.close()

    def request(self, method: str, args: Optional[List[Any]] = None) -> Any:
        """
        Call one Logseq API method.

        Args:
            method: API method, e.g. ``"logseq.Editor.insertBlock"``
            args: Positional arguments of the method

        Returns:
            The decoded JSON result

        Raises:
            BlockStoreError: If Logseq cannot be reached or rejects the call
        """
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = self.client.post(
                f"{self.host}/api",
                json={"method": method, "args": args or []},
                headers=headers
            )
            response.raise_for_status()
            return response.json()

        except httpx.RequestError as e:
            raise BlockStoreError(f"Cannot connect to Logseq at {self.host}. Is the HTTP API enabled? {e}") from e
        except httpx.HTTPStatusError as e:
            raise BlockStoreError(f"Logseq request {method} failed: {e}") from e
        except ValueError as e:
            raise BlockStoreError(f"Logseq returned invalid JSON for {method}: {e}") from e

    def ensure_page(self, page_id: str) -> None:
        page = self.request("logseq.Editor.getPage", [page_id])
        if not page:
            logging.info(f"Creating Logseq page: {page_id}")
            self.request("logseq.Editor.createPage", [
                page_id,
                {},
                {"redirect": False, "createFirstBlock": False}
            ])

    def create_block(self, parent_id: str, content: str, properties: Optional[Dict[str, str]] = None) -> str:
        if _UUID_RE.match(parent_id):
            result = self.request("logseq.Editor.insertBlock", [
                parent_id,
                content,
                {"sibling": False, "properties": properties or {}}
            ])
        else:
            result = self.request("logseq.Editor.appendBlockInPage", [
                parent_id,
                content,
                {"properties": properties or {}}
            ])

        if not result or "uuid" not in result:
            raise BlockStoreError(f"Logseq did not return a block when creating under {parent_id}")
        return str(result["uuid"])

    def update_block_content(self, block_id: str, content: str) -> None:
        self.request("logseq.Editor.updateBlock", [block_id, content])

    def update_block_property(self, block_id: str, key: str, value: str) -> None:
        self.request("logseq.Editor.upsertBlockProperty", [block_id, key, value])

    def delete_block(self, block_id: str) -> None:
        self.request("logseq.Editor.removeBlock", [block_id])

    def get_block_tree(self, page_id: str) -> List[Dict[str, Any]]:
        tree = self.request("logseq.Editor.getPageBlocksTree", [page_id]) or []
        records: List[Dict[str, Any]] = []

        def walk(node: Dict[str, Any], parent_id: Optional[str]) -> None:
            records.append({
                "id": str(node["uuid"]),
                "parentId": parent_id,
                "content": node.get("content") or "",
                "properties": node.get("properties") or {},
            })
            for child in node.get("children") or []:
                # Collapsed children can come back as ["uuid", "..."] references
                if isinstance(child, dict) and "uuid" in child:
                    walk(child, str(node["uuid"]))

        for node in tree:
            walk(node, None)

        logging.debug(f"Loaded {len(records)} blocks from Logseq page {page_id}")
        return records
