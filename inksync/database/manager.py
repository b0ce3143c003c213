"""
Stroke repository for InkSync.

This module persists the encoded stroke records of each page in DuckDB, so
stroke ownership survives a process restart.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

import duckdb

from ..models import Stroke
from ..storage import StrokeCodec


class StrokeRepository:
    """
    Manages the DuckDB database holding chunked stroke records per page.
    """

    def __init__(self, db_path: str = "inksync.db"):
        """
        Initialize the repository.

        Args:
            db_path: Path to the DuckDB database file (":memory:" for a transient one)
        """
        self.db_path = db_path
        self.connection = None

    def connect(self):
        """Establish connection to the database."""
        self.connection = duckdb.connect(self.db_path)

    def disconnect(self):
        """Close the database connection."""
        if self.connection:
            self.connection.close()
            self.connection = None

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        self.initialize_database()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()

    def _require_connection(self):
        if not self.connection:
            raise RuntimeError("Database connection not established")
        return self.connection

    def initialize_database(self):
        """
        Create all necessary tables if they don't exist.
        """
        connection = self._require_connection()

        # One metadata record per page, written first
        connection.execute("""
            CREATE TABLE IF NOT EXISTS stroke_pages (
                page_id VARCHAR PRIMARY KEY,
                metadata TEXT NOT NULL,
                stroke_count INTEGER NOT NULL,
                chunk_count INTEGER NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        connection.execute("""
            CREATE TABLE IF NOT EXISTS stroke_chunks (
                page_id VARCHAR NOT NULL,
                chunk_index INTEGER NOT NULL,
                payload TEXT NOT NULL,
                PRIMARY KEY (page_id, chunk_index)
            )
        """)

    def save_records(self, page_id: str, records: Sequence[Mapping[str, Any]]) -> None:
        """
        Replace the stored records of a page.

        Args:
            page_id: Page the records belong to
            records: Metadata record first, then chunk records
        """
        connection = self._require_connection()
        if not records:
            raise ValueError("At least the metadata record is required")

        head, chunks = records[0], records[1:]
        metadata = head.get("metadata") or {}
        stroke_count = metadata.get("totalStrokeCount", len(head.get("strokes") or []))

        connection.begin()
        try:
            # Upserts: DuckDB rejects deleting and re-inserting a key in one transaction
            connection.execute("""
                INSERT OR REPLACE INTO stroke_pages (page_id, metadata, stroke_count, chunk_count, updated_at)
                VALUES (?, ?, ?, ?, ?)
            """, [page_id, json.dumps(head), stroke_count, len(chunks), datetime.now()])
            for position, chunk in enumerate(chunks):
                connection.execute("""
                    INSERT OR REPLACE INTO stroke_chunks (page_id, chunk_index, payload)
                    VALUES (?, ?, ?)
                """, [page_id, chunk.get("chunkIndex", position), json.dumps(chunk)])
            connection.execute(
                "DELETE FROM stroke_chunks WHERE page_id = ? AND chunk_index >= ?",
                [page_id, len(chunks)]
            )
            connection.commit()
        except duckdb.Error:
            connection.rollback()
            raise

        logging.info(f"Saved {stroke_count} strokes in {len(chunks)} chunks for page {page_id}")

    def load_records(self, page_id: str) -> Optional[List[Dict[str, Any]]]:
        """
        Load the stored records of a page.

        Returns:
            Metadata record followed by chunk records in chunk order, or None
            if the page has never been saved
        """
        connection = self._require_connection()

        head = connection.execute("""
            SELECT metadata FROM stroke_pages WHERE page_id = ?
        """, [page_id]).fetchone()
        if not head:
            return None

        rows = connection.execute("""
            SELECT payload FROM stroke_chunks
            WHERE page_id = ?
            ORDER BY chunk_index
        """, [page_id]).fetchall()

        return [json.loads(head[0])] + [json.loads(row[0]) for row in rows]

    def save_strokes(self, page_id: str, strokes: Sequence[Stroke], codec: Optional[StrokeCodec] = None) -> None:
        """Encode and store the strokes of a page."""
        codec = codec or StrokeCodec()
        self.save_records(page_id, codec.encode(list(strokes)).to_records())

    def load_strokes(self, page_id: str, codec: Optional[StrokeCodec] = None) -> List[Stroke]:
        """
        Load and decode the strokes of a page.

        Returns:
            Decoded strokes, empty if the page has never been saved
        """
        records = self.load_records(page_id)
        if records is None:
            return []
        codec = codec or StrokeCodec()
        return codec.decode(records)

    def list_pages(self) -> List[str]:
        """List the ids of all stored pages."""
        connection = self._require_connection()
        rows = connection.execute("SELECT page_id FROM stroke_pages ORDER BY page_id").fetchall()
        return [row[0] for row in rows]

    def delete_page(self, page_id: str) -> bool:
        """
        Remove a page's records.

        Returns:
            True if the page existed
        """
        connection = self._require_connection()
        existed = connection.execute(
            "SELECT 1 FROM stroke_pages WHERE page_id = ?", [page_id]
        ).fetchone() is not None
        connection.execute("DELETE FROM stroke_chunks WHERE page_id = ?", [page_id])
        connection.execute("DELETE FROM stroke_pages WHERE page_id = ?", [page_id])
        return existed
