"""
Snapshot codec for the card table.

The durable form of the store is a complete SQLite database image holding a
single ``cards`` table, the same layout the Obsidian plugin kept in
``srs.db``. Encoding builds the image in memory with the standard library
``sqlite3`` module and returns ``Connection.serialize()``; decoding
deserialises it into a private in-memory connection.
"""

import logging
import sqlite3
from typing import Iterable, List, NamedTuple, Optional

from ...domain.errors import SnapshotCorrupted

logger = logging.getLogger(__name__)

SNAPSHOT_SCHEMA = """
CREATE TABLE IF NOT EXISTS cards (
    id TEXT PRIMARY KEY,
    note_path TEXT NOT NULL,
    question TEXT NOT NULL,
    due_date INTEGER,
    interval REAL,
    ease REAL
)
"""


class SnapshotRow(NamedTuple):
    """One card as stored in the snapshot."""

    id: str
    document_path: str
    question: str
    due_date: Optional[int]
    interval: Optional[float]
    ease: Optional[float]


def encode_snapshot(rows: Iterable[SnapshotRow]) -> bytes:
    """Serialise *rows* into a SQLite database image."""
    conn = sqlite3.connect(":memory:")
    try:
        conn.execute(SNAPSHOT_SCHEMA)
        conn.executemany(
            "INSERT INTO cards (id, note_path, question, due_date, interval, ease) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            [tuple(row) for row in rows],
        )
        conn.commit()
        return conn.serialize()
    finally:
        conn.close()


def decode_snapshot(data: bytes) -> List[SnapshotRow]:
    """Read every card out of a SQLite database image.

    An image without a ``cards`` table decodes to an empty list.

    Raises:
        SnapshotCorrupted: if *data* is not a readable SQLite database.
    """
    conn = sqlite3.connect(":memory:")
    try:
        conn.deserialize(data)
        table = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='cards'"
        ).fetchone()
        if table is None:
            logger.info("Snapshot has no 'cards' table, starting empty")
            return []

        cursor = conn.execute(
            "SELECT id, note_path, question, due_date, interval, ease "
            "FROM cards ORDER BY id"
        )
        return [SnapshotRow(*row) for row in cursor.fetchall()]
    except sqlite3.DatabaseError as e:
        raise SnapshotCorrupted(f"Snapshot is not a readable database: {e}") from e
    finally:
        conn.close()
