"""Schemaless JSON document store persisted in SQLite."""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any

import aiosqlite

from chromabase.exceptions import NotFoundError

logger = logging.getLogger(__name__)

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS documents (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    collection TEXT NOT NULL,
    doc_id TEXT NOT NULL,
    data TEXT NOT NULL,
    UNIQUE(collection, doc_id)
);
CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection, seq);
"""


def new_document_id() -> str:
    return uuid.uuid4().hex[:20]


class SQLiteDocumentStore:
    """Collections of JSON documents keyed by ``(collection, doc_id)``."""

    def __init__(self, db_path: Path):
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def start(self) -> None:
        """Open the database and create tables."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(str(self._db_path))
        await self._db.executescript(_SCHEMA)
        await self._db.commit()

        async with self._db.execute("SELECT COUNT(*) FROM documents") as cur:
            row = await cur.fetchone()
        logger.info("SQLiteDocumentStore started (%s, %d documents)", self._db_path, row[0])

    async def stop(self) -> None:
        """Close DB connection."""
        if self._db:
            await self._db.close()
            self._db = None

    def _conn(self) -> aiosqlite.Connection:
        if not self._db:
            raise RuntimeError("SQLiteDocumentStore not started")
        return self._db

    async def ping(self) -> bool:
        if not self._db:
            return False
        try:
            async with self._db.execute("SELECT 1") as cur:
                return (await cur.fetchone()) is not None
        except aiosqlite.Error:
            logger.warning("Document store ping failed", exc_info=True)
            return False

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        """Insert a new document and return its generated id."""
        db = self._conn()
        doc_id = new_document_id()
        await db.execute(
            "INSERT INTO documents (collection, doc_id, data) VALUES (?, ?, ?)",
            (collection, doc_id, json.dumps(data)),
        )
        await db.commit()
        logger.debug("Added %s/%s", collection, doc_id)
        return doc_id

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        db = self._conn()
        async with db.execute(
            "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
            (collection, doc_id),
        ) as cur:
            row = await cur.fetchone()
        if row is None:
            return None
        return {"id": doc_id, **json.loads(row[0])}

    async def list(self, collection: str) -> list[dict[str, Any]]:
        db = self._conn()
        async with db.execute(
            "SELECT doc_id, data FROM documents WHERE collection = ? ORDER BY seq",
            (collection,),
        ) as cur:
            rows = await cur.fetchall()
        return [{"id": doc_id, **json.loads(data)} for doc_id, data in rows]

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Merge ``fields`` into an existing document in a single statement."""
        db = self._conn()
        cur = await db.execute(
            "UPDATE documents SET data = json_patch(data, ?) WHERE collection = ? AND doc_id = ?",
            (json.dumps(fields), collection, doc_id),
        )
        rowcount = cur.rowcount
        await cur.close()
        await db.commit()
        if rowcount == 0:
            raise NotFoundError()

    async def delete(self, collection: str, doc_id: str) -> bool:
        """Remove a document. Returns False if it did not exist."""
        db = self._conn()
        cur = await db.execute(
            "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
            (collection, doc_id),
        )
        rowcount = cur.rowcount
        await cur.close()
        await db.commit()
        return rowcount > 0
