"""SQLite database holding documents, chunks and their embeddings."""

import sqlite3
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import numpy as np

from vault_mcp.indexer.models import Chunk, Document, SearchResult
from vault_mcp.indexer.walker import matches_prefix

SCHEMA_VERSION = "1.0"

SCHEMA_SQL = """
-- vaultMCP Index Schema v1.0
-- This index is disposable: it regenerates from VAULT_ROOT/

PRAGMA foreign_keys = ON;
PRAGMA journal_mode = WAL;

CREATE TABLE IF NOT EXISTS documents (
    id           TEXT PRIMARY KEY,
    path         TEXT NOT NULL UNIQUE,
    title        TEXT NOT NULL DEFAULT '',
    content_hash TEXT NOT NULL,
    public       INTEGER NOT NULL DEFAULT 0,
    mtime        REAL NOT NULL DEFAULT 0,
    updated_at   TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_documents_hash ON documents(content_hash);

CREATE TABLE IF NOT EXISTS chunks (
    id          TEXT PRIMARY KEY,
    document_id TEXT NOT NULL,
    chunk_order INTEGER NOT NULL,
    content     TEXT NOT NULL,
    token_count INTEGER NOT NULL,
    embedding   BLOB NOT NULL,
    FOREIGN KEY (document_id) REFERENCES documents(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_chunks_document_order ON chunks(document_id, chunk_order);

-- Metadata table for index versioning and embedding dimensions
CREATE TABLE IF NOT EXISTS meta (
    key   TEXT PRIMARY KEY,
    value TEXT
);

INSERT OR REPLACE INTO meta (key, value) VALUES ('schema_version', '1.0');
"""


def to_blob(embedding: Iterable[float]) -> bytes:
    return np.asarray(list(embedding), dtype=np.float32).tobytes()


def from_blob(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype=np.float32)


def cosine_similarity(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of one vector against each row; zero vectors score 0."""
    query_norm = np.linalg.norm(query)
    row_norms = np.linalg.norm(matrix, axis=1)
    denominators = row_norms * query_norm
    dots = matrix @ query
    return np.divide(
        dots,
        denominators,
        out=np.zeros_like(dots, dtype=np.float64),
        where=denominators > 0,
    )


class Database:
    """SQLite database for the vault index."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self._local = threading.local()
        self._write_lock = threading.Lock()
        self._connections: list[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "conn", None) is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            self._local.conn = conn
            with self._connections_lock:
                self._connections.append(conn)
        return self._local.conn

    @contextmanager
    def _read_cursor(self) -> Iterator[sqlite3.Cursor]:
        """Get a cursor for read operations."""
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    @contextmanager
    def _write_cursor(self) -> Iterator[sqlite3.Cursor]:
        """Get a cursor for one write transaction, with locking."""
        with self._write_lock:
            conn = self._get_connection()
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    def initialize(self) -> None:
        """Initialize the database schema."""
        with self._write_cursor() as cursor:
            cursor.executescript(SCHEMA_SQL)

    def close(self) -> None:
        """Close every connection opened by this instance."""
        with self._connections_lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()

    def clear(self) -> None:
        """Clear all data from the database (for reindexing)."""
        with self._write_cursor() as cursor:
            cursor.execute("DELETE FROM chunks")
            cursor.execute("DELETE FROM documents")
            cursor.execute("DELETE FROM meta WHERE key = 'embedding_dimensions'")

    def get_embedding_dimensions(self) -> int | None:
        """Get the embedding size fixed by the first stored chunk."""
        with self._read_cursor() as cursor:
            cursor.execute("SELECT value FROM meta WHERE key = 'embedding_dimensions'")
            row = cursor.fetchone()
            return int(row["value"]) if row else None

    # Document operations

    def get_document_by_path(self, path: str) -> Document | None:
        """Get a document by its relative path."""
        with self._read_cursor() as cursor:
            cursor.execute("SELECT * FROM documents WHERE path = ?", (path,))
            row = cursor.fetchone()
            if row:
                return self._row_to_document(row)
            return None

    def list_documents(self) -> list[Document]:
        """List all documents ordered by path."""
        with self._read_cursor() as cursor:
            cursor.execute("SELECT * FROM documents ORDER BY path")
            return [self._row_to_document(row) for row in cursor.fetchall()]

    def replace_document(self, doc: Document, chunks: list[Chunk]) -> None:
        """
        Upsert a document and replace its chunk set in one transaction.

        Readers never see a mix of old and new chunks for the document.
        """
        with self._write_cursor() as cursor:
            dimensions = self._check_dimensions(cursor, chunks)

            cursor.execute(
                """INSERT INTO documents
                (id, path, title, content_hash, public, mtime, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, datetime('now'))
                ON CONFLICT(path) DO UPDATE SET
                    title = excluded.title,
                    content_hash = excluded.content_hash,
                    public = excluded.public,
                    mtime = excluded.mtime,
                    updated_at = datetime('now')
                """,
                (
                    doc.id,
                    doc.path,
                    doc.title,
                    doc.content_hash,
                    1 if doc.public else 0,
                    doc.mtime,
                ),
            )
            cursor.execute("SELECT id FROM documents WHERE path = ?", (doc.path,))
            document_id = cursor.fetchone()["id"]

            cursor.execute("DELETE FROM chunks WHERE document_id = ?", (document_id,))
            cursor.executemany(
                """INSERT INTO chunks
                (id, document_id, chunk_order, content, token_count, embedding)
                VALUES (?, ?, ?, ?, ?, ?)""",
                [
                    (
                        f"{document_id}:{chunk.chunk_order}",
                        document_id,
                        chunk.chunk_order,
                        chunk.content,
                        chunk.token_count,
                        to_blob(chunk.embedding),
                    )
                    for chunk in chunks
                ],
            )

            if dimensions is not None:
                cursor.execute(
                    "INSERT OR IGNORE INTO meta (key, value) VALUES ('embedding_dimensions', ?)",
                    (str(dimensions),),
                )

    def _check_dimensions(self, cursor: sqlite3.Cursor, chunks: list[Chunk]) -> int | None:
        """Validate chunk embeddings against the stored dimensionality."""
        sizes = {len(chunk.embedding) for chunk in chunks}
        if not sizes:
            return None
        if len(sizes) > 1 or 0 in sizes:
            raise ValueError(f"Inconsistent embedding dimensions in document: {sorted(sizes)}")

        dimensions = sizes.pop()
        cursor.execute("SELECT value FROM meta WHERE key = 'embedding_dimensions'")
        row = cursor.fetchone()
        if row and int(row["value"]) != dimensions:
            raise ValueError(
                f"Embedding dimensions {dimensions} do not match index ({row['value']})"
            )
        return dimensions

    def set_public(self, path: str, public: bool) -> None:
        """Update the public flag of a document without touching its chunks."""
        with self._write_cursor() as cursor:
            cursor.execute(
                "UPDATE documents SET public = ?, updated_at = datetime('now') WHERE path = ?",
                (1 if public else 0, path),
            )

    def delete_document(self, path: str) -> bool:
        """Delete a document and its chunks by path."""
        with self._write_cursor() as cursor:
            cursor.execute("DELETE FROM documents WHERE path = ?", (path,))
            return cursor.rowcount > 0

    def _row_to_document(self, row: sqlite3.Row) -> Document:
        """Convert a database row to a Document."""
        return Document(
            id=row["id"],
            path=row["path"],
            title=row["title"],
            content_hash=row["content_hash"],
            public=bool(row["public"]),
            mtime=row["mtime"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    # Chunk operations

    def get_chunks(self, document_id: str) -> list[Chunk]:
        """Get all chunks for a document in order."""
        with self._read_cursor() as cursor:
            cursor.execute(
                """SELECT * FROM chunks
                WHERE document_id = ?
                ORDER BY chunk_order""",
                (document_id,),
            )
            return [self._row_to_chunk(row) for row in cursor.fetchall()]

    def count_chunks(self) -> int:
        with self._read_cursor() as cursor:
            cursor.execute("SELECT COUNT(*) AS n FROM chunks")
            return cursor.fetchone()["n"]

    def _row_to_chunk(self, row: sqlite3.Row) -> Chunk:
        return Chunk(
            id=row["id"],
            document_id=row["document_id"],
            chunk_order=row["chunk_order"],
            content=row["content"],
            token_count=row["token_count"],
            embedding=from_blob(row["embedding"]).tolist(),
        )

    # Search operations

    def search(
        self,
        query_embedding: list[float],
        limit: int = 10,
        min_similarity: float = 0.0,
        excluded_paths: Iterable[str] = (),
    ) -> list[SearchResult]:
        """
        Find the chunks most similar to a query embedding.

        Ranking is cosine similarity, descending. Ties are broken by document
        path, then chunk order. Chunks below min_similarity and chunks of
        documents under an excluded prefix are left out.
        """
        if limit <= 0:
            return []

        excluded = list(excluded_paths)
        with self._read_cursor() as cursor:
            cursor.execute(
                """SELECT c.*, d.path AS document_path
                FROM chunks c
                JOIN documents d ON c.document_id = d.id"""
            )
            rows = [
                row
                for row in cursor.fetchall()
                if not matches_prefix(row["document_path"], excluded)
            ]

        if not rows:
            return []

        query = np.asarray(query_embedding, dtype=np.float32)
        matrix = np.vstack([from_blob(row["embedding"]) for row in rows])
        if matrix.shape[1] != query.shape[0]:
            raise ValueError(
                f"Query has {query.shape[0]} dimensions, index has {matrix.shape[1]}"
            )
        scores = cosine_similarity(query, matrix)

        ranked = sorted(
            (
                (float(score), row)
                for score, row in zip(scores, rows)
                if score >= min_similarity
            ),
            key=lambda item: (-item[0], item[1]["document_path"], item[1]["chunk_order"]),
        )

        return [
            SearchResult(
                chunk=self._row_to_chunk(row),
                document_id=row["document_id"],
                document_path=row["document_path"],
                similarity=score,
            )
            for score, row in ranked[:limit]
        ]
