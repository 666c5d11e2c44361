"""Vector store contract and its SQLite-backed implementation."""

import asyncio
import functools
import logging
import sqlite3
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Protocol, TypeVar, runtime_checkable

from vault_mcp.errors import StoreError
from vault_mcp.indexer.database import Database
from vault_mcp.indexer.models import Chunk, Document, SearchResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


@runtime_checkable
class VectorStore(Protocol):
    """Protocol for the persistence of documents, chunks and embeddings."""

    async def initialize(self) -> None:
        """Prepare the store for use."""
        ...

    async def close(self) -> None:
        """Release connections."""
        ...

    async def list_documents(self) -> list[Document]:
        """All stored documents, with their hash and public flag."""
        ...

    async def get_document(self, path: str) -> Document | None:
        ...

    async def get_chunks(self, document_id: str) -> list[Chunk]:
        ...

    async def replace_document(self, document: Document, chunks: list[Chunk]) -> None:
        """Atomically store a document together with its full chunk set."""
        ...

    async def set_public(self, path: str, public: bool) -> None:
        ...

    async def delete_document(self, path: str) -> bool:
        """Delete a document and all its chunks."""
        ...

    async def count_chunks(self) -> int:
        ...

    async def query(
        self,
        embedding: list[float],
        top_k: int,
        min_similarity: float = 0.0,
        excluded_paths: Iterable[str] = (),
    ) -> list[SearchResult]:
        """Top-k chunks by cosine similarity, most similar first."""
        ...


class SQLiteVectorStore:
    """VectorStore over a local SQLite file.

    Database calls are blocking, so each one runs in a worker thread; the
    Database keeps one connection per thread and serializes writes.
    """

    def __init__(self, db_path: Path):
        self.db = Database(db_path)

    async def _run(self, func: Callable[..., T], *args, **kwargs) -> T:
        try:
            return await asyncio.to_thread(functools.partial(func, *args, **kwargs))
        except (sqlite3.Error, ValueError) as e:
            raise StoreError(f"{func.__name__} failed: {e}") from e

    async def initialize(self) -> None:
        logger.info("Initializing vector store at %s", self.db.db_path)
        await self._run(self.db.initialize)

    async def close(self) -> None:
        self.db.close()

    async def list_documents(self) -> list[Document]:
        return await self._run(self.db.list_documents)

    async def get_document(self, path: str) -> Document | None:
        return await self._run(self.db.get_document_by_path, path)

    async def get_chunks(self, document_id: str) -> list[Chunk]:
        return await self._run(self.db.get_chunks, document_id)

    async def replace_document(self, document: Document, chunks: list[Chunk]) -> None:
        await self._run(self.db.replace_document, document, chunks)

    async def set_public(self, path: str, public: bool) -> None:
        await self._run(self.db.set_public, path, public)

    async def delete_document(self, path: str) -> bool:
        return await self._run(self.db.delete_document, path)

    async def count_chunks(self) -> int:
        return await self._run(self.db.count_chunks)

    async def query(
        self,
        embedding: list[float],
        top_k: int,
        min_similarity: float = 0.0,
        excluded_paths: Iterable[str] = (),
    ) -> list[SearchResult]:
        return await self._run(
            self.db.search,
            embedding,
            limit=top_k,
            min_similarity=min_similarity,
            excluded_paths=list(excluded_paths),
        )
