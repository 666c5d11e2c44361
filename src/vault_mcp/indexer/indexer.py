"""Main indexer that syncs the vault into the vector store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol

from vault_mcp.errors import IndexingInProgress, ProviderError
from vault_mcp.indexer.chunker import DEFAULT_MAX_TOKENS, chunk_text, estimate_tokens
from vault_mcp.indexer.models import Chunk, Document, IndexSummary, document_id_for
from vault_mcp.indexer.parser import document_title, parse_frontmatter
from vault_mcp.indexer.store import VectorStore
from vault_mcp.indexer.walker import FileInfo, matches_prefix

if TYPE_CHECKING:
    from vault_mcp.providers import EmbeddingClient

logger = logging.getLogger(__name__)


class DocumentSource(Protocol):
    """Anything that can enumerate vault documents with path exclusion."""

    def list_documents(self, excluded_paths: Iterable[str] = ()) -> list[FileInfo]:
        ...


class Indexer:
    """
    Indexer that syncs a document source with the vector store.

    The document source is always the source of truth. The store is a
    derived index: unchanged documents are skipped, changed and new ones are
    re-chunked and re-embedded, and documents that disappeared are deleted.

    Concurrency:
        Only one reindex runs at a time; a second request while one is in
        flight raises IndexingInProgress. Within a run, up to `concurrency`
        documents are embedded at once, and each document's chunk set is
        replaced in a single store transaction. A cancelled run stops between
        documents and releases the guard once its started writes have landed.
    """

    def __init__(
        self,
        source: DocumentSource,
        store: VectorStore,
        embedder: EmbeddingClient,
        max_chunk_tokens: int = DEFAULT_MAX_TOKENS,
        batch_size: int = 64,
        concurrency: int = 4,
    ):
        """
        Initialize the indexer.

        Args:
            source: Enumerates the documents to index
            store: Vector store receiving documents and chunks
            embedder: Client used to embed chunk texts
            max_chunk_tokens: Upper bound on a chunk's token count
            batch_size: Number of chunk texts per embedding request
            concurrency: Number of documents embedded concurrently
        """
        if batch_size <= 0:
            raise ValueError(f"Batch size must be positive, got {batch_size}")
        if concurrency <= 0:
            raise ValueError(f"Concurrency must be positive, got {concurrency}")

        self.source = source
        self.store = store
        self.embedder = embedder
        self.max_chunk_tokens = max_chunk_tokens
        self.batch_size = batch_size
        self.concurrency = concurrency
        self._run_lock = asyncio.Lock()
        self._pending_writes: set[asyncio.Future[None]] = set()

    @property
    def running(self) -> bool:
        """Whether a reindex is in flight."""
        return self._run_lock.locked()

    async def reindex(
        self,
        excluded_paths: Iterable[str] = (),
        public_paths: Iterable[str] = (),
    ) -> IndexSummary:
        """
        Bring the store in line with the document source.

        Args:
            excluded_paths: Path prefixes never indexed; stored documents
                under them are deleted
            public_paths: Path prefixes whose documents are marked public

        Returns:
            IndexSummary with created/updated/deleted/unchanged counts and
            the failed documents with their errors.

        Raises:
            IndexingInProgress: If another reindex is running
        """
        if self._run_lock.locked():
            raise IndexingInProgress("A reindex is already running")

        async with self._run_lock:
            try:
                return await self._sync(list(excluded_paths), list(public_paths))
            finally:
                # A cancelled run still holds the lock until started writes land
                if self._pending_writes:
                    await asyncio.wait(set(self._pending_writes))

    async def _sync(self, excluded: list[str], public: list[str]) -> IndexSummary:
        logger.info("Starting reindex")

        candidates = await asyncio.to_thread(self.source.list_documents, excluded)
        candidates = [c for c in candidates if not matches_prefix(c.relative_path, excluded)]
        stored = {doc.path: doc for doc in await self.store.list_documents()}

        summary = IndexSummary()
        to_index: list[tuple[FileInfo, bool, bool]] = []  # (file, is_public, is_new)

        for file_info in candidates:
            if file_info.error is not None:
                summary.failed[file_info.relative_path] = file_info.error
                continue

            is_public = matches_prefix(file_info.relative_path, public)
            existing = stored.get(file_info.relative_path)

            if existing is None:
                to_index.append((file_info, is_public, True))
            elif existing.content_hash != file_info.content_hash:
                to_index.append((file_info, is_public, False))
            elif existing.public != is_public:
                await self._update_public(file_info.relative_path, is_public, summary)
            else:
                logger.debug("Skip unchanged: %s", file_info.relative_path)
                summary.unchanged += 1

        semaphore = asyncio.Semaphore(self.concurrency)

        async def index_one(file_info: FileInfo, is_public: bool, is_new: bool) -> None:
            async with semaphore:
                try:
                    await self._index_file(file_info, is_public)
                except Exception as e:
                    logger.warning("Failed to index %s: %s", file_info.relative_path, e)
                    summary.failed[file_info.relative_path] = str(e)
                    return
            if is_new:
                summary.created += 1
            else:
                summary.updated += 1

        await asyncio.gather(*(index_one(*item) for item in to_index))

        # Unreadable documents still exist, so they count as seen
        seen_paths = {c.relative_path for c in candidates}
        for path in sorted(set(stored) - seen_paths):
            try:
                await self.store.delete_document(path)
                summary.deleted += 1
            except Exception as e:
                logger.warning("Failed to delete %s: %s", path, e)
                summary.failed[path] = str(e)

        logger.info(
            "Reindex complete: %d created, %d updated, %d deleted, %d unchanged, %d failed",
            summary.created,
            summary.updated,
            summary.deleted,
            summary.unchanged,
            summary.failed_count,
        )
        return summary

    async def _update_public(self, path: str, public: bool, summary: IndexSummary) -> None:
        try:
            await self.store.set_public(path, public)
            summary.updated += 1
        except Exception as e:
            logger.warning("Failed to update %s: %s", path, e)
            summary.failed[path] = str(e)

    async def _index_file(self, file_info: FileInfo, public: bool) -> None:
        """Chunk, embed and store a single document."""
        frontmatter, body = parse_frontmatter(file_info.content, file_info.relative_path)
        texts = list(chunk_text(body, self.max_chunk_tokens))

        embeddings: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            vectors = await self.embedder.embed(batch)
            if len(vectors) != len(batch):
                raise ProviderError(f"Expected {len(batch)} embeddings, got {len(vectors)}")
            embeddings.extend(vectors)

        document_id = document_id_for(file_info.relative_path)
        doc = Document(
            id=document_id,
            path=file_info.relative_path,
            title=document_title(frontmatter, file_info.relative_path),
            content_hash=file_info.content_hash,
            public=public,
            mtime=file_info.mtime,
        )
        chunks = [
            Chunk(
                id=f"{document_id}:{order}",
                document_id=document_id,
                chunk_order=order,
                content=text,
                token_count=estimate_tokens(text),
                embedding=embedding,
            )
            for order, (text, embedding) in enumerate(zip(texts, embeddings))
        ]

        # The store write runs to completion even if the run is cancelled
        write = asyncio.ensure_future(self.store.replace_document(doc, chunks))
        self._pending_writes.add(write)
        write.add_done_callback(self._pending_writes.discard)
        await asyncio.shield(write)
        logger.debug("Indexed %s (%d chunks)", file_info.relative_path, len(chunks))
