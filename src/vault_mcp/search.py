"""Semantic search over the indexed chunks."""

import logging
from collections.abc import Iterable

from vault_mcp.indexer.models import SearchResult
from vault_mcp.indexer.store import VectorStore
from vault_mcp.providers import EmbeddingClient

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 10
DEFAULT_MIN_SIMILARITY = 0.3


class SearchEngine:
    """Embeds a query and retrieves the most similar chunks."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: VectorStore,
        top_k: int = DEFAULT_TOP_K,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
        excluded_paths: Iterable[str] = (),
    ):
        """
        Initialize the search engine.

        Args:
            embedder: Client used to embed the query
            store: Vector store holding the chunks
            top_k: Number of results returned when the caller does not ask
            min_similarity: Cosine similarity below which chunks are dropped
            excluded_paths: Path prefixes whose documents are never returned
        """
        self._embedder = embedder
        self._store = store
        self._top_k = top_k
        self._min_similarity = min_similarity
        self._excluded_paths = list(excluded_paths)

    async def search(self, query: str, top_k: int | None = None) -> list[SearchResult]:
        """
        Search the index.

        Returns at most top_k results in non-increasing similarity order;
        fewer when the index holds fewer matching chunks. Provider and store
        errors propagate to the caller.
        """
        top_k = self._top_k if top_k is None else top_k
        if top_k <= 0 or not query.strip():
            return []

        vectors = await self._embedder.embed([query])
        results = await self._store.query(
            vectors[0],
            top_k=top_k,
            min_similarity=self._min_similarity,
            excluded_paths=self._excluded_paths,
        )

        logger.info("Search: returned %d/%d chunks for '%s'", len(results), top_k, query[:50])
        return results
