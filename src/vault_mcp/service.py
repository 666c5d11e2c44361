"""Composition root wiring the vault, store, providers and pipelines together."""

import asyncio
import contextlib
import enum
import logging

from vault_mcp.answer import AnswerSynthesizer
from vault_mcp.config import Config
from vault_mcp.errors import ConfigurationError, IndexingInProgress
from vault_mcp.indexer import Indexer, IndexSummary, SearchResult, SQLiteVectorStore, VaultSource
from vault_mcp.indexer.indexer import DocumentSource
from vault_mcp.indexer.store import VectorStore
from vault_mcp.providers import Providers, create_providers
from vault_mcp.search import SearchEngine

logger = logging.getLogger(__name__)


class Status(str, enum.Enum):
    NOT_CONFIGURED = "not_configured"
    INDEXING = "indexing"
    READY = "ready"
    ERROR = "error"


class VaultService:
    """Owns one configuration's worth of clients and pipelines.

    A service is built once per configuration. When the configuration
    changes, build a new service and close the old one; nothing here is
    reassigned in place.
    """

    def __init__(
        self,
        config: Config,
        store: VectorStore,
        providers: Providers | None,
        source: DocumentSource | None = None,
        configuration_error: str | None = None,
    ):
        self.config = config
        self.store = store
        self.providers = providers
        self.source = source or VaultSource(config.vault_root)
        self.configuration_error = configuration_error
        self.last_summary: IndexSummary | None = None
        self.last_error: str | None = None
        self.indexer: Indexer | None = None
        self.search_engine: SearchEngine | None = None
        self.synthesizer: AnswerSynthesizer | None = None
        self.startup_task: asyncio.Task[None] | None = None

        if providers is not None:
            self.indexer = Indexer(
                self.source,
                store,
                providers.embedder,
                max_chunk_tokens=config.max_chunk_tokens,
                batch_size=config.embed_batch_size,
                concurrency=config.embed_concurrency,
            )
            self.search_engine = SearchEngine(
                providers.embedder,
                store,
                top_k=config.top_k,
                min_similarity=config.min_similarity,
                excluded_paths=config.excluded_dirs,
            )
            self.synthesizer = AnswerSynthesizer(
                self.search_engine,
                providers.completer,
                context_tokens=config.context_tokens,
            )

    @classmethod
    def from_config(cls, config: Config) -> "VaultService":
        """Build a service; missing credentials leave it not configured."""
        store = SQLiteVectorStore(config.vault_db)
        try:
            providers = create_providers(config.providers)
        except ConfigurationError as e:
            logger.warning("Semantic search disabled: %s", e)
            return cls(config, store, None, configuration_error=str(e))
        return cls(config, store, providers)

    @property
    def configured(self) -> bool:
        return self.providers is not None

    @property
    def status(self) -> Status:
        if not self.configured:
            return Status.NOT_CONFIGURED
        if self.indexer is not None and self.indexer.running:
            return Status.INDEXING
        if self.startup_task is not None and not self.startup_task.done():
            return Status.INDEXING
        if self.last_error:
            return Status.ERROR
        return Status.READY

    def _not_configured(self) -> ConfigurationError:
        return ConfigurationError(self.configuration_error or "Providers are not configured")

    async def initialize(self) -> None:
        """Prepare the store and start the startup reindex when enabled.

        The startup reindex runs in the background; `status` reports it.
        """
        await self.store.initialize()
        if self.config.index_on_open and self.configured:
            self.startup_task = asyncio.create_task(self._index_on_open())

    async def _index_on_open(self) -> None:
        logger.info("Indexing on open...")
        try:
            await self.reindex()
        except Exception as e:
            # Already recorded in last_error
            logger.error("Index on open failed: %s", e)

    async def aclose(self) -> None:
        if self.startup_task is not None and not self.startup_task.done():
            self.startup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.startup_task
        if self.providers is not None:
            await self.providers.aclose()
        await self.store.close()

    async def reindex(self) -> IndexSummary:
        """Run a full reindex with the configured excluded and public dirs."""
        if self.indexer is None:
            raise self._not_configured()

        try:
            summary = await self.indexer.reindex(
                self.config.excluded_dirs, self.config.public_dirs
            )
        except IndexingInProgress:
            raise
        except Exception as e:
            self.last_error = str(e)
            logger.exception("Reindex failed")
            raise

        self.last_error = None
        self.last_summary = summary
        return summary

    async def search(self, query: str, top_k: int | None = None) -> list[SearchResult]:
        if self.search_engine is None:
            raise self._not_configured()
        return await self.search_engine.search(query, top_k)

    async def answer(self, question: str) -> str | None:
        if self.synthesizer is None:
            raise self._not_configured()
        return await self.synthesizer.answer(question, self.config.prompt)
