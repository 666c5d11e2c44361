"""Answer synthesis from retrieved chunks (retrieval-augmented generation)."""

import logging

from vault_mcp.errors import ProviderError
from vault_mcp.indexer.chunker import estimate_tokens
from vault_mcp.indexer.models import SearchResult
from vault_mcp.providers import CompletionClient
from vault_mcp.search import SearchEngine

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_TOKENS = 1500

CONTEXT_SEPARATOR = "\n---\n"


def build_context(results: list[SearchResult], max_tokens: int) -> str:
    """
    Concatenate chunk contents, most similar first, within a token budget.

    Chunks are added in the given order until the next one would push the
    context over max_tokens; it and every less similar chunk are dropped.
    """
    parts: list[str] = []
    for result in results:
        candidate = CONTEXT_SEPARATOR.join([*parts, result.chunk.content.strip()])
        if estimate_tokens(candidate) > max_tokens:
            break
        parts.append(result.chunk.content.strip())
    return CONTEXT_SEPARATOR.join(parts)


class AnswerSynthesizer:
    """Answers questions from the notes by prompting a completion model."""

    def __init__(
        self,
        search_engine: SearchEngine,
        completer: CompletionClient,
        context_tokens: int = DEFAULT_CONTEXT_TOKENS,
        top_k: int | None = None,
    ):
        """
        Initialize the synthesizer.

        Args:
            search_engine: Retrieves the chunks used as context
            completer: Client generating the answer
            context_tokens: Budget for system prompt, context and question combined
            top_k: Number of chunks retrieved (search engine default if None)
        """
        self._search = search_engine
        self._completer = completer
        self._context_tokens = context_tokens
        self._top_k = top_k

    def context_budget(self, system_prompt: str, question: str) -> int:
        """Tokens left for context once the prompt and question are counted."""
        return self._context_tokens - estimate_tokens(system_prompt) - estimate_tokens(question)

    async def answer(self, question: str, system_prompt: str) -> str | None:
        """
        Generate an answer to a question from the indexed notes.

        Returns None when nothing relevant is retrieved, when the budget
        leaves no room for context, or when the completion call fails.
        Search errors propagate.
        """
        results = await self._search.search(question, self._top_k)
        if not results:
            logger.info("No context found for '%s'", question[:50])
            return None

        context = build_context(results, self.context_budget(system_prompt, question))
        if not context:
            logger.warning("Context budget too small for any retrieved chunk")
            return None

        try:
            return await self._completer.complete(system_prompt, context, question)
        except ProviderError as e:
            logger.warning("Completion failed: %s", e)
            return None
