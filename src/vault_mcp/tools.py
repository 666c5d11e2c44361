"""MCP tools for vaultMCP server.

This module defines the tools exposed by the MCP server:
- reindex: Sync the vector index with the vault
- search: Semantic search across all notes
- answer: Generate an answer to a question from the notes
- status: Report whether the index is configured, indexing, ready or failing
"""

import re

from fastmcp import FastMCP

from vault_mcp.errors import VaultError
from vault_mcp.service import VaultService

NO_ANSWER = "No answer"

SNIPPET_MAX_CHARS = 200

_MARKDOWN_PATTERNS = [
    (re.compile(r"```.*?```", re.DOTALL), " "),  # fenced code
    (re.compile(r"!\[([^\]]*)\]\([^)]*\)"), r"\1"),  # images
    (re.compile(r"\[([^\]]+)\]\([^)]*\)"), r"\1"),  # links
    (re.compile(r"\[\[([^\]|]+)\|?([^\]]*)\]\]"), lambda m: m.group(2) or m.group(1)),  # wikilinks
    (re.compile(r"^#{1,6}\s+", re.MULTILINE), ""),  # headings
    (re.compile(r"^\s*[-*+>]\s+", re.MULTILINE), ""),  # bullets, quotes
    (re.compile(r"[*_`~]"), ""),  # emphasis
]


def remove_markdown(text: str) -> str:
    """Strip common markdown syntax, leaving readable plain text."""
    for pattern, replacement in _MARKDOWN_PATTERNS:
        text = pattern.sub(replacement, text)
    return re.sub(r"\s+", " ", text).strip()


def truncate(text: str, max_chars: int = SNIPPET_MAX_CHARS) -> str:
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 3].rstrip() + "..."


class VaultTools:
    """Tool handlers, kept separate from registration so they can be called directly."""

    def __init__(self, service: VaultService):
        self.service = service

    def _not_configured(self) -> dict:
        return {
            "status": self.service.status.value,
            "error": self.service.configuration_error or "Providers are not configured",
        }

    async def reindex(self) -> dict:
        """Sync the semantic index with the vault.

        Unchanged notes are skipped, changed and new notes are re-embedded and
        notes removed from the vault (or excluded) are deleted from the index.

        Returns:
            Summary with:
            - created / updated / deleted / unchanged: Document counts
            - failed: Map of path to error for notes that could not be indexed
            - status: Index status after the run
        """
        if not self.service.configured:
            return self._not_configured()
        try:
            summary = await self.service.reindex()
        except VaultError as e:
            return {"status": self.service.status.value, "error": str(e)}
        return {**summary.as_dict(), "status": self.service.status.value}

    async def search(self, query: str, limit: int | None = None) -> list[dict] | dict:
        """Semantic search across all notes.

        Args:
            query: Natural-language query
            limit: Maximum number of results (default: configured top_k)

        Returns:
            List of results, most similar first, with:
            - document_path: Path of the note
            - chunk_order: Position of the chunk in the note
            - similarity: Cosine similarity (higher is better)
            - content: Chunk text
            - snippet: Plain-text preview of the chunk
        """
        if not self.service.configured:
            return self._not_configured()
        try:
            results = await self.service.search(query, limit)
        except VaultError as e:
            return {"status": self.service.status.value, "error": str(e)}

        return [
            {
                "document_path": result.document_path,
                "chunk_order": result.chunk.chunk_order,
                "similarity": round(result.similarity, 4),
                "content": result.chunk.content,
                "snippet": truncate(remove_markdown(result.chunk.content)),
            }
            for result in results
        ]

    async def answer(self, question: str) -> dict:
        """Answer a question using the most relevant notes as context.

        Args:
            question: Natural-language question

        Returns:
            Dict with:
            - answer: Generated answer, or "No answer" when no relevant notes were found
            - found: Whether an answer was generated
        """
        if not self.service.configured:
            return self._not_configured()
        try:
            text = await self.service.answer(question)
        except VaultError as e:
            return {"status": self.service.status.value, "error": str(e)}
        return {"answer": text if text is not None else NO_ANSWER, "found": text is not None}

    async def status(self) -> dict:
        """Report the index status.

        Returns:
            Dict with:
            - status: not_configured / indexing / ready / error
            - error: Configuration or last reindex error, if any
            - chunks: Number of indexed chunks
            - last_reindex: Summary of the last reindex run, if any
        """
        summary = self.service.last_summary
        return {
            "status": self.service.status.value,
            "error": self.service.configuration_error or self.service.last_error,
            "chunks": await self.service.store.count_chunks(),
            "last_reindex": summary.as_dict() if summary else None,
        }


def register_tools(mcp: FastMCP, service: VaultService) -> VaultTools:
    """Register all tools with the FastMCP server.

    Args:
        mcp: FastMCP server instance
        service: Service backing the tools
    """
    tools = VaultTools(service)
    mcp.tool(name="reindex")(tools.reindex)
    mcp.tool(name="search")(tools.search)
    mcp.tool(name="answer")(tools.answer)
    mcp.tool(name="status")(tools.status)
    return tools
