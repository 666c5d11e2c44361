"""
Indexer module for vaultMCP.

This module keeps the vector store in sync with the markdown vault: it walks
the vault, chunks changed notes, embeds the chunks and writes them to the store.
"""

from vault_mcp.indexer.chunker import chunk_text, estimate_tokens
from vault_mcp.indexer.database import Database
from vault_mcp.indexer.indexer import DocumentSource, Indexer
from vault_mcp.indexer.models import Chunk, Document, IndexSummary, SearchResult
from vault_mcp.indexer.parser import parse_frontmatter
from vault_mcp.indexer.store import SQLiteVectorStore, VectorStore
from vault_mcp.indexer.walker import FileInfo, VaultSource, matches_prefix, walk_vault

__all__ = [
    "Chunk",
    "Database",
    "Document",
    "DocumentSource",
    "FileInfo",
    "IndexSummary",
    "Indexer",
    "SQLiteVectorStore",
    "SearchResult",
    "VaultSource",
    "VectorStore",
    "chunk_text",
    "estimate_tokens",
    "matches_prefix",
    "parse_frontmatter",
    "walk_vault",
]
