"""
vaultmcp - semantic search and answers over a markdown vault.

An MCP server that indexes a vault of markdown notes into an embedding index
and answers natural-language queries over it, optionally generating an answer
from the retrieved passages.

Stack:
- Python + FastMCP
- OpenAI-compatible embedding and chat APIs over httpx
- SQLite + numpy (vector index, cosine similarity)
- Markdown (source of truth)
"""

__version__ = "0.1.0"
