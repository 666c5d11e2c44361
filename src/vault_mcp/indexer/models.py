"""Data models for the indexer."""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime


def document_id_for(path: str) -> str:
    """Derive a stable document id from its vault-relative path."""
    return hashlib.sha256(path.encode("utf-8")).hexdigest()[:16]


@dataclass
class Document:
    """Represents a document in the index."""

    id: str = ""
    path: str = ""  # Relative from VAULT_ROOT, posix separators
    title: str = ""
    content_hash: str = ""
    public: bool = False
    mtime: float = 0.0
    updated_at: datetime | None = None


@dataclass
class Chunk:
    """Represents a chunk of content from a document."""

    id: str = ""
    document_id: str = ""
    chunk_order: int = 0
    content: str = ""
    token_count: int = 0
    embedding: list[float] = field(default_factory=list)


@dataclass
class SearchResult:
    """A chunk matched by a query, with its owning document summary."""

    chunk: Chunk
    document_id: str
    document_path: str
    similarity: float


@dataclass
class IndexSummary:
    """Counts reported by a reindex run."""

    created: int = 0
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0
    failed: dict[str, str] = field(default_factory=dict)  # path -> error

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    def as_dict(self) -> dict:
        return {
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "unchanged": self.unchanged,
            "failed": dict(self.failed),
        }
