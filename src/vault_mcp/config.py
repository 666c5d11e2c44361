"""Configuration module for vaultmcp.

Loads configuration from environment variables with sensible defaults.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_PROMPT = (
    "You are a helpful assistant that answers questions using the user's notes. "
    "Given the following sections from the notes, answer the question with the "
    "provided information. If you are unsure, and the notes don't include relevant "
    "information, you may also say \"Sorry, I don't know the answer to this question :(\""
)


def parse_path_list(value: str | None) -> list[str]:
    """Split a comma-separated list of paths, dropping empty entries."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def one_line(text: str) -> str:
    """Collapse all whitespace runs in a prompt to single spaces."""
    return re.sub(r"\s+", " ", text).strip()


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
        if value < minimum:
            raise ValueError(f"Must be at least {minimum}, got {value}")
    except ValueError as e:
        raise ValueError(f"Invalid {name} value '{raw}': {e}") from e
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"Invalid {name} value '{raw}': {e}") from e


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in ("1", "true", "yes")


@dataclass
class ProviderSettings:
    """Credentials and model choices for the embedding and completion APIs."""

    api_key: str | None
    base_url: str = "https://api.openai.com/v1"
    embedding_model: str = "text-embedding-ada-002"
    completion_model: str = "gpt-3.5-turbo"
    timeout: float = 30.0

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass
class Config:
    """Application configuration."""

    vault_root: Path
    vault_db: Path
    vault_port: int
    providers: ProviderSettings
    excluded_dirs: list[str] = field(default_factory=list)
    public_dirs: list[str] = field(default_factory=list)
    index_on_open: bool = False
    prompt: str = DEFAULT_PROMPT
    max_chunk_tokens: int = 500
    top_k: int = 10
    min_similarity: float = 0.3
    context_tokens: int = 1500
    embed_batch_size: int = 64
    embed_concurrency: int = 4

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        default_root = str(Path.home() / "vault")
        vault_root = Path(os.getenv("VAULT_ROOT", default_root)).expanduser()

        port_str = os.getenv("VAULT_PORT", "8080")
        try:
            vault_port = int(port_str)
            if not 1 <= vault_port <= 65535:
                raise ValueError(f"Port must be between 1 and 65535, got {vault_port}")
        except ValueError as e:
            raise ValueError(f"Invalid VAULT_PORT value '{port_str}': {e}") from e

        default_db = str(vault_root / "index.db")
        vault_db = Path(os.getenv("VAULT_DB", default_db)).expanduser()

        providers = ProviderSettings(
            api_key=os.getenv("OPENAI_API_KEY") or None,
            base_url=os.getenv("VAULT_OPENAI_BASE_URL", "https://api.openai.com/v1"),
            embedding_model=os.getenv("VAULT_EMBEDDING_MODEL", "text-embedding-ada-002"),
            completion_model=os.getenv("VAULT_COMPLETION_MODEL", "gpt-3.5-turbo"),
            timeout=_env_float("VAULT_REQUEST_TIMEOUT", 30.0),
        )

        return cls(
            vault_root=vault_root,
            vault_db=vault_db,
            vault_port=vault_port,
            providers=providers,
            excluded_dirs=parse_path_list(os.getenv("VAULT_EXCLUDED_DIRS")),
            public_dirs=parse_path_list(os.getenv("VAULT_PUBLIC_DIRS")),
            index_on_open=_env_bool("VAULT_INDEX_ON_OPEN"),
            prompt=one_line(os.getenv("VAULT_PROMPT") or DEFAULT_PROMPT),
            max_chunk_tokens=_env_int("VAULT_MAX_CHUNK_TOKENS", 500),
            top_k=_env_int("VAULT_TOP_K", 10),
            min_similarity=_env_float("VAULT_MIN_SIMILARITY", 0.3),
            context_tokens=_env_int("VAULT_CONTEXT_TOKENS", 1500),
            embed_batch_size=_env_int("VAULT_EMBED_BATCH_SIZE", 64),
            embed_concurrency=_env_int("VAULT_EMBED_CONCURRENCY", 4),
        )
