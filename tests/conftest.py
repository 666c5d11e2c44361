"""Shared fixtures."""

from pathlib import Path

import pytest

from tests.fakes import FakeCompleter, FakeEmbedder
from vault_mcp.config import Config, ProviderSettings
from vault_mcp.indexer import SQLiteVectorStore


@pytest.fixture
def vault_root(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def store(tmp_path: Path):
    """An initialized SQLite vector store in a temporary directory."""
    vector_store = SQLiteVectorStore(tmp_path / "index.db")
    vector_store.db.initialize()
    yield vector_store
    vector_store.db.close()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def completer() -> FakeCompleter:
    return FakeCompleter()


@pytest.fixture
def config(vault_root: Path, tmp_path: Path) -> Config:
    return Config(
        vault_root=vault_root,
        vault_db=tmp_path / "index.db",
        vault_port=8080,
        providers=ProviderSettings(api_key="sk-test"),
        min_similarity=0.0,
    )
