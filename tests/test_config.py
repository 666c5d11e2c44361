"""Tests for config module."""

from pathlib import Path

import pytest

from vault_mcp.config import DEFAULT_PROMPT, Config, one_line, parse_path_list

ENV_VARS = [
    "VAULT_ROOT",
    "VAULT_DB",
    "VAULT_PORT",
    "OPENAI_API_KEY",
    "VAULT_OPENAI_BASE_URL",
    "VAULT_EMBEDDING_MODEL",
    "VAULT_COMPLETION_MODEL",
    "VAULT_EXCLUDED_DIRS",
    "VAULT_PUBLIC_DIRS",
    "VAULT_INDEX_ON_OPEN",
    "VAULT_PROMPT",
    "VAULT_MAX_CHUNK_TOKENS",
    "VAULT_TOP_K",
    "VAULT_MIN_SIMILARITY",
    "VAULT_CONTEXT_TOKENS",
    "VAULT_EMBED_BATCH_SIZE",
    "VAULT_EMBED_CONCURRENCY",
    "VAULT_REQUEST_TIMEOUT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_config_defaults():
    """Test config loads with defaults when no env vars set."""
    config = Config.from_env()
    assert config.vault_root == Path.home() / "vault"
    assert config.vault_port == 8080
    assert config.vault_db == Path.home() / "vault" / "index.db"
    assert config.excluded_dirs == []
    assert config.public_dirs == []
    assert config.index_on_open is False
    assert config.prompt == DEFAULT_PROMPT
    assert config.top_k == 10
    assert config.min_similarity == 0.3
    assert config.providers.embedding_model == "text-embedding-ada-002"
    assert config.providers.completion_model == "gpt-3.5-turbo"


def test_missing_api_key_is_not_configured():
    config = Config.from_env()
    assert config.providers.api_key is None
    assert not config.providers.configured


def test_empty_api_key_is_not_configured(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "")
    assert not Config.from_env().providers.configured


def test_config_from_env(monkeypatch):
    """Test config loads from environment variables."""
    monkeypatch.setenv("VAULT_ROOT", "/custom/vault")
    monkeypatch.setenv("VAULT_PORT", "9000")
    monkeypatch.setenv("VAULT_DB", "/custom/db.sqlite")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("VAULT_EXCLUDED_DIRS", "private, journal/2020 ,")
    monkeypatch.setenv("VAULT_PUBLIC_DIRS", "blog")
    monkeypatch.setenv("VAULT_INDEX_ON_OPEN", "true")
    monkeypatch.setenv("VAULT_TOP_K", "5")
    monkeypatch.setenv("VAULT_MIN_SIMILARITY", "0.5")

    config = Config.from_env()
    assert config.vault_root == Path("/custom/vault")
    assert config.vault_port == 9000
    assert config.vault_db == Path("/custom/db.sqlite")
    assert config.providers.configured
    assert config.excluded_dirs == ["private", "journal/2020"]
    assert config.public_dirs == ["blog"]
    assert config.index_on_open is True
    assert config.top_k == 5
    assert config.min_similarity == 0.5


def test_default_db_follows_root(monkeypatch):
    monkeypatch.setenv("VAULT_ROOT", "/custom/vault")
    assert Config.from_env().vault_db == Path("/custom/vault/index.db")


def test_config_tilde_expansion(monkeypatch):
    """Test config expands tilde in paths."""
    monkeypatch.setenv("VAULT_ROOT", "~/notes")
    config = Config.from_env()
    assert config.vault_root == Path.home() / "notes"


def test_prompt_is_collapsed_to_one_line(monkeypatch):
    monkeypatch.setenv("VAULT_PROMPT", "You answer\n   questions.\n\nBriefly.")
    assert Config.from_env().prompt == "You answer questions. Briefly."


@pytest.mark.parametrize("port", ["0", "70000", "abc"])
def test_invalid_port(monkeypatch, port):
    monkeypatch.setenv("VAULT_PORT", port)
    with pytest.raises(ValueError, match="Invalid VAULT_PORT value"):
        Config.from_env()


def test_invalid_integer_setting(monkeypatch):
    monkeypatch.setenv("VAULT_TOP_K", "0")
    with pytest.raises(ValueError, match="Invalid VAULT_TOP_K value '0'"):
        Config.from_env()


def test_invalid_float_setting(monkeypatch):
    monkeypatch.setenv("VAULT_MIN_SIMILARITY", "high")
    with pytest.raises(ValueError, match="Invalid VAULT_MIN_SIMILARITY value"):
        Config.from_env()


def test_parse_path_list_drops_empty_entries():
    assert parse_path_list("a,,b, ,c/d") == ["a", "b", "c/d"]
    assert parse_path_list("") == []
    assert parse_path_list(None) == []


def test_one_line():
    assert one_line("  a\tb\n\nc  ") == "a b c"
