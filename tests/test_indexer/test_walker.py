"""Tests for the vault walker."""

from pathlib import Path

import pytest

from vault_mcp.indexer.walker import (
    VaultSource,
    compute_hash,
    matches_prefix,
    normalize_prefix,
    walk_vault,
)


class TestComputeHash:
    def test_computes_sha256(self):
        content = b"hello world"
        result = compute_hash(content)
        assert result == "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"

    def test_different_content_different_hash(self):
        assert compute_hash(b"foo") != compute_hash(b"bar")


class TestMatchesPrefix:
    @pytest.mark.parametrize(
        "path,prefixes,expected",
        [
            ("private/a.md", ["private"], True),
            ("private", ["private"], True),
            ("private2/a.md", ["private"], False),
            ("notes/private/a.md", ["private"], False),
            ("journal/2020/a.md", ["journal/2020"], True),
            ("journal/2021/a.md", ["journal/2020"], False),
            ("private/a.md", ["./private/"], True),
            ("a.md", [""], False),
            ("a.md", [], False),
        ],
    )
    def test_matching(self, path, prefixes, expected):
        assert matches_prefix(path, prefixes) is expected

    def test_normalize_prefix(self):
        assert normalize_prefix(" ./notes\\daily/ ") == "notes/daily"


class TestWalkVault:
    @pytest.fixture
    def vault(self, tmp_path: Path) -> Path:
        (tmp_path / "notes").mkdir()
        (tmp_path / "private").mkdir()
        (tmp_path / ".obsidian").mkdir()
        (tmp_path / "a.md").write_text("# A")
        (tmp_path / "notes" / "b.md").write_text("# B")
        (tmp_path / "private" / "c.md").write_text("# C")
        (tmp_path / ".obsidian" / "workspace.md").write_text("hidden")
        (tmp_path / "notes" / "image.png").write_bytes(b"\x89PNG")
        return tmp_path

    def test_discovers_markdown_files(self, vault: Path):
        paths = [f.relative_path for f in walk_vault(vault)]
        assert paths == ["a.md", "notes/b.md", "private/c.md"]

    def test_skips_excluded_prefixes(self, vault: Path):
        paths = [f.relative_path for f in walk_vault(vault, ["private"])]
        assert paths == ["a.md", "notes/b.md"]

    def test_file_info_fields(self, vault: Path):
        info = next(f for f in walk_vault(vault) if f.relative_path == "a.md")
        assert info.path == vault / "a.md"
        assert info.content == "# A"
        assert info.content_hash == compute_hash(b"# A")
        assert info.mtime > 0

    def test_reports_invalid_utf8(self, vault: Path, caplog):
        (vault / "bad.md").write_bytes(b"\xff\xfe\xfa")
        files = {f.relative_path: f for f in walk_vault(vault)}

        assert files["bad.md"].error.startswith("Invalid UTF-8 encoding")
        assert files["bad.md"].content == ""
        assert files["a.md"].error is None
        assert any("Invalid UTF-8" in r.message for r in caplog.records)

    def test_reports_unreadable_file(self, vault: Path, monkeypatch):
        read_bytes = Path.read_bytes

        def failing_read(self):
            if self.name == "b.md":
                raise PermissionError("Permission denied")
            return read_bytes(self)

        monkeypatch.setattr(Path, "read_bytes", failing_read)
        files = {f.relative_path: f for f in walk_vault(vault)}

        assert list(files) == ["a.md", "notes/b.md", "private/c.md"]
        assert "Permission denied" in files["notes/b.md"].error
        assert files["private/c.md"].content == "# C"

    def test_missing_root(self, tmp_path: Path):
        assert list(walk_vault(tmp_path / "missing")) == []

    def test_vault_source_lists_documents(self, vault: Path):
        source = VaultSource(vault)
        docs = source.list_documents(["notes"])
        assert [d.relative_path for d in docs] == ["a.md", "private/c.md"]
