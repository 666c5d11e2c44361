"""Document source: discovers markdown files under VAULT_ROOT."""

import hashlib
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class FileInfo:
    """A markdown document discovered in the vault."""

    path: Path  # Absolute path
    relative_path: str  # Relative to VAULT_ROOT, posix separators
    content: str
    content_hash: str
    mtime: float
    error: str | None = None  # Set when the file could not be read


def compute_hash(content: bytes) -> str:
    """Compute SHA-256 hash of content."""
    return hashlib.sha256(content).hexdigest()


def normalize_prefix(prefix: str) -> str:
    """Normalize a configured directory prefix to vault-relative posix form."""
    prefix = prefix.strip().replace("\\", "/")
    while prefix.startswith("./"):
        prefix = prefix[2:]
    return prefix.strip("/")


def matches_prefix(path: str, prefixes: Iterable[str]) -> bool:
    """
    Check whether a vault-relative path is one of, or lies under, the prefixes.

    Matching is per path segment: "notes" matches "notes" and "notes/a.md"
    but not "notes2/a.md".
    """
    path = normalize_prefix(path)
    for prefix in prefixes:
        prefix = normalize_prefix(prefix)
        if not prefix:
            continue
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return False


class VaultSource:
    """Enumerates the markdown documents of a vault directory."""

    def __init__(self, root: Path):
        self.root = root

    def list_documents(self, excluded_paths: Iterable[str] = ()) -> list[FileInfo]:
        """Return every document whose path is not excluded.

        Unreadable documents are included with `error` set.
        """
        return list(walk_vault(self.root, excluded_paths))


def walk_vault(root: Path, excluded_paths: Iterable[str] = ()) -> Iterator[FileInfo]:
    """
    Walk the vault and yield FileInfo for each .md file.

    Hidden files and directories (.obsidian, .trash, ...) are skipped, as is
    anything under an excluded prefix. A file that cannot be read or is not
    valid UTF-8 is still yielded, with `error` set and no content.
    """
    if not root.exists():
        return

    excluded = [p for p in (normalize_prefix(e) for e in excluded_paths) if p]

    for file_path in sorted(root.rglob("*.md")):
        if not file_path.is_file():
            continue

        relative_parts = file_path.relative_to(root).parts
        if any(part.startswith(".") for part in relative_parts):
            continue

        relative_path = "/".join(relative_parts)
        if matches_prefix(relative_path, excluded):
            logger.debug("Skipping excluded document: %s", relative_path)
            continue

        try:
            raw = file_path.read_bytes()
            mtime = file_path.stat().st_mtime
        except OSError as e:
            logger.warning("Cannot read %s: %s", relative_path, e)
            yield _unreadable(file_path, relative_path, f"Cannot read file: {e}")
            continue

        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.warning("Invalid UTF-8 encoding in %s: %s", relative_path, e)
            yield _unreadable(file_path, relative_path, f"Invalid UTF-8 encoding: {e}")
            continue

        yield FileInfo(
            path=file_path,
            relative_path=relative_path,
            content=content,
            content_hash=compute_hash(raw),
            mtime=mtime,
        )


def _unreadable(file_path: Path, relative_path: str, error: str) -> FileInfo:
    return FileInfo(
        path=file_path,
        relative_path=relative_path,
        content="",
        content_hash="",
        mtime=0.0,
        error=error,
    )
