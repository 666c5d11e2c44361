"""Parser for YAML frontmatter in vault notes."""

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath

import yaml

logger = logging.getLogger(__name__)


@dataclass
class FrontmatterData:
    """Parsed frontmatter data."""

    title: str | None = None


def parse_frontmatter(content: str, file_path: str) -> tuple[FrontmatterData, str]:
    """
    Parse YAML frontmatter from markdown content.

    Args:
        content: The full markdown content
        file_path: Relative path from VAULT_ROOT, used for logging

    Returns:
        Tuple of (FrontmatterData, content_without_frontmatter)
    """
    data = FrontmatterData()
    body = content

    if content.startswith("---"):
        parts = content.split("---", 2)
        if len(parts) >= 3:
            try:
                raw = yaml.safe_load(parts[1])
                if isinstance(raw, dict):
                    title = raw.get("title")
                    if title is not None:
                        data.title = str(title)

                    body = parts[2].lstrip("\n")
            except yaml.YAMLError as e:
                logger.debug("Invalid YAML frontmatter in %s: %s", file_path, e)

    return data, body


def document_title(frontmatter: FrontmatterData, file_path: str) -> str:
    """Title from frontmatter, falling back to the file name without suffix."""
    if frontmatter.title:
        return frontmatter.title
    return PurePosixPath(file_path).stem
