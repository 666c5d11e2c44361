"""Chunking logic for splitting documents into bounded, coherent segments."""

import math
import re
from collections.abc import Iterator

# Rough size of one model token in characters
CHARS_PER_TOKEN = 4

DEFAULT_MAX_TOKENS = 500

HEADING_PATTERN = re.compile(r"^#{1,6}[ \t]+\S.*$", re.MULTILINE)

# A fenced code block runs to its closing fence or to the end of the text
FENCE_PATTERN = re.compile(
    r"^(`{3,}|~{3,})[^\n]*\n.*?(?:^\1[ \t]*$|\Z)", re.MULTILINE | re.DOTALL
)

# Progressively finer boundaries tried when a unit is still too large:
# paragraphs, then sentences, then any whitespace.
SPLIT_LEVELS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\n\s*\n"), "\n\n"),
    (re.compile(r"(?<=[.!?])\s+"), " "),
    (re.compile(r"\s+"), " "),
]


def estimate_tokens(text: str) -> int:
    """Estimate the number of model tokens in a text."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def split_by_headings(content: str) -> list[str]:
    """
    Split content into heading sections.

    Each section starts at a markdown heading (any level) and keeps the
    heading line. Text before the first heading forms its own section.
    Lines inside fenced code blocks are never headings.
    Empty sections are dropped.
    """
    fences = [match.span() for match in FENCE_PATTERN.finditer(content)]
    starts = [
        match.start()
        for match in HEADING_PATTERN.finditer(content)
        if not any(start < match.start() < end for start, end in fences)
    ]
    if not starts or starts[0] != 0:
        starts.insert(0, 0)

    sections: list[str] = []
    for i, start in enumerate(starts):
        end = starts[i + 1] if i + 1 < len(starts) else len(content)
        section = content[start:end].strip()
        if section:
            sections.append(section)
    return sections


def split_to_fit(text: str, max_tokens: int, level: int = 0) -> list[str]:
    """
    Split text so every piece fits max_tokens where possible.

    Pieces at the current boundary level are packed greedily; a piece that
    is still too large is split at the next, finer level. A piece with no
    boundary left to split on (one long unbroken string) is returned as is.
    """
    if estimate_tokens(text) <= max_tokens or level >= len(SPLIT_LEVELS):
        return [text]

    pattern, joiner = SPLIT_LEVELS[level]
    parts = [part.strip() for part in pattern.split(text) if part.strip()]

    chunks: list[str] = []
    current = ""
    for part in parts:
        if estimate_tokens(part) > max_tokens:
            if current:
                chunks.append(current)
                current = ""
            chunks.extend(split_to_fit(part, max_tokens, level + 1))
            continue

        candidate = f"{current}{joiner}{part}" if current else part
        if estimate_tokens(candidate) > max_tokens:
            chunks.append(current)
            current = part
        else:
            current = candidate

    if current:
        chunks.append(current)

    return chunks


def chunk_text(text: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> Iterator[str]:
    """
    Chunk a document's text.

    Rules:
    1. Split by markdown headings; a section is never merged with another
    2. If a section exceeds max_tokens, split by paragraphs
    3. If a paragraph exceeds the limit, split by sentences
    4. If a sentence exceeds the limit, split by whitespace
    5. A single word over the limit is emitted as its own chunk

    The generator is pure: iterating it again over the same input yields
    the same chunks. Empty text yields nothing.
    """
    if max_tokens < 1:
        raise ValueError(f"max_tokens must be positive, got {max_tokens}")

    for section in split_by_headings(text):
        yield from split_to_fit(section, max_tokens)
