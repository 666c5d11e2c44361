"""Provider fakes and vault helpers used across the tests."""

import asyncio
import re
from collections.abc import Sequence
from pathlib import Path

from vault_mcp.errors import ProviderError

DIMENSIONS = 256


class FakeEmbedder:
    """Deterministic bag-of-words embedder.

    Every distinct lowercase word gets its own axis, so texts sharing no word
    have similarity 0 and texts sharing words score higher.
    """

    def __init__(
        self, fail_on: str | None = None, delay: float = 0.0, block_on: str | None = None
    ):
        self.vocabulary: dict[str, int] = {}
        self.calls: list[list[str]] = []
        self.fail_on = fail_on
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.started = asyncio.Event()
        self.release: asyncio.Event | None = None
        self.block_on = block_on
        self.blocked = asyncio.Event()

    def vector(self, text: str) -> list[float]:
        vec = [0.0] * DIMENSIONS
        for word in re.findall(r"[a-z0-9]+", text.lower()):
            index = self.vocabulary.setdefault(word, len(self.vocabulary)) % DIMENSIONS
            vec[index] += 1.0
        return vec

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.started.set()
        try:
            if self.release is not None and (
                self.block_on is None or any(self.block_on in text for text in texts)
            ):
                self.blocked.set()
                await self.release.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail_on and any(self.fail_on in text for text in texts):
                raise ProviderError(f"Refusing to embed '{self.fail_on}'")
            return [self.vector(text) for text in texts]
        finally:
            self.in_flight -= 1

    @property
    def embedded_texts(self) -> list[str]:
        return [text for call in self.calls for text in call]

    async def aclose(self) -> None:
        pass


class FakeCompleter:
    """Completion client that records its calls."""

    def __init__(self, reply: str = "Capacitors store charge.", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    async def complete(self, system_prompt: str, context: str, question: str) -> str:
        self.calls.append((system_prompt, context, question))
        if self.error is not None:
            raise self.error
        return self.reply

    async def aclose(self) -> None:
        pass


def write_note(root: Path, relative_path: str, content: str) -> Path:
    path = root / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path
