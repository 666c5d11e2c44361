"""Embedding and completion clients for OpenAI-compatible HTTP APIs.

Both clients are thin: one request per call, no retries. Rate limiting is
reported as RateLimited so the caller can back off and try again.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx

from vault_mcp.config import ProviderSettings
from vault_mcp.errors import ConfigurationError, InvalidInput, ProviderError, RateLimited
from vault_mcp.indexer.chunker import estimate_tokens

logger = logging.getLogger(__name__)

# Input limit of the OpenAI embedding models, in tokens
MAX_EMBEDDING_INPUT_TOKENS = 8191


@runtime_checkable
class EmbeddingClient(Protocol):
    """Protocol for turning texts into dense vectors."""

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed texts, one vector per text, in input order."""
        ...

    async def aclose(self) -> None:
        ...


@runtime_checkable
class CompletionClient(Protocol):
    """Protocol for generating an answer from a prompt and context."""

    async def complete(self, system_prompt: str, context: str, question: str) -> str:
        """Generate an answer to the question grounded in the context."""
        ...

    async def aclose(self) -> None:
        ...


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _error_detail(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"]
    return {}


def _error_message(response: httpx.Response) -> str:
    message = _error_detail(response).get("message")
    if message:
        return str(message)
    return response.text[:200] or response.reason_phrase


def _input_too_long(response: httpx.Response) -> bool:
    """Whether an error response rejects the request for exceeding the input limit."""
    if response.status_code == 413:
        return True
    if response.status_code != 400:
        return False
    detail = _error_detail(response)
    if detail.get("code") == "context_length_exceeded":
        return True
    return "maximum context length" in str(detail.get("message", "")).lower()


class _OpenAIHTTPClient:
    """Shared request handling for the OpenAI REST endpoints."""

    def __init__(
        self,
        settings: ProviderSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not settings.configured:
            raise ConfigurationError("OPENAI_API_KEY is not set")

        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.base_url.rstrip("/") + "/",
            headers={"Authorization": f"Bearer {settings.api_key}"},
            timeout=settings.timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(
        self,
        path: str,
        payload: dict,
        is_invalid_input: Callable[[httpx.Response], bool] | None = None,
    ) -> dict:
        try:
            response = await self._client.post(path, json=payload)
        except httpx.HTTPError as e:
            raise ProviderError(f"Request to {path} failed: {e}") from e

        if response.status_code == 429:
            raise RateLimited(
                f"Rate limited by provider: {_error_message(response)}",
                retry_after=_retry_after(response),
            )
        if is_invalid_input is not None and is_invalid_input(response):
            raise InvalidInput(f"Input rejected by provider: {_error_message(response)}")
        if response.status_code >= 400:
            raise ProviderError(
                f"Provider returned {response.status_code}: {_error_message(response)}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"Invalid JSON from {path}: {e}") from e


class OpenAIEmbeddingClient(_OpenAIHTTPClient):
    """EmbeddingClient backed by the /embeddings endpoint."""

    def __init__(
        self,
        settings: ProviderSettings,
        transport: httpx.AsyncBaseTransport | None = None,
        max_input_tokens: int = MAX_EMBEDDING_INPUT_TOKENS,
    ):
        super().__init__(settings, transport)
        self._max_input_tokens = max_input_tokens
        self._dimensions: int | None = None

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        texts = list(texts)
        if not texts:
            return []

        for i, text in enumerate(texts):
            tokens = estimate_tokens(text)
            if tokens > self._max_input_tokens:
                raise InvalidInput(
                    f"Text {i} has ~{tokens} tokens, limit is {self._max_input_tokens}"
                )

        data = await self._post(
            "embeddings",
            {"model": self._settings.embedding_model, "input": texts},
            is_invalid_input=_input_too_long,
        )

        try:
            items = sorted(data["data"], key=lambda item: item["index"])
            vectors = [[float(x) for x in item["embedding"]] for item in items]
        except (KeyError, TypeError) as e:
            raise ProviderError(f"Malformed embeddings response: {e}") from e

        if len(vectors) != len(texts):
            raise ProviderError(f"Expected {len(texts)} embeddings, got {len(vectors)}")

        sizes = {len(v) for v in vectors}
        if self._dimensions is not None:
            sizes.add(self._dimensions)
        if len(sizes) != 1:
            raise ProviderError(f"Inconsistent embedding dimensions: {sorted(sizes)}")
        self._dimensions = sizes.pop()

        logger.debug("Embedded %d texts", len(texts))
        return vectors


class OpenAICompletionClient(_OpenAIHTTPClient):
    """CompletionClient backed by the /chat/completions endpoint."""

    def __init__(
        self,
        settings: ProviderSettings,
        transport: httpx.AsyncBaseTransport | None = None,
        max_tokens: int = 512,
        temperature: float = 0.0,
    ):
        super().__init__(settings, transport)
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def complete(self, system_prompt: str, context: str, question: str) -> str:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": build_user_message(context, question)},
        ]
        data = await self._post(
            "chat/completions",
            {
                "model": self._settings.completion_model,
                "messages": messages,
                "max_tokens": self._max_tokens,
                "temperature": self._temperature,
            },
        )

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Malformed completion response: {e}") from e
        return (content or "").strip()


def build_user_message(context: str, question: str) -> str:
    """Format the context sections and the question for the completion model."""
    return f'Context sections:\n{context}\n\nQuestion: """\n{question}\n"""'


@dataclass
class Providers:
    """The pair of provider clients built from one configuration."""

    embedder: EmbeddingClient
    completer: CompletionClient

    async def aclose(self) -> None:
        await self.embedder.aclose()
        await self.completer.aclose()


def create_providers(
    settings: ProviderSettings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Providers:
    """
    Build both provider clients from settings.

    Raises:
        ConfigurationError: If the API key is missing
    """
    if not settings.configured:
        raise ConfigurationError("OPENAI_API_KEY is not set")

    logger.info(
        "Creating provider clients (embedding: %s, completion: %s)",
        settings.embedding_model,
        settings.completion_model,
    )
    return Providers(
        embedder=OpenAIEmbeddingClient(settings, transport),
        completer=OpenAICompletionClient(settings, transport),
    )
