"""Embedding backends: the remote OpenAI API and its error classification."""

import logging
from typing import Protocol

import openai
from openai import AsyncOpenAI

from gita_rag.config import EmbeddingConfig
from gita_rag.errors import BackendError, BackendPermanentError, BackendTransientError

logger = logging.getLogger(__name__)


class EmbeddingBackend(Protocol):
    """Maps a list of texts to one vector per text, in input order."""

    model_id: str
    dimensions: int

    async def embed(self, texts: list[str]) -> list[list[float]]: ...


def classify_openai_error(exc: Exception) -> BackendError:
    """Translate an OpenAI SDK exception into the retry taxonomy.

    Connection resets, timeouts, rate limits and 5xx responses are
    transient; any other API error (auth, bad request) is permanent.
    """
    if isinstance(exc, (openai.APIConnectionError, openai.APITimeoutError, openai.RateLimitError)):
        return BackendTransientError(str(exc))
    if isinstance(exc, openai.APIStatusError):
        if exc.status_code == 429 or exc.status_code >= 500:
            return BackendTransientError(str(exc))
        return BackendPermanentError(str(exc))
    return BackendPermanentError(str(exc))


class OpenAIEmbeddingBackend:
    """Embeds texts with the OpenAI embeddings endpoint.

    Retries are owned by EmbeddingService, so the SDK's own retry loop is
    disabled.

    Args:
        config: EmbeddingConfig with model, dimensions and request timeout.
        api_key: OpenAI API key.
        client: Pre-built client, mainly for tests.
    """

    def __init__(
        self,
        config: EmbeddingConfig,
        api_key: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model_id = config.model
        self.dimensions = config.dimensions
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            timeout=config.request_timeout,
            max_retries=0,
        )

    async def embed(self, texts: list[str]) -> list[list[float]]:
        kwargs: dict = {"model": self.model_id, "input": texts}
        if self.model_id.startswith("text-embedding-3"):
            kwargs["dimensions"] = self.dimensions
        try:
            response = await self._client.embeddings.create(**kwargs)
        except openai.OpenAIError as exc:
            raise classify_openai_error(exc) from exc

        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]
