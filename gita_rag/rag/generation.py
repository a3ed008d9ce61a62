"""Generation collaborator backed by the Anthropic Messages API."""

import logging
from typing import Protocol

import anthropic
from anthropic import AsyncAnthropic

from gita_rag.config import GenerationConfig
from gita_rag.errors import BackendError, BackendPermanentError, BackendTransientError

logger = logging.getLogger(__name__)


class GenerationBackend(Protocol):
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str: ...


def classify_anthropic_error(exc: Exception) -> BackendError:
    if isinstance(exc, (anthropic.APIConnectionError, anthropic.RateLimitError)):
        return BackendTransientError(str(exc))
    if isinstance(exc, anthropic.APIStatusError) and exc.status_code >= 500:
        return BackendTransientError(str(exc))
    return BackendPermanentError(str(exc))


class AnthropicGenerationBackend:
    """Issues one completion per call; formatting of the reply is not trusted.

    Args:
        config: GenerationConfig with the model name and timeout.
        api_key: Anthropic API key.
        client: Pre-built client, mainly for tests.
    """

    def __init__(
        self,
        config: GenerationConfig,
        api_key: str | None = None,
        client: AsyncAnthropic | None = None,
    ) -> None:
        self._model = config.model
        self._client = client or AsyncAnthropic(api_key=api_key, timeout=config.timeout)

    @property
    def model(self) -> str:
        return self._model

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        try:
            message = await self._client.messages.create(
                model=self._model,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except anthropic.AnthropicError as exc:
            raise classify_anthropic_error(exc) from exc

        text = "".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        )
        logger.debug(
            "Generation used %s input / %s output tokens",
            getattr(message.usage, "input_tokens", "?"),
            getattr(message.usage, "output_tokens", "?"),
        )
        return text.strip()
