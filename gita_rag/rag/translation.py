"""Translation collaborator: best-effort text translation between languages."""

import logging
from typing import Protocol

import httpx

from gita_rag.config import TranslationConfig
from gita_rag.errors import BackendPermanentError, BackendTransientError

logger = logging.getLogger(__name__)


class Translator(Protocol):
    async def translate(self, text: str, source_lang: str, target_lang: str) -> str: ...


class NullTranslator:
    """Returns text unchanged; used when no translation service is configured."""

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        return text


class HttpTranslator:
    """Client for a LibreTranslate-compatible ``/translate`` endpoint.

    Args:
        config: TranslationConfig with endpoint, API key and timeout.
        transport: Optional httpx transport, e.g. a MockTransport in tests.
    """

    def __init__(
        self,
        config: TranslationConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        """Translate text.

        Raises:
            BackendTransientError: On connection errors, timeouts, 429 or 5xx.
            BackendPermanentError: On other HTTP errors or a malformed reply.
        """
        if not text.strip() or source_lang == target_lang:
            return text

        payload = {"q": text, "source": source_lang, "target": target_lang, "format": "text"}
        if self._config.api_key:
            payload["api_key"] = self._config.api_key

        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout, transport=self._transport
            ) as client:
                response = await client.post(self._config.endpoint, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error("Translation request failed with status %d", status)
            if status == 429 or status >= 500:
                raise BackendTransientError(str(exc)) from exc
            raise BackendPermanentError(str(exc)) from exc
        except httpx.TransportError as exc:
            logger.error("Translation service unreachable at %s: %s", self._config.endpoint, exc)
            raise BackendTransientError(str(exc)) from exc

        translated = data.get("translatedText") if isinstance(data, dict) else None
        if not isinstance(translated, str):
            raise BackendPermanentError("Translation response missing 'translatedText'")
        logger.debug("Translated %d chars %s -> %s", len(text), source_lang, target_lang)
        return translated
