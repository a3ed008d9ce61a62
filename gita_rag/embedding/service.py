"""Embedding service: canonicalization, caching, batching and retry around a backend."""

import asyncio
import logging
from dataclasses import asdict, dataclass

import numpy as np

from gita_rag.config import EmbeddingConfig
from gita_rag.embedding.backends import EmbeddingBackend
from gita_rag.embedding.cache import EmbeddingCache, cache_key
from gita_rag.embedding.text import canonicalize
from gita_rag.errors import (
    BackendError,
    BackendPermanentError,
    BackendTransientError,
    BackendUnavailableError,
    DimensionMismatchError,
    InputAbsentError,
)

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingStats:
    api_calls: int = 0
    cache_hits: int = 0
    errors: int = 0
    texts_embedded: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def l2_normalize(vector: list[float]) -> list[float]:
    arr = np.asarray(vector, dtype=np.float64)
    norm = np.linalg.norm(arr)
    if norm == 0:
        return arr.tolist()
    return (arr / norm).tolist()


class EmbeddingService:
    """Turns text into fixed-dimension vectors.

    Every text is canonicalized first; the cache is consulted before any
    backend call. Only BackendTransientError is retried, with exponential
    backoff; at most ``max_retries`` attempts are made per call.

    Args:
        backend: The embedding backend.
        config: EmbeddingConfig with dimensions, batching and retry settings.
        cache: Shared cache. A fresh one is created when omitted.
    """

    def __init__(
        self,
        backend: EmbeddingBackend,
        config: EmbeddingConfig | None = None,
        cache: EmbeddingCache | None = None,
    ) -> None:
        self._backend = backend
        self._config = config or EmbeddingConfig(dimensions=backend.dimensions)
        self._cache = cache if cache is not None else EmbeddingCache()
        self.stats = EmbeddingStats()

    @property
    def model_id(self) -> str:
        return self._backend.model_id

    @property
    def dimensions(self) -> int:
        return self._config.dimensions

    @property
    def zero_vector(self) -> list[float]:
        return [0.0] * self.dimensions

    def clear_cache(self) -> None:
        """Drop every cached vector."""
        self._cache.clear()
        logger.info("Embedding cache cleared")

    def cache_stats(self) -> dict[str, int]:
        return self._cache.stats()

    async def embed(self, text: str) -> list[float]:
        """Embed a single text.

        Args:
            text: Text to embed.

        Returns:
            The embedding vector.

        Raises:
            InputAbsentError: If the text is empty or blank.
            BackendUnavailableError: If transient failures exhausted all retries.
            BackendPermanentError: On a non-retryable backend failure.
            DimensionMismatchError: If the backend returned a wrong-length vector.
        """
        canonical = canonicalize(text or "")
        if not canonical:
            raise InputAbsentError("No text provided for embedding")

        key = cache_key(canonical, self.model_id)
        if self._config.cache_enabled:
            cached = self._cache.get(key)
            if cached is not None:
                self.stats.cache_hits += 1
                return cached

        vector = (await self._call_with_retry([canonical]))[0]
        if len(vector) != self.dimensions:
            raise DimensionMismatchError(self.dimensions, len(vector))

        vector = self._postprocess(vector)
        if self._config.cache_enabled:
            self._cache.put(key, vector)
        return vector

    async def embed_batch(self, texts: list[str], strict: bool = False) -> list[list[float]]:
        """Embed many texts, substituting zero vectors for failed items.

        Texts are processed in batches of ``batch_size``. Within a batch only
        cache misses go to the backend, in one combined call. If that call
        fails, the batch's items are embedded individually and concurrently;
        an item that still fails becomes a zero vector. A vector of the wrong
        dimension is logged and returned unchanged so the store can drop it.

        Args:
            texts: Texts to embed.
            strict: Propagate BackendPermanentError instead of substituting a
                zero vector, so bulk ingestion surfaces configuration errors.

        Returns:
            One vector per input text, in input order.

        Raises:
            InputAbsentError: If no texts were given.
            BackendPermanentError: In strict mode, on a non-retryable failure.
        """
        if not texts:
            raise InputAbsentError("No texts provided for batch embedding")

        results: list[list[float]] = [self.zero_vector for _ in texts]
        batch_size = max(self._config.batch_size, 1)

        for start in range(0, len(texts), batch_size):
            if start > 0 and self._config.inter_batch_delay > 0:
                await asyncio.sleep(self._config.inter_batch_delay)
            indices = list(range(start, min(start + batch_size, len(texts))))
            await self._embed_batch_slice(texts, indices, results, strict)

        return results

    async def _embed_batch_slice(
        self, texts: list[str], indices: list[int], results: list[list[float]], strict: bool
    ) -> None:
        misses: list[tuple[int, str, str]] = []
        for i in indices:
            canonical = canonicalize(texts[i] or "")
            if not canonical:
                logger.warning("Empty text at position %d; substituting zero vector", i)
                continue
            key = cache_key(canonical, self.model_id)
            cached = self._cache.get(key) if self._config.cache_enabled else None
            if cached is not None:
                self.stats.cache_hits += 1
                results[i] = cached
            else:
                misses.append((i, canonical, key))

        if not misses:
            return

        try:
            vectors = await self._call_with_retry([canonical for _, canonical, _ in misses])
            if len(vectors) != len(misses):
                raise BackendTransientError(
                    f"Backend returned {len(vectors)} vectors for {len(misses)} texts"
                )
        except BackendError as exc:
            logger.warning(
                "Batch embedding of %d texts failed (%s); falling back to individual calls",
                len(misses),
                exc,
            )
            await self._embed_individually(texts, [i for i, _, _ in misses], results, strict)
            return

        for (i, _, key), vector in zip(misses, vectors):
            if len(vector) != self.dimensions:
                logger.warning(
                    "Dimension mismatch for text %d: expected %d, got %d",
                    i,
                    self.dimensions,
                    len(vector),
                )
                results[i] = vector
                continue
            vector = self._postprocess(vector)
            if self._config.cache_enabled:
                self._cache.put(key, vector)
            results[i] = vector

    async def _embed_individually(
        self, texts: list[str], indices: list[int], results: list[list[float]], strict: bool
    ) -> None:
        outcomes = await asyncio.gather(
            *(self.embed(texts[i]) for i in indices), return_exceptions=True
        )
        for i, outcome in zip(indices, outcomes):
            if isinstance(outcome, DimensionMismatchError):
                logger.warning("Dropping text %d: %s", i, outcome)
                results[i] = []
            elif strict and isinstance(outcome, BackendPermanentError):
                raise outcome
            elif isinstance(outcome, BaseException):
                self.stats.errors += 1
                logger.error("Embedding failed for text %d, using zero vector: %s", i, outcome)
                results[i] = self.zero_vector
            else:
                results[i] = outcome

    async def _call_with_retry(self, texts: list[str]) -> list[list[float]]:
        attempts = max(self._config.max_retries, 1)
        last_error: BackendTransientError | None = None

        for attempt in range(1, attempts + 1):
            self.stats.api_calls += 1
            try:
                vectors = await self._backend.embed(texts)
            except BackendTransientError as exc:
                last_error = exc
                self.stats.errors += 1
                if attempt == attempts:
                    break
                delay = self._config.retry_delay * 2 ** (attempt - 1)
                logger.warning(
                    "Transient embedding error (attempt %d/%d), retrying in %.2fs: %s",
                    attempt,
                    attempts,
                    delay,
                    exc,
                )
                await asyncio.sleep(delay)
                continue
            except BackendError:
                self.stats.errors += 1
                raise
            self.stats.texts_embedded += len(texts)
            return vectors

        raise BackendUnavailableError(
            f"Embedding backend unavailable after {attempts} attempts: {last_error}",
            attempts=attempts,
        ) from last_error

    def _postprocess(self, vector: list[float]) -> list[float]:
        return l2_normalize(vector) if self._config.normalize else list(vector)
