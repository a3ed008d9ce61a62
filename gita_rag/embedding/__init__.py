"""Embedding backends and the caching, retrying embedding service."""

from gita_rag.embedding.backends import EmbeddingBackend, OpenAIEmbeddingBackend
from gita_rag.embedding.cache import EmbeddingCache
from gita_rag.embedding.hashing import HashingEmbeddingBackend, VocabularyStats
from gita_rag.embedding.service import EmbeddingService
from gita_rag.embedding.text import canonicalize

__all__ = [
    "EmbeddingBackend",
    "EmbeddingCache",
    "EmbeddingService",
    "HashingEmbeddingBackend",
    "OpenAIEmbeddingBackend",
    "VocabularyStats",
    "canonicalize",
]
