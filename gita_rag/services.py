"""Wiring of every collaborator from a single AppConfig."""

import logging
from dataclasses import dataclass

from qdrant_client import AsyncQdrantClient

from gita_rag.config import AppConfig
from gita_rag.embedding.backends import EmbeddingBackend, OpenAIEmbeddingBackend
from gita_rag.embedding.hashing import HashingEmbeddingBackend, VocabularyStats
from gita_rag.embedding.service import EmbeddingService
from gita_rag.ingestion.chunker import SemanticChunker
from gita_rag.ingestion.nodes import NodeBuilder
from gita_rag.ingestion.normalizer import TextNormalizer, load_substitutions
from gita_rag.ingestion.parser import StructuralParser
from gita_rag.ingestion.pipeline import IngestionPipeline
from gita_rag.ingestion.source import DocumentSource
from gita_rag.rag.generation import AnthropicGenerationBackend, GenerationBackend
from gita_rag.rag.orchestrator import RagOrchestrator
from gita_rag.rag.translation import HttpTranslator, NullTranslator, Translator
from gita_rag.storage.vector_store import VectorStore, create_client

logger = logging.getLogger(__name__)


@dataclass
class Services:
    config: AppConfig
    client: AsyncQdrantClient
    embeddings: EmbeddingService
    store: VectorStore
    pipeline: IngestionPipeline
    orchestrator: RagOrchestrator

    async def close(self) -> None:
        await self.client.close()


def build_embedding_backend(config: AppConfig) -> EmbeddingBackend:
    if config.embedding.provider == "openai" and config.openai_api_key:
        return OpenAIEmbeddingBackend(config.embedding, api_key=config.openai_api_key)
    if config.embedding.provider == "openai":
        logger.warning("OPENAI_API_KEY not set; using the local hashing embedding backend")
    return HashingEmbeddingBackend(config.embedding.dimensions, stats=VocabularyStats())


def build_generator(config: AppConfig) -> GenerationBackend | None:
    if config.generation.provider != "anthropic":
        logger.error("Unsupported generation provider: %s", config.generation.provider)
        return None
    if not config.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY not set; answers will be local apologies")
        return None
    return AnthropicGenerationBackend(config.generation, api_key=config.anthropic_api_key)


def build_translator(config: AppConfig) -> Translator:
    if config.translation.enabled:
        return HttpTranslator(config.translation)
    return NullTranslator()


def build_services(config: AppConfig, client: AsyncQdrantClient | None = None) -> Services:
    """Build the full object graph.

    Args:
        config: Resolved application configuration.
        client: Qdrant client override, e.g. an in-memory one in tests.

    Returns:
        The wired services.
    """
    client = client or create_client(config.vector_store)
    embeddings = EmbeddingService(build_embedding_backend(config), config.embedding)
    store = VectorStore(client, embeddings, config.vector_store, min_score=config.retrieval.min_score)

    substitutions = None
    if config.normalizer.substitutions_path:
        substitutions = load_substitutions(config.normalizer.substitutions_path)

    pipeline = IngestionPipeline(
        source=DocumentSource(),
        normalizer=TextNormalizer(substitutions),
        parser=StructuralParser(config.parser),
        builder=NodeBuilder(SemanticChunker(config.chunking)),
        store=store,
        config=config,
    )
    orchestrator = RagOrchestrator(
        retriever=store,
        generator=build_generator(config),
        config=config,
        translator=build_translator(config),
        embeddings=embeddings,
    )
    return Services(
        config=config,
        client=client,
        embeddings=embeddings,
        store=store,
        pipeline=pipeline,
        orchestrator=orchestrator,
    )
