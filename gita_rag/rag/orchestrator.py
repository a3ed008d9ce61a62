"""RAG orchestrator: retrieval, grounding context, generation and answer parsing."""

import asyncio
import logging
from enum import Enum
from typing import Protocol

from gita_rag.config import AppConfig
from gita_rag.embedding.service import EmbeddingService
from gita_rag.models.collection import CollectionSchema
from gita_rag.models.node import NodeKind
from gita_rag.models.query_result import HealthReport, QueryAnswer, RetrievalResult, Source
from gita_rag.rag.generation import GenerationBackend
from gita_rag.rag.persona import (
    APOLOGY_MESSAGE,
    EMPTY_QUESTION_MESSAGE,
    UNAVAILABLE_MESSAGE,
    build_system_prompt,
    build_user_prompt,
)
from gita_rag.rag.response_parser import ResponseParser
from gita_rag.rag.translation import NullTranslator, Translator

logger = logging.getLogger(__name__)

EXCERPT_CHARS = 200


class QueryStage(str, Enum):
    RETRIEVE = "retrieve"
    FORMAT_CONTEXT = "format_context"
    GENERATE = "generate"
    PARSE_RESPONSE = "parse_response"
    TRANSLATE = "translate"
    RESPOND = "respond"


class Retriever(Protocol):
    async def search(self, query_text: str, limit: int = 3, filters=None) -> list[RetrievalResult]: ...

    async def point_count(self) -> int: ...

    async def collection_info(self) -> CollectionSchema | None: ...


def location_label(result: RetrievalResult, scripture: str) -> str | None:
    metadata = result.metadata
    if metadata.verse_number is not None:
        return f"{scripture} Chapter {metadata.chapter_number}, Verse {metadata.verse_number}"
    if metadata.kind == NodeKind.CHAPTER_INTRO:
        return f"{scripture} Chapter {metadata.chapter_number} Introduction"
    return None


def format_context(results: list[RetrievalResult], scripture: str = "Bhagavad Gita") -> str:
    """Number retrieved passages, each prefixed with its location when known."""
    entries = []
    for i, result in enumerate(results, start=1):
        label = location_label(result, scripture)
        header = f"Context {i} [{label}]:" if label else f"Context {i}:"
        entries.append(f"{header}\n{result.content}\n")
    return "\n".join(entries)


def human_reference(result: RetrievalResult, scripture: str = "Bhagavad Gita") -> str:
    metadata = result.metadata
    if metadata.verse_number is not None:
        return f"{scripture} {metadata.chapter_number}.{metadata.verse_number}"
    if metadata.kind == NodeKind.CHAPTER_INTRO:
        return f"{scripture} Chapter {metadata.chapter_number}"
    return "Unknown source"


def to_source(result: RetrievalResult, scripture: str = "Bhagavad Gita") -> Source:
    excerpt = result.content
    if len(excerpt) > EXCERPT_CHARS:
        excerpt = excerpt[:EXCERPT_CHARS] + "..."
    return Source(
        excerpt=excerpt,
        metadata=result.metadata,
        score=result.score,
        reference=human_reference(result, scripture),
    )


class RagOrchestrator:
    """Answers questions in persona, grounded in retrieved scripture.

    ``query`` never raises: a failing retrieval yields an empty context, a
    failing or missing generator yields a locally composed apology, and a
    failing translation yields the untranslated answer.

    Args:
        retriever: Vector store used for similarity search.
        generator: Generation backend, or None when none is configured.
        config: Application configuration.
        translator: Translation collaborator. Defaults to NullTranslator.
        embeddings: Embedding service, reported by ``health``.
    """

    def __init__(
        self,
        retriever: Retriever,
        generator: GenerationBackend | None,
        config: AppConfig,
        translator: Translator | None = None,
        embeddings: EmbeddingService | None = None,
    ) -> None:
        self._retriever = retriever
        self._generator = generator
        self._config = config
        self._translator = translator or NullTranslator()
        self._embeddings = embeddings
        self._parser = ResponseParser(config.generation.reasoning_tag)

    @property
    def response_parser(self) -> ResponseParser:
        return self._parser

    async def query(self, question: str, language: str = "en") -> QueryAnswer:
        """Answer a question.

        Args:
            question: The user's question.
            language: Requested response language code.

        Returns:
            The answer and its citable sources. Worst case an apology in
            persona with no sources.
        """
        languages = self._config.languages
        if language not in languages.supported:
            logger.warning("Unsupported language '%s'; using '%s'", language, languages.default)
            language = languages.default

        if not question or not question.strip():
            return QueryAnswer(answer=await self._localize(EMPTY_QUESTION_MESSAGE, language))

        stage = QueryStage.RETRIEVE
        try:
            working_question = await self._question_for_generation(question.strip(), language)

            results = await self._retrieve(working_question)

            stage = QueryStage.FORMAT_CONTEXT
            scripture = self._config.app.scripture_name
            context = format_context(results, scripture)

            stage = QueryStage.GENERATE
            raw = await self._generate(working_question, context, language)
            if raw is None:
                answer = UNAVAILABLE_MESSAGE
            else:
                stage = QueryStage.PARSE_RESPONSE
                answer = self._parser.parse(raw)

            stage = QueryStage.TRANSLATE
            answer = await self._localize(answer, language)

            stage = QueryStage.RESPOND
            sources = [to_source(result, scripture) for result in results]
            logger.info("Answered query with %d sources", len(sources))
            return QueryAnswer(answer=answer, sources=sources)
        except Exception:
            logger.exception("Query failed during stage %s", stage.value)
            return QueryAnswer(answer=await self._localize(APOLOGY_MESSAGE, language))

    async def _question_for_generation(self, question: str, language: str) -> str:
        target = self._config.translation.generation_language
        if language == target:
            return question
        try:
            translated = await self._translator.translate(question, language, target)
        except Exception as exc:
            logger.warning("Question translation %s -> %s failed: %s", language, target, exc)
            return question
        return translated or question

    async def _retrieve(self, question: str) -> list[RetrievalResult]:
        retrieval = self._config.retrieval
        try:
            results = await asyncio.wait_for(
                self._retriever.search(question, limit=retrieval.top_k),
                timeout=retrieval.timeout,
            )
        except Exception as exc:
            logger.error("Retrieval failed, continuing without context: %r", exc)
            return []
        if not results:
            logger.warning("No relevant passages found")
        return results

    async def _generate(self, question: str, context: str, language: str) -> str | None:
        if self._generator is None:
            logger.error("No generation backend configured")
            return None

        generation = self._config.generation
        prompts = self._config.languages.system_prompts
        base_prompt = prompts.get(language) or prompts.get("en", "")
        system_prompt = build_system_prompt(base_prompt, generation.reasoning_tag)
        user_prompt = build_user_prompt(
            context,
            question,
            generation.reasoning_tag,
            self._config.app.scripture_name,
        )
        try:
            return await asyncio.wait_for(
                self._generator.generate(
                    system_prompt,
                    user_prompt,
                    generation.temperature,
                    generation.max_tokens,
                ),
                timeout=generation.timeout,
            )
        except Exception as exc:
            logger.error("Generation failed: %r", exc)
            return None

    async def _localize(self, text: str, language: str) -> str:
        translation = self._config.translation
        if language == translation.generation_language or language in translation.exempt_languages:
            return text
        try:
            translated = await self._translator.translate(
                text, translation.generation_language, language
            )
        except Exception as exc:
            logger.warning("Answer translation to '%s' failed, returning original: %s", language, exc)
            return text
        return translated or text

    async def health(self) -> HealthReport:
        """Report collaborator availability without raising."""
        schema = await self._retriever.collection_info()
        count = await self._retriever.point_count() if schema is not None else 0
        return HealthReport(
            vector_store_available=schema is not None,
            point_count=count,
            collection=schema.model_dump() if schema else None,
            generator_configured=self._generator is not None,
            translator_configured=not isinstance(self._translator, NullTranslator),
            embedding_model=self._embeddings.model_id if self._embeddings else "",
            embedding_stats=self._embeddings.stats.as_dict() if self._embeddings else {},
        )
