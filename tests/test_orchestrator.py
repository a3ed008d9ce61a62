"""Tests for the RAG orchestrator."""

import asyncio

import pytest
from qdrant_client import AsyncQdrantClient

from gita_rag.config import (
    AppConfig,
    EmbeddingConfig,
    RetrievalConfig,
    TranslationConfig,
    VectorStoreConfig,
)
from gita_rag.models.collection import CollectionSchema
from gita_rag.models.node import NodeKind, NodeMetadata
from gita_rag.models.query_result import RetrievalResult
from gita_rag.rag.orchestrator import RagOrchestrator, format_context, human_reference, to_source
from gita_rag.rag.persona import (
    APOLOGY_MESSAGE,
    EMPTY_QUESTION_MESSAGE,
    UNAVAILABLE_MESSAGE,
)
from gita_rag.services import build_services


def _result(chapter: int = 2, verse: int | None = 47, kind: NodeKind = NodeKind.VERSE_TRANSLATION,
            content: str = "You have a right to perform your prescribed duty.", score: float = 0.8
            ) -> RetrievalResult:
    return RetrievalResult(
        content=content,
        metadata=NodeMetadata(chapter_number=chapter, verse_number=verse, kind=kind),
        score=score,
    )


class FakeRetriever:
    def __init__(self, results: list[RetrievalResult] | None = None, error: Exception | None = None,
                 delay: float = 0.0) -> None:
        self.results = results or []
        self.error = error
        self.delay = delay
        self.queries: list[str] = []

    async def search(self, query_text: str, limit: int = 3, filters=None) -> list[RetrievalResult]:
        self.queries.append(query_text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.results[:limit]

    async def point_count(self) -> int:
        return len(self.results)

    async def collection_info(self) -> CollectionSchema | None:
        return CollectionSchema(name="bhagavad_gita", dimension=64, distance_metric="Cosine")


class FakeGenerator:
    def __init__(self, reply: object = "<think>reasoning</think>Parth, perform your duty.",
                 error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def generate(self, system_prompt: str, user_prompt: str, temperature: float,
                       max_tokens: int) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.error:
            raise self.error
        return self.reply


class PrefixTranslator:
    """Marks translated text with its target language."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, str, str]] = []

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        self.calls.append((text, source_lang, target_lang))
        if self.fail:
            raise ConnectionError("translation service down")
        return f"[{target_lang}] {text}"


@pytest.fixture
def config() -> AppConfig:
    return AppConfig()


# ── Helpers ──────────────────────────────────────────────────────────────────


class TestFormatting:
    def test_context_labels(self) -> None:
        context = format_context(
            [
                _result(),
                _result(chapter=3, verse=None, kind=NodeKind.CHAPTER_INTRO, content="Karma-yoga"),
                _result(chapter=1, verse=None, kind=NodeKind.GENERIC, content="Loose text"),
            ]
        )

        assert context == (
            "Context 1 [Bhagavad Gita Chapter 2, Verse 47]:\n"
            "You have a right to perform your prescribed duty.\n\n"
            "Context 2 [Bhagavad Gita Chapter 3 Introduction]:\nKarma-yoga\n\n"
            "Context 3:\nLoose text\n"
        )

    def test_references(self) -> None:
        assert human_reference(_result()) == "Bhagavad Gita 2.47"
        assert human_reference(_result(verse=None, kind=NodeKind.CHAPTER_INTRO)) == "Bhagavad Gita Chapter 2"
        assert human_reference(_result(verse=None, kind=NodeKind.GENERIC)) == "Unknown source"

    def test_source_excerpt_truncated(self) -> None:
        source = to_source(_result(content="x" * 300))
        assert source.excerpt == "x" * 200 + "..."
        assert source.reference == "Bhagavad Gita 2.47"


# ── Query flow ───────────────────────────────────────────────────────────────


class TestQuery:
    def test_grounded_answer(self, config: AppConfig) -> None:
        generator = FakeGenerator()
        orchestrator = RagOrchestrator(FakeRetriever([_result()]), generator, config)

        answer = asyncio.run(orchestrator.query("What is duty?", "en"))

        assert answer.answer == "Parth, perform your duty."
        assert [s.reference for s in answer.sources] == ["Bhagavad Gita 2.47"]
        system_prompt, user_prompt = generator.calls[0]
        assert "<think>" in system_prompt
        assert "Context 1 [Bhagavad Gita Chapter 2, Verse 47]:" in user_prompt
        assert "What is duty?" in user_prompt

    def test_top_k_respected(self) -> None:
        config = AppConfig(retrieval=RetrievalConfig(top_k=2))
        results = [_result(verse=v) for v in (1, 2, 3, 4)]
        orchestrator = RagOrchestrator(FakeRetriever(results), FakeGenerator(), config)

        answer = asyncio.run(orchestrator.query("What is duty?"))

        assert len(answer.sources) == 2

    def test_blank_question(self, config: AppConfig) -> None:
        generator = FakeGenerator()
        orchestrator = RagOrchestrator(FakeRetriever(), generator, config)

        answer = asyncio.run(orchestrator.query("   ", "en"))

        assert answer.answer == EMPTY_QUESTION_MESSAGE
        assert answer.sources == []
        assert generator.calls == []

    def test_retrieval_failure_degrades(self, config: AppConfig) -> None:
        generator = FakeGenerator()
        retriever = FakeRetriever(error=RuntimeError("qdrant down"))
        orchestrator = RagOrchestrator(retriever, generator, config)

        answer = asyncio.run(orchestrator.query("What is duty?"))

        assert answer.answer == "Parth, perform your duty."
        assert answer.sources == []
        assert "(no relevant passages were found)" in generator.calls[0][1]

    def test_retrieval_timeout_degrades(self) -> None:
        config = AppConfig(retrieval=RetrievalConfig(timeout=0.01))
        orchestrator = RagOrchestrator(FakeRetriever([_result()], delay=1.0), FakeGenerator(), config)

        answer = asyncio.run(orchestrator.query("What is duty?"))

        assert answer.sources == []
        assert answer.answer == "Parth, perform your duty."

    def test_generation_failure(self, config: AppConfig) -> None:
        generator = FakeGenerator(error=TimeoutError("slow backend"))
        orchestrator = RagOrchestrator(FakeRetriever([_result()]), generator, config)

        answer = asyncio.run(orchestrator.query("What is duty?"))

        assert answer.answer == UNAVAILABLE_MESSAGE

    def test_no_generator_configured(self, config: AppConfig) -> None:
        orchestrator = RagOrchestrator(FakeRetriever(), None, config)
        answer = asyncio.run(orchestrator.query("What is duty?"))
        assert answer.answer == UNAVAILABLE_MESSAGE

    def test_unexpected_failure_returns_apology(self, config: AppConfig) -> None:
        orchestrator = RagOrchestrator(FakeRetriever(), FakeGenerator(reply=12345), config)

        answer = asyncio.run(orchestrator.query("What is duty?"))

        assert answer.answer == APOLOGY_MESSAGE
        assert answer.sources == []

    def test_unsupported_language_uses_default(self, config: AppConfig) -> None:
        translator = PrefixTranslator()
        orchestrator = RagOrchestrator(FakeRetriever(), FakeGenerator(), config, translator=translator)

        answer = asyncio.run(orchestrator.query("What is duty?", "fr"))

        assert answer.answer == "Parth, perform your duty."
        assert translator.calls == []


# ── Translation ──────────────────────────────────────────────────────────────


class TestTranslation:
    def test_question_and_answer_translated(self, config: AppConfig) -> None:
        translator = PrefixTranslator()
        generator = FakeGenerator()
        retriever = FakeRetriever([_result()])
        orchestrator = RagOrchestrator(retriever, generator, config, translator=translator)

        answer = asyncio.run(orchestrator.query("कर्तव्य क्या है?", "hi"))

        assert retriever.queries == ["[en] कर्तव्य क्या है?"]
        assert answer.answer == "[hi] Parth, perform your duty."

    def test_exempt_language_answer_untranslated(self, config: AppConfig) -> None:
        translator = PrefixTranslator()
        orchestrator = RagOrchestrator(FakeRetriever(), FakeGenerator(), config, translator=translator)

        answer = asyncio.run(orchestrator.query("धर्मः कः?", "sa"))

        assert answer.answer == "Parth, perform your duty."
        assert [call[2] for call in translator.calls] == ["en"]

    def test_translation_failure_returns_original(self, config: AppConfig) -> None:
        translator = PrefixTranslator(fail=True)
        orchestrator = RagOrchestrator(FakeRetriever(), FakeGenerator(), config, translator=translator)

        answer = asyncio.run(orchestrator.query("What is duty?", "hi"))

        assert answer.answer == "Parth, perform your duty."

    def test_blank_question_localized(self) -> None:
        config = AppConfig(translation=TranslationConfig(generation_language="en"))
        orchestrator = RagOrchestrator(FakeRetriever(), FakeGenerator(), config, translator=PrefixTranslator())

        answer = asyncio.run(orchestrator.query("", "hi"))

        assert answer.answer == f"[hi] {EMPTY_QUESTION_MESSAGE}"


# ── Wired services ───────────────────────────────────────────────────────────


def _hashing_config() -> AppConfig:
    return AppConfig(
        embedding=EmbeddingConfig(provider="hashing", dimensions=64, retry_delay=0.0,
                                  inter_batch_delay=0.0),
        vector_store=VectorStoreConfig(quantization_enabled=False, inter_batch_delay=0.0),
    )


class TestWiredOrchestrator:
    def test_empty_collection_query(self) -> None:
        async def scenario():
            services = build_services(_hashing_config(), client=AsyncQdrantClient(location=":memory:"))
            try:
                await services.store.ensure_collection()
                return await services.orchestrator.query("What is duty?", "en")
            finally:
                await services.close()

        answer = asyncio.run(scenario())

        assert answer.answer == UNAVAILABLE_MESSAGE
        assert answer.sources == []

    def test_missing_collection_query(self) -> None:
        async def scenario():
            services = build_services(_hashing_config(), client=AsyncQdrantClient(location=":memory:"))
            try:
                return await services.orchestrator.query("What is duty?", "en")
            finally:
                await services.close()

        answer = asyncio.run(scenario())
        assert answer.answer
        assert answer.sources == []

    def test_health(self) -> None:
        async def scenario():
            services = build_services(_hashing_config(), client=AsyncQdrantClient(location=":memory:"))
            try:
                await services.store.ensure_collection()
                return await services.orchestrator.health()
            finally:
                await services.close()

        report = asyncio.run(scenario())

        assert report.vector_store_available
        assert report.point_count == 0
        assert report.generator_configured is False
        assert report.translator_configured is False
        assert report.embedding_model == "hashing-tfidf-64"
