"""End-to-end tests for the ingestion pipeline and its archive."""

import asyncio
from pathlib import Path

import pytest
from qdrant_client import AsyncQdrantClient

from gita_rag.config import AppConfig, EmbeddingConfig, StorageConfig, VectorStoreConfig
from gita_rag.errors import InputAbsentError
from gita_rag.models.records import ContentBlock
from gita_rag.services import Services, build_services
from gita_rag.storage.archive import load_archive, save_archive

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "sample_texts"

EXPECTED_NODE_IDS = [
    "chapter_1_intro",
    "chapter_1_verse_2_original",
    "chapter_1_verse_2_translation",
    "chapter_1_verse_2_commentary",
    "chapter_2_intro",
    "chapter_2_verse_47_original",
    "chapter_2_verse_47_translation",
]


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        embedding=EmbeddingConfig(provider="hashing", dimensions=256, retry_delay=0.0,
                                  inter_batch_delay=0.0),
        vector_store=VectorStoreConfig(quantization_enabled=False, inter_batch_delay=0.0),
        storage=StorageConfig(
            source_path=str(FIXTURES_DIR / "two_chapters.txt"),
            archive_path=str(tmp_path / "processed_gita.json"),
        ),
    )


def _services(config: AppConfig) -> Services:
    return build_services(config, client=AsyncQdrantClient(location=":memory:"))


# ── Processing ───────────────────────────────────────────────────────────────


class TestProcess:
    def test_fixture_nodes(self, config: AppConfig) -> None:
        archive = _services(config).pipeline.process(use_archive=False)

        assert [n.id for n in archive.nodes] == EXPECTED_NODE_IDS
        assert archive.metadata.record_count == 4
        assert archive.metadata.node_count == 7

    def test_ids_stable_across_runs(self, config: AppConfig) -> None:
        pipeline = _services(config).pipeline
        first = pipeline.process(use_archive=False)
        second = pipeline.process(use_archive=False)

        assert [n.id for n in first.nodes] == [n.id for n in second.nodes]

    def test_archive_reused_for_same_source(self, config: AppConfig, tmp_path: Path) -> None:
        source = tmp_path / "gita.txt"
        source.write_text("CHAPTER 1\n\nTitle\n\nTEXT 1\n\nTRANSLATION\n\nFirst.", encoding="utf-8")
        pipeline = _services(config).pipeline
        pipeline.process(source_path=source, use_archive=False)
        assert (tmp_path / "processed_gita.json").exists()

        # Edited after archiving; the archive still wins
        source.write_text("CHAPTER 1\n\nTitle\n\nTEXT 5\n\nTRANSLATION\n\nFifth.", encoding="utf-8")
        reused = pipeline.process(source_path=source, use_archive=True)

        assert [n.id for n in reused.nodes] == ["chapter_1_intro", "chapter_1_verse_1_translation"]

    def test_archive_from_other_source_not_reused(self, config: AppConfig, tmp_path: Path) -> None:
        pipeline = _services(config).pipeline
        pipeline.process(use_archive=False)

        other_source = tmp_path / "other.txt"
        other_source.write_text("CHAPTER 1\n\nTitle\n\nTEXT 5\n\nTRANSLATION\n\nFifth.", encoding="utf-8")
        archive = pipeline.process(source_path=other_source, use_archive=True)

        assert [n.id for n in archive.nodes] == ["chapter_1_intro", "chapter_1_verse_5_translation"]
        assert archive.metadata.source_path == str(other_source)
        assert load_archive(tmp_path / "processed_gita.json").metadata.source_path == str(other_source)

    def test_empty_source_rejected(self, config: AppConfig, tmp_path: Path) -> None:
        empty = tmp_path / "empty.txt"
        empty.write_text("", encoding="utf-8")

        with pytest.raises(InputAbsentError):
            _services(config).pipeline.process(source_path=empty, use_archive=False)

    def test_unstructured_source_falls_back(self, config: AppConfig) -> None:
        archive = _services(config).pipeline.process(
            source_path=FIXTURES_DIR / "unstructured.txt", use_archive=False
        )

        assert archive.nodes
        assert all(isinstance(r, ContentBlock) for r in archive.structural_records)
        assert archive.nodes[0].id == "content_1_0"


class TestArchive:
    def test_round_trip(self, config: AppConfig, tmp_path: Path) -> None:
        archive = _services(config).pipeline.process(use_archive=False)
        path = tmp_path / "copy" / "archive.json"

        save_archive(path, archive.structural_records, archive.nodes, "gita.txt")
        loaded = load_archive(path)

        assert loaded is not None
        assert loaded.nodes == archive.nodes
        assert loaded.structural_records == archive.structural_records
        assert loaded.metadata.source_path == "gita.txt"

    def test_missing_archive(self, tmp_path: Path) -> None:
        assert load_archive(tmp_path / "nope.json") is None

    def test_corrupt_archive(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        assert load_archive(path) is None
        assert "Failed to load archive" in caplog.text


# ── Indexing ─────────────────────────────────────────────────────────────────


class TestIndexing:
    def test_run_indexes_every_node(self, config: AppConfig) -> None:
        async def scenario():
            services = _services(config)
            try:
                report = await services.pipeline.run(force_reparse=True)
                return report, await services.store.point_count()
            finally:
                await services.close()

        report, count = asyncio.run(scenario())
        assert (report.total, report.succeeded, report.failed) == (7, 7, 0)
        assert count == 7

    def test_populated_collection_skipped(self, config: AppConfig) -> None:
        async def scenario():
            services = _services(config)
            try:
                await services.pipeline.run(force_reparse=True)
                second = await services.pipeline.run()
                return second, await services.store.point_count()
            finally:
                await services.close()

        second, count = asyncio.run(scenario())
        assert second.total == 0
        assert count == 7

    def test_force_reindex_rebuilds(self, config: AppConfig) -> None:
        async def scenario():
            services = _services(config)
            try:
                await services.pipeline.run(force_reparse=True)
                again = await services.pipeline.run(force_reindex=True)
                return again, await services.store.point_count()
            finally:
                await services.close()

        again, count = asyncio.run(scenario())
        assert again.succeeded == 7
        assert count == 7

    def test_indexed_nodes_searchable(self, config: AppConfig) -> None:
        async def scenario():
            services = _services(config)
            try:
                await services.pipeline.run(force_reparse=True)
                return await services.store.search(
                    "Chapter 2, Verse 47 (Translation): You have a right to perform your "
                    "prescribed duty, but you are not entitled to the fruits of action.",
                    limit=1,
                )
            finally:
                await services.close()

        results = asyncio.run(scenario())
        assert len(results) == 1
        assert results[0].metadata.verse_number == 47
