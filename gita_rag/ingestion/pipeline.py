"""Ingestion pipeline: source text to archived nodes to indexed vectors."""

import logging
from pathlib import Path

from gita_rag.config import AppConfig
from gita_rag.errors import InputAbsentError
from gita_rag.ingestion.nodes import NodeBuilder
from gita_rag.ingestion.normalizer import TextNormalizer
from gita_rag.ingestion.parser import StructuralParser
from gita_rag.ingestion.source import DocumentSource
from gita_rag.models.archive import IngestionArchive
from gita_rag.models.collection import IndexingReport
from gita_rag.storage.archive import load_archive, save_archive
from gita_rag.storage.vector_store import VectorStore

logger = logging.getLogger(__name__)


def _same_source(archived: str, requested: str | Path) -> bool:
    if not archived:
        return False
    return Path(archived).resolve() == Path(requested).resolve()


class IngestionPipeline:
    """Runs normalize → parse → build nodes, and indexes the result.

    The archive written after processing lets later runs re-index without
    re-reading or re-parsing the source document.
    """

    def __init__(
        self,
        source: DocumentSource,
        normalizer: TextNormalizer,
        parser: StructuralParser,
        builder: NodeBuilder,
        store: VectorStore,
        config: AppConfig,
    ) -> None:
        self._source = source
        self._normalizer = normalizer
        self._parser = parser
        self._builder = builder
        self._store = store
        self._config = config

    def process_text(self, text: str, source_path: str | Path = "") -> IngestionArchive:
        """Normalize, parse and build nodes from raw text, then save the archive.

        Raises:
            InputAbsentError: If the text is empty.
        """
        if not text or not text.strip():
            raise InputAbsentError(f"No text extracted from source {source_path!s}")

        normalized = self._normalizer.normalize(text)
        records = self._parser.parse(normalized)
        nodes = self._builder.build(records)
        return save_archive(self._config.storage.archive_path, records, nodes, source_path)

    def process(self, source_path: str | Path | None = None, use_archive: bool = True) -> IngestionArchive:
        """Produce the node archive, reusing the saved one when allowed.

        Args:
            source_path: Document to read. Defaults to the configured source.
            use_archive: Load an existing archive instead of re-parsing, provided
                it was built from the same source document.

        Returns:
            The archive of records and nodes.
        """
        path = source_path or self._config.storage.source_path
        if use_archive:
            archive = load_archive(self._config.storage.archive_path)
            if archive is not None and archive.nodes:
                if _same_source(archive.metadata.source_path, path):
                    return archive
                logger.info(
                    "Archive was built from %s, not %s; re-parsing",
                    archive.metadata.source_path or "an unknown source",
                    path,
                )

        logger.info("Processing source document %s", path)
        return self.process_text(self._source.read(path), path)

    async def index(self, archive: IngestionArchive, force_reindex: bool = False) -> IndexingReport:
        """Make sure the collection holds the archive's nodes.

        Args:
            archive: Nodes to index.
            force_reindex: Recreate the collection and index from scratch.

        Returns:
            The indexing report; empty if the collection was already populated.
        """
        if force_reindex:
            logger.info("Force reindex requested; recreating collection")
            await self._store.recreate_collection()
        else:
            await self._store.ensure_collection()
            existing = await self._store.point_count()
            if existing > 0:
                logger.info("Collection already holds %d points; skipping indexing", existing)
                return IndexingReport()

        return await self._store.upsert(archive.nodes)

    async def run(
        self,
        source_path: str | Path | None = None,
        force_reparse: bool = False,
        force_reindex: bool = False,
    ) -> IndexingReport:
        archive = self.process(source_path, use_archive=not force_reparse)
        return await self.index(archive, force_reindex=force_reindex or self._config.force_reindex)
