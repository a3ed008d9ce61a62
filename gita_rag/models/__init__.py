"""Data models for the Gita RAG application."""

from gita_rag.models.archive import ArchiveMetadata, IngestionArchive
from gita_rag.models.collection import CollectionSchema, IndexingReport
from gita_rag.models.node import Node, NodeKind, NodeMetadata
from gita_rag.models.query_result import (
    HealthReport,
    QueryAnswer,
    RetrievalResult,
    Source,
)
from gita_rag.models.records import (
    ChapterIntro,
    ContentBlock,
    StructuralRecord,
    Verse,
)

__all__ = [
    "ArchiveMetadata",
    "ChapterIntro",
    "CollectionSchema",
    "ContentBlock",
    "HealthReport",
    "IndexingReport",
    "IngestionArchive",
    "Node",
    "NodeKind",
    "NodeMetadata",
    "QueryAnswer",
    "RetrievalResult",
    "Source",
    "StructuralRecord",
    "Verse",
]
