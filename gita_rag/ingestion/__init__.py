"""Document ingestion: extraction, normalization, parsing, chunking and node building."""

from gita_rag.ingestion.chunker import SemanticChunker
from gita_rag.ingestion.nodes import NodeBuilder
from gita_rag.ingestion.normalizer import TextNormalizer
from gita_rag.ingestion.parser import StructuralParser
from gita_rag.ingestion.source import DocumentSource

__all__ = [
    "DocumentSource",
    "NodeBuilder",
    "SemanticChunker",
    "StructuralParser",
    "TextNormalizer",
]
