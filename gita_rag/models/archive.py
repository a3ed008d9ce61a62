"""Persisted ingestion archive model."""

from datetime import datetime

from pydantic import BaseModel, Field

from gita_rag.models.node import Node
from gita_rag.models.records import StructuralRecord

PROCESSOR_VERSION = "2.0"


class ArchiveMetadata(BaseModel):
    """Provenance of an ingestion run."""

    created_at: datetime = Field(default_factory=datetime.now)
    source_path: str = ""
    record_count: int = 0
    node_count: int = 0
    processor_version: str = PROCESSOR_VERSION


class IngestionArchive(BaseModel):
    """Snapshot of parsed records and built nodes, reusable without re-parsing."""

    structural_records: list[StructuralRecord] = Field(default_factory=list)
    nodes: list[Node] = Field(default_factory=list)
    metadata: ArchiveMetadata = Field(default_factory=ArchiveMetadata)
