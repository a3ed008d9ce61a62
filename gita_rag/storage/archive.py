"""Ingestion archive: a JSON snapshot of parsed records and built nodes."""

import logging
from pathlib import Path

from pydantic import ValidationError

from gita_rag.models.archive import ArchiveMetadata, IngestionArchive
from gita_rag.models.node import Node
from gita_rag.models.records import StructuralRecord

logger = logging.getLogger(__name__)


def save_archive(
    archive_path: str | Path,
    records: list[StructuralRecord],
    nodes: list[Node],
    source_path: str | Path = "",
) -> IngestionArchive:
    """Write records and nodes to disk so later runs can skip parsing.

    Args:
        archive_path: Destination JSON file. Parent directories are created.
        records: Structural records from the parser.
        nodes: Nodes from the node builder.
        source_path: The document the records came from.

    Returns:
        The archive that was written.
    """
    archive = IngestionArchive(
        structural_records=records,
        nodes=nodes,
        metadata=ArchiveMetadata(
            source_path=str(source_path),
            record_count=len(records),
            node_count=len(nodes),
        ),
    )
    path = Path(archive_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(archive.model_dump_json(indent=2), encoding="utf-8")
    logger.info("Saved archive with %d nodes to %s", len(nodes), path)
    return archive


def load_archive(archive_path: str | Path) -> IngestionArchive | None:
    """Read a previously saved archive.

    Args:
        archive_path: JSON file written by save_archive.

    Returns:
        The archive, or None if the file is missing or unreadable.
    """
    path = Path(archive_path)
    if not path.exists():
        return None
    try:
        archive = IngestionArchive.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError, ValueError):
        logger.exception("Failed to load archive: %s", path)
        return None
    logger.info("Loaded archive with %d nodes from %s", len(archive.nodes), path)
    return archive
