"""Node builder: flattens structural records into retrievable nodes."""

import logging

from gita_rag.ingestion.chunker import SemanticChunker
from gita_rag.models.node import Node, NodeKind, NodeMetadata
from gita_rag.models.records import ChapterIntro, ContentBlock, StructuralRecord, Verse

logger = logging.getLogger(__name__)


def verse_node_id(chapter: int, verse: int, section: str, chunk_index: int | None = None) -> str:
    base = f"chapter_{chapter}_verse_{verse}_{section}"
    return base if chunk_index is None else f"{base}_{chunk_index}"


class NodeBuilder:
    """Maps ChapterIntro, Verse and ContentBlock records to Node objects.

    Identifiers depend only on location, kind and chunk index, so building
    nodes twice from the same records yields the same ids in the same order.

    Args:
        chunker: Splits commentary and content blocks that exceed its budget.
    """

    def __init__(self, chunker: SemanticChunker) -> None:
        self._chunker = chunker

    def build(self, records: list[StructuralRecord]) -> list[Node]:
        """Build nodes for every record, in record order.

        Args:
            records: Output of the structural parser.

        Returns:
            Flat list of nodes.
        """
        nodes: list[Node] = []
        for record in records:
            if isinstance(record, ChapterIntro):
                nodes.append(self._chapter_intro_node(record))
            elif isinstance(record, Verse):
                nodes.extend(self._verse_nodes(record))
            elif isinstance(record, ContentBlock):
                nodes.extend(self._content_nodes(record))

        logger.info("Built %d nodes from %d records", len(nodes), len(records))
        return nodes

    def _chapter_intro_node(self, intro: ChapterIntro) -> Node:
        heading = f"Chapter {intro.chapter_number}"
        if intro.title:
            heading = f"{heading}: {intro.title}"
        text = f"{heading}\n\n{intro.body}" if intro.body else heading
        return Node(
            id=f"chapter_{intro.chapter_number}_intro",
            text=text,
            metadata=NodeMetadata(
                chapter_number=intro.chapter_number,
                kind=NodeKind.CHAPTER_INTRO,
            ),
        )

    def _verse_nodes(self, verse: Verse) -> list[Node]:
        c, v = verse.chapter_number, verse.verse_number
        location = f"Chapter {c}, Verse {v}"
        nodes: list[Node] = []

        if not verse.has_retrievable_content:
            return nodes

        if verse.original_text.strip():
            nodes.append(
                Node(
                    id=verse_node_id(c, v, "original"),
                    text=f"{location} (Original):\n\n{verse.original_text}",
                    metadata=NodeMetadata(
                        chapter_number=c, verse_number=v, kind=NodeKind.VERSE_ORIGINAL
                    ),
                )
            )

        if verse.translation.strip():
            nodes.append(
                Node(
                    id=verse_node_id(c, v, "translation"),
                    text=f"{location} (Translation):\n\n{verse.translation}",
                    metadata=NodeMetadata(
                        chapter_number=c, verse_number=v, kind=NodeKind.VERSE_TRANSLATION
                    ),
                )
            )

        if verse.commentary.strip():
            fragments = self._chunker.split(verse.commentary)
            if len(fragments) <= 1:
                nodes.append(
                    Node(
                        id=verse_node_id(c, v, "commentary"),
                        text=f"{location} (Commentary):\n\n{verse.commentary}",
                        metadata=NodeMetadata(
                            chapter_number=c, verse_number=v, kind=NodeKind.VERSE_COMMENTARY
                        ),
                    )
                )
            else:
                count = len(fragments)
                for i, fragment in enumerate(fragments):
                    nodes.append(
                        Node(
                            id=verse_node_id(c, v, "commentary", i),
                            text=f"{location} (Commentary, Part {i + 1}):\n\n{fragment}",
                            metadata=NodeMetadata(
                                chapter_number=c,
                                verse_number=v,
                                kind=NodeKind.COMMENTARY_FRAGMENT,
                                chunk_index=i,
                                chunk_count=count,
                            ),
                        )
                    )
        return nodes

    def _content_nodes(self, block: ContentBlock) -> list[Node]:
        base_id = f"content_{block.chapter_number}_{block.index}"
        c, n = block.chapter_number, block.index + 1
        fragments = self._chunker.split(block.text)
        if len(fragments) <= 1:
            return [
                Node(
                    id=base_id,
                    text=f"Chapter {c} (Passage {n}):\n\n{block.text.strip()}",
                    metadata=NodeMetadata(chapter_number=block.chapter_number, kind=NodeKind.GENERIC),
                )
            ]
        count = len(fragments)
        return [
            Node(
                id=f"{base_id}_{i}",
                text=f"Chapter {c} (Passage {n}, Part {i + 1}):\n\n{fragment}",
                metadata=NodeMetadata(
                    chapter_number=block.chapter_number,
                    kind=NodeKind.GENERIC,
                    chunk_index=i,
                    chunk_count=count,
                ),
            )
            for i, fragment in enumerate(fragments)
        ]
