"""Tests for the node builder."""

from pathlib import Path

import pytest

from gita_rag.config import ChunkingConfig
from gita_rag.ingestion.chunker import SemanticChunker
from gita_rag.ingestion.nodes import NodeBuilder, verse_node_id
from gita_rag.ingestion.normalizer import TextNormalizer
from gita_rag.ingestion.parser import StructuralParser
from gita_rag.models.node import NodeKind
from gita_rag.models.records import ChapterIntro, ContentBlock, Verse

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "sample_texts"


@pytest.fixture
def builder() -> NodeBuilder:
    return NodeBuilder(SemanticChunker(ChunkingConfig(max_chars=200)))


def _long_commentary() -> str:
    return "\n\n".join(
        f"Paragraph {i} of the purport explains that one should act without attachment."
        for i in range(6)
    )


class TestVerseNodeId:
    def test_plain(self) -> None:
        assert verse_node_id(2, 47, "translation") == "chapter_2_verse_47_translation"

    def test_with_chunk_index(self) -> None:
        assert verse_node_id(2, 47, "commentary", 3) == "chapter_2_verse_47_commentary_3"


class TestNodeBuilder:
    def test_chapter_intro(self, builder: NodeBuilder) -> None:
        nodes = builder.build([ChapterIntro(chapter_number=2, title="Contents", body="Krishna speaks.")])

        assert len(nodes) == 1
        node = nodes[0]
        assert node.id == "chapter_2_intro"
        assert node.text == "Chapter 2: Contents\n\nKrishna speaks."
        assert node.metadata.kind == NodeKind.CHAPTER_INTRO
        assert node.metadata.verse_number is None

    def test_chapter_intro_without_title_or_body(self, builder: NodeBuilder) -> None:
        node = builder.build([ChapterIntro(chapter_number=3)])[0]
        assert node.text == "Chapter 3"

    def test_verse_sections(self, builder: NodeBuilder) -> None:
        verse = Verse(
            chapter_number=2,
            verse_number=47,
            original_text="karmany evadhikaras te",
            translation="You have a right to perform your duty.",
            commentary="Short purport.",
        )
        nodes = builder.build([verse])

        assert [n.id for n in nodes] == [
            "chapter_2_verse_47_original",
            "chapter_2_verse_47_translation",
            "chapter_2_verse_47_commentary",
        ]
        assert [n.metadata.kind for n in nodes] == [
            NodeKind.VERSE_ORIGINAL,
            NodeKind.VERSE_TRANSLATION,
            NodeKind.VERSE_COMMENTARY,
        ]
        assert nodes[1].text == "Chapter 2, Verse 47 (Translation):\n\nYou have a right to perform your duty."
        assert all(n.metadata.verse_number == 47 for n in nodes)

    def test_long_commentary_fragments(self, builder: NodeBuilder) -> None:
        verse = Verse(chapter_number=3, verse_number=9, commentary=_long_commentary())
        nodes = builder.build([verse])

        assert len(nodes) >= 2
        count = len(nodes)
        for i, node in enumerate(nodes):
            assert node.id == f"chapter_3_verse_9_commentary_{i}"
            assert node.metadata.kind == NodeKind.COMMENTARY_FRAGMENT
            assert node.metadata.chunk_index == i
            assert node.metadata.chunk_count == count
            assert node.text.startswith(f"Chapter 3, Verse 9 (Commentary, Part {i + 1}):\n\n")

    def test_verse_without_english_yields_nothing(self, builder: NodeBuilder) -> None:
        verse = Verse(chapter_number=1, verse_number=1, original_text="dhrtarastra uvaca")
        assert builder.build([verse]) == []

    def test_content_blocks(self, builder: NodeBuilder) -> None:
        short = ContentBlock(index=0, text="The soul is eternal.")
        long = ContentBlock(index=1, text=_long_commentary())
        nodes = builder.build([short, long])

        assert nodes[0].id == "content_1_0"
        assert nodes[0].text == "Chapter 1 (Passage 1):\n\nThe soul is eternal."
        assert nodes[0].metadata.kind == NodeKind.GENERIC
        assert nodes[1].id == "content_1_1_0"
        assert nodes[1].text.startswith("Chapter 1 (Passage 2, Part 1):\n\n")
        assert nodes[2].text.startswith("Chapter 1 (Passage 2, Part 2):\n\n")
        assert all(n.metadata.kind == NodeKind.GENERIC for n in nodes)
        assert nodes[-1].metadata.chunk_count == len(nodes) - 1

    def test_fixture_node_ids(self, builder: NodeBuilder) -> None:
        raw = (FIXTURES_DIR / "two_chapters.txt").read_text(encoding="utf-8")
        records = StructuralParser().parse(TextNormalizer().normalize(raw))
        nodes = builder.build(records)

        assert [n.id for n in nodes] == [
            "chapter_1_intro",
            "chapter_1_verse_2_original",
            "chapter_1_verse_2_translation",
            "chapter_1_verse_2_commentary",
            "chapter_2_intro",
            "chapter_2_verse_47_original",
            "chapter_2_verse_47_translation",
        ]

    def test_ids_stable_and_unique(self, builder: NodeBuilder) -> None:
        records = [
            ChapterIntro(chapter_number=1, title="Armies"),
            Verse(chapter_number=1, verse_number=2, translation="Sanjaya said.", commentary=_long_commentary()),
            Verse(chapter_number=1, verse_number=3, translation="O my teacher."),
        ]
        first = [n.id for n in builder.build(records)]
        second = [n.id for n in builder.build(records)]

        assert first == second
        assert len(set(first)) == len(first)
