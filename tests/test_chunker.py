"""Tests for the boundary-aware semantic chunker."""

import re

import pytest

from gita_rag.config import ChunkingConfig
from gita_rag.ingestion.chunker import SemanticChunker, ensure_terminal


@pytest.fixture
def chunker() -> SemanticChunker:
    return SemanticChunker(ChunkingConfig(max_chars=200))


def _words(text: str) -> list[str]:
    return re.findall(r"\w+", text)


def _assert_bounded(fragments: list[str], max_chars: int) -> None:
    assert len(fragments) >= 2
    for fragment in fragments:
        assert len(fragment) <= max_chars
        assert fragment[-1] in ".!?\"')"


# ── Terminal punctuation ─────────────────────────────────────────────────────


class TestEnsureTerminal:
    def test_period_appended(self) -> None:
        assert ensure_terminal("the soul is eternal") == "the soul is eternal."

    def test_trailing_comma_kept(self) -> None:
        assert ensure_terminal("giving up old garments, ") == "giving up old garments,."

    def test_trailing_dash_kept(self) -> None:
        assert ensure_terminal("the field of dharma -") == "the field of dharma -."

    def test_terminal_kept(self) -> None:
        assert ensure_terminal("Why do you grieve?") == "Why do you grieve?"

    def test_quoted_sentence_kept(self) -> None:
        assert ensure_terminal('Krishna said, "Fight."') == 'Krishna said, "Fight."'

    def test_empty(self) -> None:
        assert ensure_terminal("   ") == ""


# ── Splitting ────────────────────────────────────────────────────────────────


class TestSemanticChunker:
    def test_short_text_single_fragment(self, chunker: SemanticChunker) -> None:
        assert chunker.split("  The self is unborn  ") == ["The self is unborn."]

    def test_empty_text(self, chunker: SemanticChunker) -> None:
        assert chunker.split("") == []
        assert chunker.split(" \n ") == []

    def test_paragraph_boundaries(self, chunker: SemanticChunker) -> None:
        paragraphs = [
            f"Paragraph {i} explains how the embodied soul passes through the body." for i in range(6)
        ]
        text = "\n\n".join(paragraphs)
        fragments = chunker.split(text)

        _assert_bounded(fragments, 200)
        assert _words(" ".join(fragments)) == _words(text)
        # No paragraph is cut in the middle
        for paragraph in paragraphs:
            assert any(paragraph in fragment for fragment in fragments)

    def test_sentence_boundaries(self, chunker: SemanticChunker) -> None:
        text = " ".join(f"Sentence {i} says the soul cannot be slain by weapons." for i in range(10))
        fragments = chunker.split(text)

        _assert_bounded(fragments, 200)
        assert _words(" ".join(fragments)) == _words(text)
        assert all(fragment.startswith("Sentence") for fragment in fragments)

    def test_clause_boundaries(self, chunker: SemanticChunker) -> None:
        clauses = [f"clause number {i} about duty and devotion" for i in range(12)]
        text = ", ".join(clauses) + "."
        fragments = chunker.split(text)

        _assert_bounded(fragments, 200)
        assert _words(" ".join(fragments)) == _words(text)
        assert all("," not in fragment[-1] for fragment in fragments)

    def test_hard_split_without_punctuation(self, chunker: SemanticChunker) -> None:
        text = " ".join(f"word{i}" for i in range(120))
        fragments = chunker.split(text)

        _assert_bounded(fragments, 200)
        assert _words(" ".join(fragments)) == _words(text)

    def test_context_marker_kept_with_first_fragment(self, chunker: SemanticChunker) -> None:
        body = " ".join(f"Sentence {i} of the purport explains detachment." for i in range(8))
        text = f"Chapter 2, Verse 47 (Purport): {body}"
        fragments = chunker.split(text)

        _assert_bounded(fragments, 200)
        assert fragments[0].startswith("Chapter 2, Verse 47 (Purport): Sentence 0")
        assert _words(" ".join(fragments)) == _words(text)

    def test_default_budget(self) -> None:
        chunker = SemanticChunker()
        text = "\n\n".join("A long purport paragraph about action and inaction. " * 6 for _ in range(5))
        fragments = chunker.split(text)

        _assert_bounded(fragments, 1000)
        assert chunker.max_chars == 1000
