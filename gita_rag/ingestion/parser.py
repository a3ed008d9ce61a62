"""Structural parser: a line-oriented state machine over normalized scripture text."""

import logging
from enum import Enum

from gita_rag.config import ParserConfig
from gita_rag.ingestion.markers import MarkerKind, MarkerMatch, match_marker
from gita_rag.models.records import ChapterIntro, ContentBlock, StructuralRecord, Verse

logger = logging.getLogger(__name__)


class ParserState(str, Enum):
    SCANNING = "scanning"
    IN_CHAPTER_INTRO = "in_chapter_intro"
    IN_VERSE_BODY = "in_verse_body"
    IN_TRANSLATION = "in_translation"
    IN_COMMENTARY = "in_commentary"


def join_lines(lines: list[str]) -> str:
    """Join buffered lines: lines within a paragraph by spaces, paragraphs by a blank line."""
    paragraphs: list[str] = []
    current: list[str] = []
    for line in lines:
        stripped = line.strip()
        if stripped:
            current.append(stripped)
        elif current:
            paragraphs.append(" ".join(current))
            current = []
    if current:
        paragraphs.append(" ".join(current))
    return "\n\n".join(paragraphs)


def fallback_chunks(text: str, window: int = 500, boundary_ratio: float = 0.7) -> list[str]:
    """Cut unstructured text into contiguous windows at natural boundaries.

    Each window ends after the last sentence end, else the last newline,
    located at least ``boundary_ratio`` into it, else at the raw window edge.
    Chunks are contiguous slices, so joining them reproduces the input
    modulo whitespace.

    Args:
        text: The text to cut.
        window: Maximum window length in characters.
        boundary_ratio: Earliest acceptable boundary position, as a fraction.

    Returns:
        Stripped, non-empty chunks in document order.
    """
    chunks: list[str] = []
    min_cut = max(int(window * boundary_ratio), 1)
    pos = 0
    while pos < len(text):
        if len(text) - pos <= window:
            cut = len(text) - pos
        else:
            segment = text[pos:pos + window]
            cut = window
            sentence_end = max(segment.rfind("."), segment.rfind("!"), segment.rfind("?"))
            newline = segment.rfind("\n")
            if sentence_end >= min_cut:
                cut = sentence_end + 1
            elif newline >= min_cut:
                cut = newline + 1
        chunk = text[pos:pos + cut].strip()
        if chunk:
            chunks.append(chunk)
        pos += cut
    return chunks


class StructuralParser:
    """Converts normalized text into chapter introductions and verses.

    Works in two passes: a title pass that collects every chapter's title
    up front, then a single forward dispatch over the lines. Marker lines
    always return to the dispatcher rather than being consumed as content
    of the current state.

    Chapter markers must increase; a repeat of the current (or an earlier)
    chapter number is treated as a running page header and skipped. Verse
    markers must increase within their chapter for the same reason, which
    also keeps node identifiers unique.

    Args:
        config: ParserConfig with title limits and fallback window settings.
    """

    def __init__(self, config: ParserConfig | None = None) -> None:
        self._config = config or ParserConfig()
        self._reset()

    def _reset(self) -> None:
        self._records: list[StructuralRecord] = []
        self._state = ParserState.SCANNING
        self._chapter = 0
        self._last_verse = 0
        self._title = ""
        self._skip_title_lines = 0
        self._intro_lines: list[str] = []
        self._verse_number: int | None = None
        self._original_lines: list[str] = []
        self._translation_lines: list[str] = []
        self._commentary_lines: list[str] = []
        self._dropped_verses = 0

    @property
    def state(self) -> ParserState:
        return self._state

    def parse(self, text: str) -> list[StructuralRecord]:
        """Parse normalized text into structural records.

        Never raises on malformed input: text without any recognized marker
        degrades to fixed-size content blocks.

        Args:
            text: Normalized scripture text.

        Returns:
            Ordered list of ChapterIntro, Verse or ContentBlock records.
        """
        self._reset()
        lines = text.split("\n")
        titles = self._collect_titles(lines)

        for index, line in enumerate(lines):
            if self._skip_title_lines:
                if line.strip():
                    self._skip_title_lines -= 1
                continue
            marker = match_marker(line)
            if marker is None:
                self._consume_content(line)
            else:
                self._dispatch(marker, index, titles)

        self._close_intro()
        self._flush_verse()

        if self._dropped_verses:
            logger.debug("Dropped %d verses without translation or commentary", self._dropped_verses)

        if not self._records:
            logger.warning("No structural markers recognized; falling back to content chunking")
            return self._fallback(text)

        logger.info(
            "Parsed %d records (%d chapters)",
            len(self._records),
            sum(1 for r in self._records if isinstance(r, ChapterIntro)),
        )
        return self._records

    # ── Title pass ──────────────────────────────────────────────────────

    def _collect_titles(self, lines: list[str]) -> dict[int, tuple[str, int]]:
        """Map each accepted chapter marker's line index to (title, lines absorbed)."""
        titles: dict[int, tuple[str, int]] = {}
        last_chapter = 0
        for index, line in enumerate(lines):
            marker = match_marker(line)
            if marker is None or marker.kind != MarkerKind.CHAPTER:
                continue
            if marker.number is None or marker.number <= last_chapter:
                continue
            last_chapter = marker.number

            parts = [marker.trailing] if marker.trailing else []
            absorbed = 0
            for following in lines[index + 1:]:
                if absorbed >= self._config.title_max_lines:
                    break
                stripped = following.strip()
                if not stripped:
                    continue
                next_marker = match_marker(stripped)
                if next_marker:
                    break
                candidate = " ".join(parts + [stripped])
                if parts and len(candidate) > self._config.title_max_chars:
                    break
                parts.append(stripped)
                absorbed += 1
            titles[index] = (" ".join(parts), absorbed)
        return titles

    # ── Main pass ───────────────────────────────────────────────────────

    def _dispatch(self, marker: MarkerMatch, index: int, titles: dict[int, tuple[str, int]]) -> None:
        if marker.kind == MarkerKind.CHAPTER:
            self._on_chapter(marker, index, titles)
        elif marker.kind == MarkerKind.VERSE:
            self._on_verse(marker)
        elif marker.kind == MarkerKind.TRANSLATION:
            if self._verse_number is None:
                logger.debug("Translation marker outside a verse ignored")
                return
            self._state = ParserState.IN_TRANSLATION
        elif marker.kind == MarkerKind.COMMENTARY:
            if self._verse_number is None:
                logger.debug("Commentary marker outside a verse ignored")
                return
            self._state = ParserState.IN_COMMENTARY

    def _on_chapter(self, marker: MarkerMatch, index: int, titles: dict[int, tuple[str, int]]) -> None:
        if index not in titles or (marker.number or 0) <= self._chapter:
            logger.debug("Skipping repeated chapter header: chapter %s", marker.number)
            return
        self._close_intro()
        self._flush_verse()
        self._chapter = marker.number or 0
        self._last_verse = 0
        self._title, self._skip_title_lines = titles[index]
        self._intro_lines = []
        self._state = ParserState.IN_CHAPTER_INTRO

    def _on_verse(self, marker: MarkerMatch) -> None:
        number = marker.number or 0
        if number <= self._last_verse:
            logger.debug(
                "Skipping non-increasing verse marker %d in chapter %d", number, self._chapter
            )
            return
        self._close_intro()
        self._flush_verse()
        if self._chapter == 0:
            self._chapter = 1
        self._last_verse = number
        self._verse_number = number
        self._state = ParserState.IN_VERSE_BODY

    def _consume_content(self, line: str) -> None:
        buffers = {
            ParserState.IN_CHAPTER_INTRO: self._intro_lines,
            ParserState.IN_VERSE_BODY: self._original_lines,
            ParserState.IN_TRANSLATION: self._translation_lines,
            ParserState.IN_COMMENTARY: self._commentary_lines,
        }
        buffer = buffers.get(self._state)
        if buffer is not None:
            buffer.append(line)

    def _close_intro(self) -> None:
        if self._state != ParserState.IN_CHAPTER_INTRO:
            return
        self._records.append(
            ChapterIntro(
                chapter_number=self._chapter,
                title=self._title,
                body=join_lines(self._intro_lines),
            )
        )
        self._intro_lines = []
        self._state = ParserState.SCANNING

    def _flush_verse(self) -> None:
        if self._verse_number is None:
            return
        verse = Verse(
            chapter_number=self._chapter,
            verse_number=self._verse_number,
            original_text=join_lines(self._original_lines),
            translation=join_lines(self._translation_lines),
            commentary=join_lines(self._commentary_lines),
        )
        if verse.has_retrievable_content:
            self._records.append(verse)
        else:
            self._dropped_verses += 1
            logger.debug(
                "Dropping verse %d.%d: no translation or commentary",
                verse.chapter_number,
                verse.verse_number,
            )
        self._verse_number = None
        self._original_lines = []
        self._translation_lines = []
        self._commentary_lines = []
        self._state = ParserState.SCANNING

    # ── Fallback ────────────────────────────────────────────────────────

    def _fallback(self, text: str) -> list[StructuralRecord]:
        chunks = fallback_chunks(
            text,
            window=self._config.fallback_window,
            boundary_ratio=self._config.fallback_boundary_ratio,
        )
        return [ContentBlock(index=i, text=chunk) for i, chunk in enumerate(chunks)]
