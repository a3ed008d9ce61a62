"""Boundary-aware chunker for oversized commentary and content blocks."""

import logging
import re
from dataclasses import dataclass

from gita_rag.config import ChunkingConfig

logger = logging.getLogger(__name__)

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+(?=[A-Z\"'])")
CLAUSE_BREAK = re.compile(r"(?<=,)\s+")
SENTENCE_END = re.compile(r"[.!?](?=\s)")
WHITESPACE = re.compile(r"\s")

# "Chapter 2, Verse 47 (Purport):" style references at the head of a block
CONTEXT_MARKER = re.compile(
    r"^((?:Chapter|CHAPTER)\s+\d+(?:,\s*(?:Verse|TEXT)\s+\d+)?(?:\s*\([^)\n]{1,40}\))?:)\s*"
)

TERMINAL_PUNCTUATION = ".!?"
CLOSING_QUOTES = "\"')"


@dataclass
class Segment:
    text: str
    joiner: str = " "  # separator placed before this segment inside a fragment


def ensure_terminal(fragment: str) -> str:
    """Trim a fragment and make it end in terminal punctuation.

    A missing period is appended after whatever character ends the fragment,
    so no source text is lost and the result is at most one character longer.
    """
    fragment = fragment.strip()
    if not fragment:
        return fragment
    if fragment[-1] in TERMINAL_PUNCTUATION:
        return fragment
    if fragment[-1] in CLOSING_QUOTES and len(fragment) > 1 and fragment[-2] in TERMINAL_PUNCTUATION:
        return fragment
    return fragment + "."


class SemanticChunker:
    """Splits a long text block into bounded fragments at natural boundaries.

    Boundary preference: paragraphs, then sentences, then comma clauses,
    and finally a hard split inside the trailing part of the window.

    Args:
        config: ChunkingConfig with max_chars and the split ratios.
    """

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self._config = config or ChunkingConfig()

    @property
    def max_chars(self) -> int:
        return self._config.max_chars

    def split(self, text: str) -> list[str]:
        """Split a text block into fragments no longer than ``max_chars``.

        Args:
            text: The block to split, e.g. a verse commentary.

        Returns:
            Fragments in order, each trimmed and ending in terminal
            punctuation. A block that already fits yields one fragment.
        """
        text = text.strip()
        if not text:
            return []

        whole = ensure_terminal(text)
        if len(whole) <= self.max_chars:
            return [whole]

        # One character of headroom for an appended period
        limit = self.max_chars - 1
        marker, body = self._split_context_marker(text)
        segments = self._segment(body, limit)
        fragments = self._pack(segments, limit, marker)

        result = [ensure_terminal(f) for f in fragments if f.strip()]
        logger.debug("Split %d chars into %d fragments", len(text), len(result))
        return result

    def _split_context_marker(self, text: str) -> tuple[str, str]:
        match = CONTEXT_MARKER.match(text)
        if not match:
            return "", text
        marker = match.group(1)
        if len(marker) > self.max_chars * self._config.context_marker_ratio:
            return "", text
        return marker, text[match.end():]

    # ── Segmentation ────────────────────────────────────────────────────

    def _segment(self, body: str, limit: int) -> list[Segment]:
        paragraphs = [p.strip() for p in PARAGRAPH_BREAK.split(body) if p.strip()]
        sentence_threshold = self.max_chars * self._config.sentence_split_ratio
        segments: list[Segment] = []

        for paragraph in paragraphs:
            joiner = "\n\n" if segments else " "
            if len(paragraphs) > 1 and len(paragraph) <= limit:
                segments.append(Segment(paragraph, joiner))
                continue

            for sentence in SENTENCE_BREAK.split(paragraph):
                sentence = sentence.strip()
                if not sentence:
                    continue
                pieces = (
                    self._split_clauses(sentence, limit)
                    if len(sentence) > sentence_threshold
                    else [sentence]
                )
                for piece in pieces:
                    segments.append(Segment(piece, joiner))
                    joiner = " "
        return segments

    def _split_clauses(self, sentence: str, limit: int) -> list[str]:
        """Split on commas, then greedily recombine clauses up to the budget."""
        clauses = [c for c in CLAUSE_BREAK.split(sentence) if c]
        combined: list[str] = []
        current = ""
        for clause in clauses:
            if current and len(current) + 1 + len(clause) <= limit:
                current = f"{current} {clause}"
            else:
                if current:
                    combined.append(current)
                current = clause
        if current:
            combined.append(current)
        return combined

    # ── Packing ─────────────────────────────────────────────────────────

    def _pack(self, segments: list[Segment], limit: int, marker: str) -> list[str]:
        fragments: list[str] = []
        current = marker

        for segment in segments:
            pieces = self._hard_split(segment.text, limit) if len(segment.text) > limit else [segment.text]
            for i, piece in enumerate(pieces):
                joiner = segment.joiner if i == 0 else " "
                if not current:
                    current = piece
                elif len(current) + len(joiner) + len(piece) <= limit:
                    current = f"{current}{joiner}{piece}"
                elif current == marker and not fragments:
                    # Keep the reference attached to the start of the text
                    head, tail = self._hard_split_once(piece, limit - len(current) - 1)
                    fragments.append(f"{current} {head}")
                    current = tail
                else:
                    fragments.append(current)
                    current = piece

        if current:
            fragments.append(current)
        return fragments

    def _hard_split(self, text: str, window: int) -> list[str]:
        pieces: list[str] = []
        while len(text) > window:
            head, text = self._hard_split_once(text, window)
            pieces.append(head)
        if text:
            pieces.append(text)
        return pieces

    def _hard_split_once(self, text: str, window: int) -> tuple[str, str]:
        """Cut at the best boundary in the trailing part of the window.

        Prefers the last sentence end, then the last whitespace, found no
        earlier than ``1 - hard_split_search_ratio`` into the window.
        """
        if len(text) <= window:
            return text, ""
        window = max(window, 1)
        segment = text[:window]
        earliest = int(window * (1 - self._config.hard_split_search_ratio))

        cut = -1
        for match in SENTENCE_END.finditer(segment):
            if match.end() >= earliest:
                cut = match.end()
        if cut == -1:
            for match in WHITESPACE.finditer(segment):
                if match.start() >= earliest:
                    cut = match.start()
        if cut <= 0:
            cut = window
        return text[:cut].rstrip(), text[cut:].lstrip()
