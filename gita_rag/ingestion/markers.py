"""Canonical section-marker table shared by the normalizer and the parser."""

import re
from dataclasses import dataclass
from enum import Enum


class MarkerKind(str, Enum):
    CHAPTER = "chapter"
    VERSE = "verse"
    TRANSLATION = "translation"
    COMMENTARY = "commentary"


@dataclass(frozen=True)
class MarkerPattern:
    """A recognized marker variant. Lower priority values are tried first."""

    kind: MarkerKind
    priority: int
    regex: re.Pattern[str]


@dataclass(frozen=True)
class MarkerMatch:
    kind: MarkerKind
    number: int | None = None
    trailing: str = ""  # text after the marker on the same line


_ROMAN_VALUES = {"I": 1, "V": 5, "X": 10, "L": 50, "C": 100}
SENTENCE_ENDINGS = (".", "!", "?", ",", ";")

# Each marker kind may appear in several typographic variants across editions.
# Whole-line anchors keep prose that merely mentions "translation" from
# switching state.
MARKER_PATTERNS: list[MarkerPattern] = sorted(
    [
        MarkerPattern(
            MarkerKind.CHAPTER, 0,
            re.compile(r"^\s*CHAPTER\s+(\d{1,2})\b[\s.:\-]*(.{0,80})$", re.IGNORECASE),
        ),
        MarkerPattern(
            MarkerKind.CHAPTER, 1,
            re.compile(r"^\s*CHAPTER\s+([IVXL]{1,7})\b[\s.:\-]*(.{0,80})$"),
        ),
        MarkerPattern(
            MarkerKind.VERSE, 10,
            re.compile(r"^\s*TEXTS?\s+(\d{1,3})(?:\s*-\s*\d{1,3})?\s*$", re.IGNORECASE),
        ),
        MarkerPattern(
            MarkerKind.VERSE, 11,
            re.compile(r"^\s*Verse\s+(\d{1,3})(?:\s*-\s*\d{1,3})?\s*[.:]?\s*$", re.IGNORECASE),
        ),
        MarkerPattern(
            MarkerKind.TRANSLATION, 20,
            re.compile(r"^\s*TRANSLATION\s*:?\s*$", re.IGNORECASE),
        ),
        MarkerPattern(
            MarkerKind.COMMENTARY, 30,
            re.compile(r"^\s*PURPORT\s*:?\s*$", re.IGNORECASE),
        ),
        MarkerPattern(
            MarkerKind.COMMENTARY, 31,
            re.compile(r"^\s*COMMENTARY\s*:?\s*$", re.IGNORECASE),
        ),
    ],
    key=lambda p: p.priority,
)


def roman_to_int(numeral: str) -> int:
    """Convert a roman numeral (I..LXXX range is enough for chapters)."""
    total = 0
    previous = 0
    for char in reversed(numeral.upper()):
        value = _ROMAN_VALUES[char]
        if value < previous:
            total -= value
        else:
            total += value
            previous = value
    return total


def _parse_number(raw: str) -> int:
    return int(raw) if raw.isdigit() else roman_to_int(raw)


def _is_heading_tail(line: str, trailing: str) -> bool:
    """Tell a chapter title apart from wrapped prose that starts with "Chapter N".

    Prose continues in lowercase or ends a sentence; a title does neither. An
    all-caps CHAPTER keyword is typeset as a heading, so its title may end
    with a period.
    """
    if not trailing:
        return True
    if trailing[0].islower():
        return False
    if line.lstrip()[:7].isupper():
        return True
    return not trailing.endswith(SENTENCE_ENDINGS)


def match_marker(line: str) -> MarkerMatch | None:
    """Classify a line against the marker table, highest priority first.

    Args:
        line: A single line of normalized text.

    Returns:
        The first matching marker, or None for a plain content line.
    """
    for pattern in MARKER_PATTERNS:
        match = pattern.regex.match(line)
        if not match:
            continue
        groups = match.groups()
        number = _parse_number(groups[0]) if groups else None
        trailing = groups[1].strip() if len(groups) > 1 and groups[1] else ""
        if pattern.kind == MarkerKind.CHAPTER and not _is_heading_tail(line, trailing):
            continue
        return MarkerMatch(kind=pattern.kind, number=number, trailing=trailing)
    return None


def is_marker_line(line: str) -> bool:
    return match_marker(line) is not None
