"""Text normalizer: cleans raw extracted text into a canonical form."""

import logging
import re
import unicodedata
from pathlib import Path

import yaml

from gita_rag.ingestion.markers import is_marker_line

logger = logging.getLogger(__name__)

BOILERPLATE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(
        r"Copyright\s*(?:©|\(c\))\s*\d{4}\s*The Bhaktivedanta Book Trust Int['’]l\.?"
        r"\s*All Rights Reserved\.?",
        re.IGNORECASE,
    ),
]

TYPOGRAPHIC_REPLACEMENTS: dict[str, str] = {
    "“": '"',
    "”": '"',
    "„": '"',
    "‘": "'",
    "’": "'",
    "—": "-",
    "–": "-",
    "…": "...",
    " ": " ",
}

# Known artifacts of the legacy Balaram font used in the source PDF, where
# accented Latin-1 letters stand in for IAST diacritics. Proper nouns come
# first so that whole words are repaired before their letters are.
DEFAULT_SUBSTITUTIONS: dict[str, str] = {
    "Bhagavad-gétä": "Bhagavad Gita",
    "Bhagavad-Gétä": "Bhagavad Gita",
    "Bhagavad-gita": "Bhagavad Gita",
    "Bhagavad-Gita": "Bhagavad Gita",
    "Çrémad-Bhägavatam": "Srimad Bhagavatam",
    "Çrémad Bhägavatam": "Srimad Bhagavatam",
    "Çré Kåñëa": "Sri Krishna",
    "Kåñëa": "Krishna",
    "Kurukñetra": "Kurukshetra",
    "Dhåtaräñöra": "Dhritarashtra",
    "Viñëu": "Vishnu",
    "Çré": "Sri",
    "ä": "a",
    "Ä": "A",
    "é": "i",
    "É": "I",
    "ü": "u",
    "Ü": "U",
    "å": "r",
    "Å": "R",
    "ç": "s",
    "Ç": "S",
    "ñ": "s",
    "Ñ": "S",
    "ë": "n",
    "Ë": "N",
    "ö": "t",
    "Ö": "T",
    "ò": "d",
    "Ò": "D",
    "à": "m",
    "À": "M",
    "ì": "n",
    "ï": "n",
    "ù": "h",
}


def load_substitutions(path: str | Path) -> dict[str, str]:
    """Load a substitution table from a YAML mapping file.

    Args:
        path: YAML file mapping source strings to replacements.

    Returns:
        The table, in file order.

    Raises:
        ValueError: If the file does not contain a string mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Substitution file must be a mapping: {path}")
    return {str(k): str(v) for k, v in data.items()}


def _fold_latin_diacritics(text: str) -> str:
    """Replace accented Latin letters by their base letter.

    Non-Latin scripts (e.g. Devanagari) are left untouched.
    """
    out = []
    for char in text:
        if char.isascii():
            out.append(char)
            continue
        base = unicodedata.normalize("NFKD", char)[0]
        out.append(base if base.isascii() and base.isalpha() else char)
    return "".join(out)


class TextNormalizer:
    """Best-effort cleanup of raw scripture text.

    Every step is idempotent, so normalizing an already normalized text
    returns it unchanged. Unrecognized artifacts are left in place.

    Args:
        substitutions: Transliteration repair table. Defaults to
            DEFAULT_SUBSTITUTIONS.
    """

    def __init__(self, substitutions: dict[str, str] | None = None) -> None:
        self._substitutions = (
            dict(DEFAULT_SUBSTITUTIONS) if substitutions is None else dict(substitutions)
        )

    def normalize(self, text: str) -> str:
        """Normalize raw text.

        Args:
            text: Raw extracted text.

        Returns:
            The normalized text.
        """
        if not text:
            return ""

        for pattern in BOILERPLATE_PATTERNS:
            text = pattern.sub("", text)

        for source, target in TYPOGRAPHIC_REPLACEMENTS.items():
            text = text.replace(source, target)

        for source, target in self._substitutions.items():
            text = text.replace(source, target)

        text = _fold_latin_diacritics(text)

        text = text.replace("\r\n", "\n").replace("\r", "\n")

        # A line ending a sentence followed by a capitalized line starts a paragraph
        text = re.sub(r"\.[ \t]*\n(?=[A-Z\"'])", ".\n\n", text)

        text = self._isolate_markers(text)

        text = re.sub(r"[ \t]+\n", "\n", text)
        text = re.sub(r"\n{3,}", "\n\n", text)
        return text.strip()

    def _isolate_markers(self, text: str) -> str:
        """Surround every whole-line section marker with blank lines."""
        out: list[str] = []
        pad_next = False
        for line in text.split("\n"):
            if is_marker_line(line):
                if out and out[-1].strip():
                    out.append("")
                out.append(line.strip())
                pad_next = True
                continue
            if pad_next and line.strip():
                out.append("")
            pad_next = False
            out.append(line)
        return "\n".join(out)
