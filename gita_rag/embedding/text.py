"""Canonicalization applied to every text before it is embedded."""

import re

# Spelling variants of recurring names, collapsed so that equivalent texts
# share a cache entry and land close together in vector space.
VOCABULARY_STANDARDIZATIONS: dict[str, str] = {
    "Bhagavad-gita": "Bhagavad Gita",
    "Bhagavad-Gita": "Bhagavad Gita",
    "Bhagavad-gétä": "Bhagavad Gita",
    "Bhagavad-Gétä": "Bhagavad Gita",
    "Bhagavadgita": "Bhagavad Gita",
    "Çrémad-Bhägavatam": "Srimad Bhagavatam",
    "Çrémad Bhägavatam": "Srimad Bhagavatam",
    "Srimad-Bhagavatam": "Srimad Bhagavatam",
    "Çré Kåñëa": "Sri Krishna",
    "Kåñëa": "Krishna",
    "Krsna": "Krishna",
}


def canonicalize(text: str, table: dict[str, str] | None = None) -> str:
    """Collapse whitespace and apply the vocabulary standardization table.

    Args:
        text: Text about to be embedded.
        table: Replacement table. Defaults to VOCABULARY_STANDARDIZATIONS.

    Returns:
        The canonical text; empty if the input held no visible characters.
    """
    table = VOCABULARY_STANDARDIZATIONS if table is None else table
    canonical = re.sub(r"\s+", " ", text).strip()
    for source, target in table.items():
        canonical = canonical.replace(source, target)
    return canonical
