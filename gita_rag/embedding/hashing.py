"""Statistical fallback embedding: TF-IDF weights hashed into a fixed vector."""

import hashlib
import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field

import numpy as np

logger = logging.getLogger(__name__)

# Sanskrit concepts and the plain-English words a reader would use for them
CONCEPT_MAPPINGS: dict[str, list[str]] = {
    "karma": ["action", "deed", "work", "consequence", "causality", "fate"],
    "dharma": ["duty", "righteousness", "virtue", "morality", "law", "teaching"],
    "bhakti": ["devotion", "worship", "love", "dedication", "faith"],
    "yoga": ["union", "discipline", "practice", "meditation", "path"],
    "moksha": ["liberation", "freedom", "release", "enlightenment", "salvation"],
    "atman": ["soul", "self", "spirit", "essence", "consciousness"],
    "brahman": ["absolute", "ultimate", "divine", "supreme", "godhead"],
    "maya": ["illusion", "delusion", "appearance", "manifestation"],
    "guna": ["quality", "property", "attribute", "nature", "tendency"],
    "arjuna": ["warrior", "disciple", "student", "seeker"],
    "krishna": ["divine", "god", "teacher", "guide", "supreme"],
    "gita": ["scripture", "text", "teaching", "wisdom", "discourse"],
}

SYNONYMS_PER_CONCEPT = 3


@dataclass
class VocabularyStats:
    """Document frequencies shared by every text a backend instance has seen."""

    document_frequency: Counter = field(default_factory=Counter)
    document_count: int = 0

    def observe(self, tokens: list[str]) -> None:
        self.document_frequency.update(set(tokens))
        self.document_count += 1

    def idf(self, token: str) -> float:
        df = self.document_frequency.get(token, 1)
        return math.log((self.document_count + 1) / (df + 0.5))


def expand_concepts(text: str, mappings: dict[str, list[str]] | None = None) -> str:
    """Append English synonyms for every Sanskrit concept mentioned in text."""
    mappings = CONCEPT_MAPPINGS if mappings is None else mappings
    extra = [
        " ".join(synonyms[:SYNONYMS_PER_CONCEPT])
        for concept, synonyms in mappings.items()
        if re.search(rf"\b{re.escape(concept)}\b", text, re.IGNORECASE)
    ]
    return " ".join([text, *extra]) if extra else text


def tokenize(text: str) -> list[str]:
    """Lowercased words followed by their bigrams and trigrams."""
    words = re.sub(r"[^\w\s]", " ", text.lower()).split()
    bigrams = [f"{a}_{b}" for a, b in zip(words, words[1:])]
    trigrams = [f"{a}_{b}_{c}" for a, b, c in zip(words, words[1:], words[2:])]
    return words + bigrams + trigrams


def token_positions(token: str, dimensions: int) -> list[int]:
    digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
    count = max(3, min(20, len(token)))
    return [int(digest[i * 2:i * 2 + 4], 16) % dimensions for i in range(count)]


class HashingEmbeddingBackend:
    """Deterministic local embedding used when no embedding API is configured.

    Every embedded text updates the injected VocabularyStats before it is
    weighted, so two instances with separate stats never interfere.

    Args:
        dimensions: Output vector length.
        stats: Vocabulary statistics owned by this backend's service.
        update_vocabulary: Whether embedding a text counts it as a document.
    """

    def __init__(
        self,
        dimensions: int = 768,
        stats: VocabularyStats | None = None,
        update_vocabulary: bool = True,
    ) -> None:
        self.model_id = f"hashing-tfidf-{dimensions}"
        self.dimensions = dimensions
        self.stats = stats if stats is not None else VocabularyStats()
        self._update_vocabulary = update_vocabulary

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_one(text) for text in texts]

    def embed_one(self, text: str) -> list[float]:
        tokens = tokenize(expand_concepts(text))
        if self._update_vocabulary:
            self.stats.observe(tokens)

        vector = np.zeros(self.dimensions, dtype=np.float64)
        if tokens:
            for token, frequency in Counter(tokens).items():
                weight = (frequency / len(tokens)) * self.stats.idf(token)
                for position in token_positions(token, self.dimensions):
                    vector[position] += weight

        norm = np.linalg.norm(vector)
        if norm == 0:
            # Degenerate text: a stable one-hot vector keeps it searchable
            vector[token_positions(text or " ", self.dimensions)[0]] = 1.0
            return vector.tolist()
        return (vector / norm).tolist()
