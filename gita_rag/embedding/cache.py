"""In-process embedding cache keyed by canonical text and model."""

import hashlib


def cache_key(canonical_text: str, model_id: str) -> str:
    digest = hashlib.sha256(canonical_text.encode("utf-8")).hexdigest()
    return f"{digest}:{model_id}"


class EmbeddingCache:
    """Maps ``sha256(canonical text):model`` to a vector.

    Entries are never evicted on their own; a content or model change
    produces a different key. ``clear`` drops everything at once.
    """

    def __init__(self) -> None:
        self._entries: dict[str, list[float]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> list[float] | None:
        vector = self._entries.get(key)
        if vector is None:
            self.misses += 1
        else:
            self.hits += 1
        return vector

    def put(self, key: str, vector: list[float]) -> None:
        self._entries[key] = vector

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> dict[str, int]:
        return {"size": len(self._entries), "hits": self.hits, "misses": self.misses}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
