"""Vector collection schema and indexing report models."""

from pydantic import BaseModel, Field


class CollectionSchema(BaseModel):
    """Shape of a vector collection; changing it requires recreation."""

    name: str
    dimension: int
    distance_metric: str
    quantization_enabled: bool = False
    points_count: int | None = None


class IndexingReport(BaseModel):
    """Running tally of a bulk upsert."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    batch_messages: list[str] = Field(default_factory=list)

    def merge(self, other: "IndexingReport") -> None:
        self.total += other.total
        self.succeeded += other.succeeded
        self.failed += other.failed
        self.batch_messages.extend(other.batch_messages)
