"""Query-time data models."""

from pydantic import BaseModel, Field

from gita_rag.models.node import NodeMetadata


class RetrievalResult(BaseModel):
    """A single retrieved node with its relevance score."""

    content: str
    metadata: NodeMetadata
    score: float


class Source(BaseModel):
    """A citable source shown alongside an answer."""

    excerpt: str
    metadata: NodeMetadata
    score: float
    reference: str


class QueryAnswer(BaseModel):
    """The answer returned to the surrounding system."""

    answer: str
    sources: list[Source] = Field(default_factory=list)


class HealthReport(BaseModel):
    """Snapshot of collaborator availability."""

    vector_store_available: bool
    point_count: int = 0
    collection: dict | None = None
    generator_configured: bool = False
    translator_configured: bool = False
    embedding_model: str = ""
    embedding_stats: dict[str, int] = Field(default_factory=dict)
