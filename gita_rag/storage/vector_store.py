"""Vector store adapter for a Qdrant collection of scripture nodes."""

import asyncio
import hashlib
import logging
import uuid

from pydantic import BaseModel
from qdrant_client import AsyncQdrantClient, models

from gita_rag.config import VectorStoreConfig
from gita_rag.embedding.service import EmbeddingService
from gita_rag.errors import BackendPermanentError
from gita_rag.models.collection import CollectionSchema, IndexingReport
from gita_rag.models.node import Node, NodeKind, NodeMetadata
from gita_rag.models.query_result import RetrievalResult

logger = logging.getLogger(__name__)


class SearchFilters(BaseModel):
    """Payload filter: each field matches one value, or any of a list."""

    chapter_number: int | list[int] | None = None
    verse_number: int | list[int] | None = None
    kind: NodeKind | list[NodeKind] | None = None

    def to_qdrant(self) -> models.Filter | None:
        conditions: list[models.FieldCondition] = []
        for field, value in (
            ("chapter_number", self.chapter_number),
            ("verse_number", self.verse_number),
            ("kind", self.kind),
        ):
            if value is None:
                continue
            key = f"metadata.{field}"
            if isinstance(value, list):
                values = [v.value if isinstance(v, NodeKind) else v for v in value]
                conditions.append(models.FieldCondition(key=key, match=models.MatchAny(any=values)))
            else:
                plain = value.value if isinstance(value, NodeKind) else value
                conditions.append(models.FieldCondition(key=key, match=models.MatchValue(value=plain)))
        return models.Filter(must=conditions) if conditions else None


def to_point_id(node_id: str | int) -> int | str:
    """Derive a valid Qdrant point id.

    Non-negative integers and UUID strings are used verbatim; any other
    identifier is hashed to a stable positive integer.
    """
    if isinstance(node_id, int) and node_id >= 0:
        return node_id
    text = str(node_id)
    if text.isdigit():
        return int(text)
    try:
        return str(uuid.UUID(text))
    except ValueError:
        pass
    return int(hashlib.sha256(text.encode("utf-8")).hexdigest()[:15], 16) + 1


def create_client(config: VectorStoreConfig) -> AsyncQdrantClient:
    """Build a Qdrant client: a server URL, else an on-disk local store, else in-memory."""
    if config.url:
        return AsyncQdrantClient(url=config.url, api_key=config.api_key)
    if config.location and config.location != ":memory:":
        return AsyncQdrantClient(path=config.location)
    return AsyncQdrantClient(location=":memory:")


class VectorStore:
    """Manages one named collection: schema, batched upsert, filtered search.

    The collection schema is never migrated in place. Changing the
    dimension or the distance metric requires ``recreate_collection``,
    which discards every indexed point.

    Args:
        client: Async Qdrant client.
        embeddings: Service used for node texts and query texts.
        config: VectorStoreConfig with collection name, metric and batching.
    """

    def __init__(
        self,
        client: AsyncQdrantClient,
        embeddings: EmbeddingService,
        config: VectorStoreConfig | None = None,
        min_score: float | None = None,
    ) -> None:
        self._client = client
        self._embeddings = embeddings
        self._config = config or VectorStoreConfig()
        self._min_score = min_score

    @property
    def collection_name(self) -> str:
        return self._config.collection_name

    @property
    def dimension(self) -> int:
        return self._embeddings.dimensions

    async def ensure_collection(self) -> bool:
        """Create the collection unless it already exists.

        Returns:
            True if the collection was created, False if it already existed.

        Raises:
            Exception: Whatever the client raised when creation failed.
        """
        existing = await self._client.get_collections()
        if any(c.name == self.collection_name for c in existing.collections):
            return False

        quantization = None
        if self._config.quantization_enabled:
            quantization = models.ScalarQuantization(
                scalar=models.ScalarQuantizationConfig(
                    type=models.ScalarType.INT8,
                    quantile=0.99,
                    always_ram=True,
                )
            )

        logger.info(
            "Creating collection '%s' (dim=%d, distance=%s, quantization=%s)",
            self.collection_name,
            self.dimension,
            self._config.distance,
            self._config.quantization_enabled,
        )
        try:
            await self._client.create_collection(
                collection_name=self.collection_name,
                vectors_config=models.VectorParams(
                    size=self.dimension,
                    distance=models.Distance(self._config.distance),
                ),
                quantization_config=quantization,
            )
        except Exception:
            logger.exception("Failed to create collection '%s'", self.collection_name)
            raise
        return True

    async def delete_collection(self) -> None:
        await self._client.delete_collection(collection_name=self.collection_name)
        logger.info("Deleted collection '%s'", self.collection_name)

    async def recreate_collection(self) -> None:
        """Delete and recreate the collection, discarding all points."""
        existing = await self._client.get_collections()
        if any(c.name == self.collection_name for c in existing.collections):
            await self.delete_collection()
        await self.ensure_collection()

    async def point_count(self) -> int:
        """Number of points in the collection; 0 if it cannot be read."""
        try:
            result = await self._client.count(collection_name=self.collection_name, exact=True)
        except Exception as exc:
            logger.warning("Could not count points in '%s': %s", self.collection_name, exc)
            return 0
        return result.count

    async def collection_info(self) -> CollectionSchema | None:
        """Describe the collection, or None if it does not exist."""
        try:
            info = await self._client.get_collection(collection_name=self.collection_name)
        except Exception as exc:
            logger.warning("Could not describe collection '%s': %s", self.collection_name, exc)
            return None
        vectors = info.config.params.vectors
        size = getattr(vectors, "size", self.dimension)
        distance = getattr(vectors, "distance", self._config.distance)
        return CollectionSchema(
            name=self.collection_name,
            dimension=size,
            distance_metric=str(getattr(distance, "value", distance)),
            quantization_enabled=info.config.quantization_config is not None,
            points_count=info.points_count,
        )

    async def upsert(self, nodes: list[Node]) -> IndexingReport:
        """Embed and write nodes in batches.

        Nodes with empty text, or whose embedding failed or has the wrong
        dimension, are skipped and counted as failed. A failing batch is
        recorded in the report and indexing continues with the next one.

        Args:
            nodes: Nodes to index.

        Returns:
            Tally of total, succeeded and failed nodes with per-batch messages.

        Raises:
            BackendPermanentError: If the embedding backend rejects the
                request outright, e.g. on an invalid API key.
        """
        report = IndexingReport(total=len(nodes))
        batch_size = max(self._config.upsert_batch_size, 1)
        batch_count = (len(nodes) + batch_size - 1) // batch_size

        for batch_index, start in enumerate(range(0, len(nodes), batch_size), start=1):
            if start > 0 and self._config.inter_batch_delay > 0:
                await asyncio.sleep(self._config.inter_batch_delay)
            batch = nodes[start:start + batch_size]
            succeeded, failed, message = await self._upsert_batch(batch, batch_index, batch_count)
            report.succeeded += succeeded
            report.failed += failed
            report.batch_messages.append(message)
            logger.info(message)

        logger.info(
            "Indexed %d/%d nodes into '%s' (%d failed)",
            report.succeeded,
            report.total,
            self.collection_name,
            report.failed,
        )
        return report

    async def _upsert_batch(
        self, batch: list[Node], batch_index: int, batch_count: int
    ) -> tuple[int, int, str]:
        valid = [node for node in batch if node.text.strip()]
        failed = len(batch) - len(valid)
        if not valid:
            return 0, failed, f"Batch {batch_index}/{batch_count}: no nodes with text"

        try:
            vectors = await self._embeddings.embed_batch([node.text for node in valid], strict=True)
            points: list[models.PointStruct] = []
            for node, vector in zip(valid, vectors):
                if len(vector) != self.dimension or not any(vector):
                    logger.warning("Skipping node %s: unusable embedding", node.id)
                    failed += 1
                    continue
                points.append(
                    models.PointStruct(
                        id=to_point_id(node.id),
                        vector=vector,
                        payload={
                            "text": node.text,
                            "original_id": node.id,
                            "metadata": node.metadata.model_dump(mode="json"),
                        },
                    )
                )
            if points:
                await self._client.upsert(
                    collection_name=self.collection_name, points=points, wait=True
                )
        except BackendPermanentError:
            logger.error("Batch %d/%d hit a permanent backend error; aborting", batch_index, batch_count)
            raise
        except Exception as exc:
            logger.exception("Batch %d/%d failed", batch_index, batch_count)
            return 0, len(batch), f"Batch {batch_index}/{batch_count} failed: {exc}"

        return (
            len(points),
            failed,
            f"Batch {batch_index}/{batch_count}: {len(points)} succeeded, {failed} failed",
        )

    async def search(
        self,
        query_text: str,
        limit: int = 3,
        filters: SearchFilters | None = None,
    ) -> list[RetrievalResult]:
        """Find the nodes most similar to a query.

        Args:
            query_text: Natural-language query.
            limit: Maximum number of results.
            filters: Optional payload filter on chapter, verse or kind.

        Returns:
            Results above the minimum score, highest score first.
        """
        vector = await self._embeddings.embed(query_text)
        response = await self._client.query_points(
            collection_name=self.collection_name,
            query=vector,
            limit=limit,
            query_filter=filters.to_qdrant() if filters else None,
            score_threshold=self._min_score,
            with_payload=True,
        )

        results: list[RetrievalResult] = []
        for point in response.points:
            payload = point.payload or {}
            text = payload.get("text") or ""
            if not text.strip():
                continue
            metadata = payload.get("metadata") or {}
            try:
                node_metadata = NodeMetadata.model_validate(metadata)
            except ValueError:
                logger.warning("Point %s has malformed metadata; skipping", point.id)
                continue
            results.append(RetrievalResult(content=text, metadata=node_metadata, score=point.score))

        results.sort(key=lambda r: r.score, reverse=True)
        return results
