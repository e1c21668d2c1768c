"""Qdrant-backed term index.

Stores glossary terms as Qdrant points: integer id, dense vector, and a
payload with `term` and `definition`. Uses cosine distance.
"""

from __future__ import annotations

import math
from typing import Any, Sequence
from urllib.parse import urlparse

from qdrant_client import QdrantClient
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from qdrant_client.models import Distance, PointStruct, VectorParams

from asr_rag.errors import (
    CollectionNotFoundError,
    DecodeError,
    RemoteStatusError,
    TransportError,
    ValidationError,
)
from asr_rag.logging import get_logger
from asr_rag.vector.base import SearchResult, VectorIndex

logger = get_logger(__name__)

IN_MEMORY = ":memory:"


def connect(url: str, timeout: float | None = None) -> QdrantClient:
    """Open a Qdrant client for a URL, a "host:port" address, or ":memory:".

    Raises:
        ValidationError: If the address cannot be parsed
    """
    if url == IN_MEMORY:
        return QdrantClient(IN_MEMORY)

    # The client takes whole seconds
    timeout_s = math.ceil(timeout) if timeout else None

    if urlparse(url).scheme in ("http", "https"):
        return QdrantClient(url=url, timeout=timeout_s)

    host, sep, port_str = url.rpartition(":")
    if not sep or not host:
        raise ValidationError(f"Invalid Qdrant address '{url}', expected host:port")
    try:
        port = int(port_str)
    except ValueError as e:
        raise ValidationError(f"Invalid Qdrant port '{port_str}'") from e

    return QdrantClient(host=host, port=port, timeout=timeout_s)


class QdrantTermIndex(VectorIndex):
    """Vector index over a single Qdrant collection.

    Example:
        with QdrantTermIndex("http://localhost:6333", "go_terms", 768) as index:
            index.ensure_collection()
            index.upsert(0, vector, "goroutine", "a lightweight thread")
            hits = index.query(vector, k=5)
    """

    def __init__(
        self,
        url: str,
        collection_name: str = "go_terms",
        dimension: int = 768,
        timeout: float | None = None,
        client: QdrantClient | None = None,
    ):
        """Initialize the index.

        Args:
            url: Qdrant URL, "host:port", or ":memory:"
            collection_name: Name of the collection this index owns
            dimension: Vector dimensionality of the collection
            timeout: Request timeout in seconds
            client: Pre-built client, used instead of connecting to `url`
        """
        if dimension <= 0:
            raise ValidationError("dimension must be > 0")

        self.url = url
        self._collection_name = collection_name
        self._dimension = dimension
        self._client = client or connect(url, timeout)
        self._closed = False

    @property
    def collection_name(self) -> str:
        return self._collection_name

    @property
    def dimension(self) -> int:
        return self._dimension

    def _call(self, operation: str, fn: Any, *args: Any, **kwargs: Any) -> Any:
        """Run a client call, translating client exceptions into ours."""
        try:
            return fn(*args, **kwargs)
        except UnexpectedResponse as e:
            body = e.content.decode("utf-8", errors="replace") if e.content else ""
            if e.status_code == 404:
                raise CollectionNotFoundError(self._collection_name) from e
            raise RemoteStatusError(
                f"Qdrant {operation} status {e.status_code}: {body or e.reason_phrase}",
                status=e.status_code,
                body=body,
            ) from e
        except ResponseHandlingException as e:
            raise TransportError(f"Qdrant {operation} failed at {self.url}: {e}") from e
        except (ConnectionError, TimeoutError) as e:
            raise TransportError(f"Qdrant {operation} failed at {self.url}: {e}") from e
        except ValueError as e:
            # The in-process client reports missing collections this way
            if "not found" in str(e).lower():
                raise CollectionNotFoundError(self._collection_name) from e
            raise

    def _check_vector(self, vector: Sequence[float]) -> list[float]:
        if len(vector) != self._dimension:
            raise ValidationError(
                f"Vector has {len(vector)} dimensions, collection "
                f"'{self._collection_name}' expects {self._dimension}",
                context={"collection": self._collection_name},
            )
        return [float(value) for value in vector]

    def list_collections(self) -> list[str]:
        """Names of all collections in the store."""
        response = self._call("list collections", self._client.get_collections)
        return [c.name for c in response.collections]

    def _existing_dimension(self) -> int | None:
        info = self._call("get collection", self._client.get_collection, self._collection_name)
        vectors = info.config.params.vectors
        size = getattr(vectors, "size", None)
        if size is None and isinstance(vectors, dict) and len(vectors) == 1:
            size = getattr(next(iter(vectors.values())), "size", None)
        return size

    def ensure_collection(self) -> bool:
        if self._collection_name in self.list_collections():
            existing = self._existing_dimension()
            if existing is not None and existing != self._dimension:
                raise ValidationError(
                    f"Collection '{self._collection_name}' has {existing}-dimensional vectors "
                    f"but the embedding model produces {self._dimension}; "
                    "recreate the collection or change embedding_dimension",
                    context={"collection": self._collection_name},
                )
            logger.debug(f"Collection exists: {self._collection_name}")
            return False

        self._call(
            "create collection",
            self._client.create_collection,
            collection_name=self._collection_name,
            vectors_config=VectorParams(size=self._dimension, distance=Distance.COSINE),
        )
        logger.info(
            f"Created collection: {self._collection_name}",
            extra={"dimension": self._dimension},
        )
        return True

    def upsert(self, point_id: int, vector: Sequence[float], term: str, definition: str) -> None:
        if point_id < 0:
            raise ValidationError(f"Point id must be unsigned, got {point_id}")

        point = PointStruct(
            id=point_id,
            vector=self._check_vector(vector),
            payload={"term": term, "definition": definition},
        )
        self._call(
            "upsert",
            self._client.upsert,
            collection_name=self._collection_name,
            points=[point],
            wait=True,
        )

    def query(self, vector: Sequence[float], k: int) -> list[SearchResult]:
        if k < 1:
            raise ValidationError(f"k must be a positive integer, got {k}")

        response = self._call(
            "query",
            self._client.query_points,
            collection_name=self._collection_name,
            query=self._check_vector(vector),
            limit=k,
            with_payload=True,
        )

        results = []
        for point in response.points:
            payload = point.payload or {}
            try:
                results.append(SearchResult(
                    term=str(payload["term"]),
                    definition=str(payload["definition"]),
                    score=float(point.score),
                ))
            except KeyError as e:
                raise DecodeError(
                    f"Point {point.id} in '{self._collection_name}' is missing payload field {e}"
                ) from e

        return results

    def count(self) -> int:
        response = self._call(
            "count",
            self._client.count,
            collection_name=self._collection_name,
            exact=True,
        )
        return response.count

    def is_available(self) -> bool:
        """Check if the store answers a collection listing."""
        try:
            self.list_collections()
            return True
        except (TransportError, RemoteStatusError):
            return False

    def close(self) -> None:
        if not self._closed:
            self._client.close()
            self._closed = True
