"""Base classes for the term vector index.

A vector index owns exactly one named collection of term records, each
holding an id, a vector, and a `term`/`definition` payload. The
collection has one dimensionality and uses cosine similarity for its
whole lifetime.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence

from asr_rag.llm.base import GroundingTerm


@dataclass(frozen=True)
class SearchResult:
    """A single ranked hit from a similarity query.

    Attributes:
        term: Canonical glossary term
        definition: Definition stored with the term
        score: Cosine similarity, higher is more similar
    """

    term: str
    definition: str
    score: float

    def to_grounding_term(self) -> GroundingTerm:
        return GroundingTerm(name=self.term, definition=self.definition)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"term": self.term, "definition": self.definition, "score": self.score}


class VectorIndex(ABC):
    """Anything that can store term vectors and rank them against a query.

    Usable as a context manager; the underlying connection is released
    on exit whether or not the block raised.
    """

    @property
    @abstractmethod
    def collection_name(self) -> str:
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Vector dimensionality the collection is configured for."""
        pass

    @abstractmethod
    def ensure_collection(self) -> bool:
        """Create the collection if it does not exist.

        Safe to call any number of times.

        Returns:
            True if the collection was created, False if it already existed

        Raises:
            ValidationError: If the existing collection has another dimensionality
        """
        pass

    @abstractmethod
    def upsert(self, point_id: int, vector: Sequence[float], term: str, definition: str) -> None:
        """Insert or fully replace the record at `point_id`.

        Returns only after the store confirms the write.
        """
        pass

    @abstractmethod
    def query(self, vector: Sequence[float], k: int) -> list[SearchResult]:
        """Return up to `k` records ordered by descending similarity.

        An empty collection yields an empty list.
        """
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of records in the collection."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the underlying connection."""
        pass

    def __enter__(self) -> "VectorIndex":
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()
