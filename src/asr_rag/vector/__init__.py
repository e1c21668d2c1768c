"""Vector index for glossary terms."""

from asr_rag.vector.base import SearchResult, VectorIndex
from asr_rag.vector.qdrant import QdrantTermIndex

__all__ = [
    "SearchResult",
    "VectorIndex",
    "QdrantTermIndex",
]
