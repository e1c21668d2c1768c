"""Corpus seeding.

Embeds every glossary entry and upserts it into the vector index. Each
entry's id is its position in the corpus, so re-running with the same
corpus overwrites the same records and converges on the same state.
Seeding is not transactional: entries written before a failure stay.
"""

from __future__ import annotations

from typing import Callable, Sequence

from asr_rag.config import CorpusEntry
from asr_rag.errors import Stage, StageContext
from asr_rag.llm.base import Embedder
from asr_rag.logging import get_logger, log_operation
from asr_rag.vector.base import VectorIndex

logger = get_logger(__name__)

SeedCallback = Callable[[int, CorpusEntry], None]


def seed_corpus(
    entries: Sequence[CorpusEntry],
    embedder: Embedder,
    index: VectorIndex,
    on_seeded: SeedCallback | None = None,
) -> int:
    """Embed and store every corpus entry, in order.

    Args:
        entries: Corpus entries; position defines the id
        embedder: Embedding gateway
        index: Vector index to populate
        on_seeded: Called with (id, entry) after each confirmed write

    Returns:
        Number of entries seeded

    Raises:
        AsrRagError: On the first failing embed or upsert, tagged with its stage
    """
    with log_operation(logger, "seed corpus", collection=index.collection_name, entries=len(entries)) as outcome:
        with StageContext(Stage.ENSURE_COLLECTION, collection=index.collection_name):
            outcome["created"] = index.ensure_collection()

        for point_id, entry in enumerate(entries):
            with StageContext(Stage.EMBED, term=entry.term):
                vector = embedder.embed(entry.embedding_text)

            with StageContext(Stage.UPSERT, term=entry.term, point_id=point_id):
                index.upsert(point_id, vector, entry.term, entry.definition)

            if on_seeded:
                on_seeded(point_id, entry)

    return len(entries)
