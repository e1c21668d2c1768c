"""Retrieval-augmented transcript correction.

Embeds a transcript, retrieves the closest glossary terms from the
vector index, and asks the corrector to rewrite the transcript using
those terms as reference. Each stage runs to completion before the next
begins; the first failure aborts the whole run with a stage-tagged error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from asr_rag.errors import Stage, StageContext
from asr_rag.llm.base import Corrector, Embedder, GroundingTerm
from asr_rag.logging import get_logger, log_operation
from asr_rag.vector.base import SearchResult, VectorIndex

logger = get_logger(__name__)

DEFAULT_SEARCH_LIMIT = 5
DEFAULT_CORRECTION_LIMIT = 10


@dataclass
class CorrectionResult:
    """Outcome of a correction run.

    Attributes:
        raw_text: Transcript as received
        terms: Grounding terms sent to the corrector, most similar first
        corrected_text: Corrector output, verbatim
    """

    raw_text: str
    corrected_text: str
    terms: list[SearchResult] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.raw_text != self.corrected_text

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "raw_text": self.raw_text,
            "corrected_text": self.corrected_text,
            "changed": self.changed,
            "terms": [t.to_dict() for t in self.terms],
        }


def build_grounding_context(results: list[SearchResult]) -> list[GroundingTerm]:
    """Map ranked search results to corrector terms, keeping their order."""
    return [r.to_grounding_term() for r in results]


class CorrectionPipeline:
    """Embeds text, retrieves the top-k terms and asks the corrector to fix it.

    The pipeline holds no state of its own; it only sequences calls to
    the gateways it was given.
    """

    def __init__(
        self,
        embedder: Embedder,
        index: VectorIndex,
        corrector: Corrector | None = None,
        correction_limit: int = DEFAULT_CORRECTION_LIMIT,
    ):
        """Initialize the pipeline.

        Args:
            embedder: Text embedding gateway
            index: Vector index holding the glossary
            corrector: Correction gateway; only needed for correct_transcript
            correction_limit: How many terms to retrieve as grounding context
        """
        self.embedder = embedder
        self.index = index
        self.corrector = corrector
        self.correction_limit = correction_limit

    def _retrieve(self, text: str, k: int) -> list[SearchResult]:
        with StageContext(Stage.EMBED, model=self.embedder.model):
            vector = self.embedder.embed(text)

        with StageContext(Stage.RETRIEVE, collection=self.index.collection_name, k=k):
            return self.index.query(vector, k)

    def search_terms(self, query: str, k: int = DEFAULT_SEARCH_LIMIT) -> list[SearchResult]:
        """Find the glossary terms most similar to a query.

        Args:
            query: Search phrase
            k: Maximum number of results

        Returns:
            Results ordered by descending score
        """
        results = self._retrieve(query, k)
        logger.info(f"Search returned {len(results)} terms", extra={"k": k})
        return results

    def correct_transcript(self, raw_text: str) -> CorrectionResult:
        """Correct misheard jargon in a transcript.

        An empty retrieval is not an error: the corrector is still called,
        just without reference terms.

        Args:
            raw_text: Transcript to correct

        Returns:
            CorrectionResult with the grounding terms and corrected text
        """
        if self.corrector is None:
            raise RuntimeError("correct_transcript requires a corrector")

        with log_operation(logger, "correct transcript", chars=len(raw_text)) as outcome:
            results = self._retrieve(raw_text, self.correction_limit)
            if not results:
                logger.warning("No reference terms retrieved; correcting without grounding")

            context = build_grounding_context(results)
            outcome["terms"] = len(context)

            with StageContext(Stage.CORRECT, model=self.corrector.model, terms=len(context)):
                corrected = self.corrector.correct(raw_text, context)

        return CorrectionResult(raw_text=raw_text, corrected_text=corrected, terms=results)
