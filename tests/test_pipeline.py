"""Tests for the correction pipeline."""

import logging

import pytest

from asr_rag.errors import (
    DecodeError,
    EmptyResultError,
    RemoteStatusError,
    Stage,
    TransportError,
)
from asr_rag.llm.base import GroundingTerm
from asr_rag.pipeline import CorrectionPipeline, CorrectionResult, build_grounding_context
from asr_rag.vector.base import SearchResult

from fakes import FakeCorrector, FakeEmbedder, FakeIndex

GOROUTINE = [1.0, 0.0, 0.0, 0.0]
CHANNEL = [0.0, 1.0, 0.0, 0.0]
DEFER = [0.0, 0.0, 1.0, 0.0]


@pytest.fixture
def index():
    idx = FakeIndex(dimension=4)
    idx.upsert(0, GOROUTINE, "goroutine", "a lightweight thread")
    idx.upsert(1, CHANNEL, "channel", "a typed conduit")
    idx.upsert(2, DEFER, "defer", "run at function return")
    return idx


@pytest.fixture
def embedder():
    return FakeEmbedder(dimension=4, vectors={
        "spawn a go routine": [0.9, 0.3, 0.0, 0.0],
        "go routine": [1.0, 0.1, 0.0, 0.0],
    })


class TestBuildGroundingContext:
    """Tests for build_grounding_context."""

    def test_preserves_order(self):
        """Test ranked order is kept."""
        results = [
            SearchResult("goroutine", "a lightweight thread", 0.9),
            SearchResult("channel", "a typed conduit", 0.4),
        ]

        assert build_grounding_context(results) == [
            GroundingTerm("goroutine", "a lightweight thread"),
            GroundingTerm("channel", "a typed conduit"),
        ]

    def test_empty(self):
        """Test empty retrieval."""
        assert build_grounding_context([]) == []


class TestSearchTerms:
    """Tests for CorrectionPipeline.search_terms."""

    def test_returns_ranked_results(self, embedder, index):
        """Test top-k ordering."""
        pipeline = CorrectionPipeline(embedder, index)

        results = pipeline.search_terms("go routine", k=2)

        assert [r.term for r in results] == ["goroutine", "channel"]
        assert index.queries == [2]

    def test_default_k(self, embedder, index):
        """Test the default search limit."""
        CorrectionPipeline(embedder, index).search_terms("go routine")

        assert index.queries == [5]

    def test_embed_failure_skips_query(self, index):
        """Test that retrieval never runs after a failed embed."""
        embedder = FakeEmbedder(error=TransportError("connection refused"))
        pipeline = CorrectionPipeline(embedder, index)

        with pytest.raises(TransportError) as exc_info:
            pipeline.search_terms("go routine")

        assert exc_info.value.stage == Stage.EMBED
        assert index.queries == []

    def test_query_failure_tagged_retrieve(self, embedder):
        """Test that index errors are tagged with the retrieve stage."""
        index = FakeIndex(error=RemoteStatusError("boom", status=500))

        with pytest.raises(RemoteStatusError) as exc_info:
            CorrectionPipeline(embedder, index).search_terms("go routine")

        assert exc_info.value.stage == Stage.RETRIEVE


class TestCorrectTranscript:
    """Tests for CorrectionPipeline.correct_transcript."""

    def test_end_to_end(self, embedder, index):
        """Test a misheard term is corrected using retrieved context."""
        corrector = FakeCorrector(replacements={"go routine": "goroutine"})
        pipeline = CorrectionPipeline(embedder, index, corrector)

        result = pipeline.correct_transcript("spawn a go routine")

        assert isinstance(result, CorrectionResult)
        assert result.raw_text == "spawn a go routine"
        assert result.corrected_text == "spawn a goroutine"
        assert result.changed is True
        assert result.terms[0].term == "goroutine"

    def test_terms_passed_in_similarity_order(self, embedder, index):
        """Test the corrector receives terms most similar first."""
        corrector = FakeCorrector()
        CorrectionPipeline(embedder, index, corrector).correct_transcript("spawn a go routine")

        transcript, terms = corrector.calls[0]
        assert transcript == "spawn a go routine"
        assert [t.name for t in terms][:2] == ["goroutine", "channel"]

    def test_uses_correction_limit(self, embedder, index):
        """Test retrieval depth for correction."""
        corrector = FakeCorrector()

        CorrectionPipeline(embedder, index, corrector).correct_transcript("spawn a go routine")
        CorrectionPipeline(embedder, index, corrector, correction_limit=2).correct_transcript("x")

        assert index.queries == [10, 2]

    def test_empty_retrieval_still_corrects(self, embedder, caplog):
        """Test the corrector runs without terms on an empty collection."""
        caplog.set_level(logging.WARNING, logger="asr_rag")
        corrector = FakeCorrector()
        pipeline = CorrectionPipeline(embedder, FakeIndex(), corrector)

        result = pipeline.correct_transcript("nothing to fix")

        assert corrector.calls == [("nothing to fix", [])]
        assert result.terms == []
        assert result.corrected_text == "nothing to fix"
        assert result.changed is False
        assert any("No reference terms" in r.getMessage() for r in caplog.records)

    def test_embed_failure_short_circuits(self, index):
        """Test no later stage runs after the embed fails."""
        embedder = FakeEmbedder(error=EmptyResultError("no vectors"))
        corrector = FakeCorrector()

        with pytest.raises(EmptyResultError) as exc_info:
            CorrectionPipeline(embedder, index, corrector).correct_transcript("x")

        assert exc_info.value.stage == Stage.EMBED
        assert index.queries == []
        assert corrector.calls == []

    def test_retrieve_failure_short_circuits(self, embedder):
        """Test the corrector is not called after a failed query."""
        index = FakeIndex(error=TransportError("down"))
        corrector = FakeCorrector()

        with pytest.raises(TransportError) as exc_info:
            CorrectionPipeline(embedder, index, corrector).correct_transcript("x")

        assert exc_info.value.stage == Stage.RETRIEVE
        assert corrector.calls == []

    def test_correct_failure_tagged(self, embedder, index):
        """Test corrector errors are tagged with the correct stage."""
        corrector = FakeCorrector(error=DecodeError("no content"))

        with pytest.raises(DecodeError) as exc_info:
            CorrectionPipeline(embedder, index, corrector).correct_transcript("x")

        assert exc_info.value.stage == Stage.CORRECT

    def test_requires_corrector(self, embedder, index):
        """Test that correction without a corrector is a programming error."""
        with pytest.raises(RuntimeError):
            CorrectionPipeline(embedder, index).correct_transcript("x")

    def test_to_dict(self):
        """Test serialization of a result."""
        result = CorrectionResult(
            raw_text="a",
            corrected_text="b",
            terms=[SearchResult("defer", "run at return", 0.5)],
        )

        assert result.to_dict() == {
            "raw_text": "a",
            "corrected_text": "b",
            "changed": True,
            "terms": [{"term": "defer", "definition": "run at return", "score": 0.5}],
        }
