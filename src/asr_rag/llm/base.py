"""Base classes for embedding and correction gateways.

Defines the abstract interfaces the pipeline depends on, so tests can
substitute deterministic stand-ins for the network-backed providers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class GroundingTerm:
    """A glossary term handed to the corrector as reference material."""

    name: str
    definition: str


class Embedder(ABC):
    """Anything that can turn text into a fixed-length vector."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Name of the embedding model in use."""
        pass

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Embed a single piece of text.

        Args:
            text: Non-empty text to embed

        Returns:
            The embedding vector

        Raises:
            TransportError: If the service cannot be reached
            RemoteStatusError: If the service returns a failure status
            DecodeError: If the response body is malformed
            EmptyResultError: If the service returns no vectors
        """
        pass


class Corrector(ABC):
    """Anything that can rewrite a transcript given reference terms."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Name of the generation model in use."""
        pass

    @abstractmethod
    def correct(self, transcript: str, terms: Sequence[GroundingTerm]) -> str:
        """Fix misheard jargon in a transcript.

        Args:
            transcript: Raw speech-to-text output
            terms: Reference terms, most relevant first

        Returns:
            The corrected transcript text, exactly as generated
        """
        pass
