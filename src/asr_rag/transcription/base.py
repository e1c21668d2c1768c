"""Base classes for transcription providers.

Defines the interface every speech-to-text backend implements. Input is
a WAV file (mono, 16-bit PCM, 16 kHz); output is plain text.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from asr_rag.errors import ResourceError


@dataclass
class TranscriptionResult:
    """Raw text produced by a transcription provider."""

    text: str
    provider: str = ""
    model: str = ""
    audio_path: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "text": self.text,
            "provider": self.provider,
            "model": self.model,
            "audio_path": self.audio_path,
            "timestamp": self.timestamp.isoformat(),
        }


class TranscriptionProvider(ABC):
    """Abstract base class for transcription providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    def transcribe(self, audio_path: Path | str) -> TranscriptionResult:
        """Transcribe a WAV file.

        Args:
            audio_path: Path to the audio file

        Returns:
            TranscriptionResult with the raw transcript

        Raises:
            ResourceError: If the file does not exist
            TransportError: If the service cannot be reached
            RemoteStatusError: If the service returns a failure status
            DecodeError: If the response is malformed
        """
        pass

    def is_available(self) -> bool:
        """Check if the provider is configured and usable."""
        return True

    @staticmethod
    def require_file(audio_path: Path | str) -> Path:
        """Resolve the audio path, failing if it does not exist."""
        path = Path(audio_path)
        if not path.is_file():
            raise ResourceError(f"Audio file not found: {path}")
        return path
