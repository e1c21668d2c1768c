"""Transcription module for asr-rag.

Provides speech-to-text through a self-hosted whisper.cpp server or the
OpenAI Whisper API.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from asr_rag.transcription.base import TranscriptionProvider, TranscriptionResult
from asr_rag.transcription.whisper_api import WhisperAPIProvider
from asr_rag.transcription.whisper_server import WhisperServerProvider

if TYPE_CHECKING:
    from asr_rag.config import AppConfig


def get_transcription_provider(config: "AppConfig") -> TranscriptionProvider:
    """Build the transcription provider named in the config."""
    if config.transcription_provider == "whisper_api":
        return WhisperAPIProvider(timeout=config.timeout)
    return WhisperServerProvider(config.whisper_url, timeout=config.timeout)


__all__ = [
    "TranscriptionProvider",
    "TranscriptionResult",
    "WhisperAPIProvider",
    "WhisperServerProvider",
    "get_transcription_provider",
]
