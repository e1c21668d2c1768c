"""OpenAI Whisper API transcription provider.

Uses the OpenAI API for cloud-based transcription. An alternative to a
self-hosted whisper-server when no local GPU is available.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import openai
from openai import OpenAI

from asr_rag.errors import (
    ConfigurationError,
    DecodeError,
    RemoteStatusError,
    TransportError,
)
from asr_rag.transcription.base import TranscriptionProvider, TranscriptionResult


class WhisperAPIProvider(TranscriptionProvider):
    """Transcription provider using OpenAI's Whisper API.

    Requires OPENAI_API_KEY environment variable to be set.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "whisper-1",
        timeout: float = 120.0,
    ):
        """Initialize the Whisper API provider.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            model: Transcription model name
            timeout: Request timeout in seconds
        """
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self._model = model
        self._timeout = timeout
        self._client: Any = None

    @property
    def name(self) -> str:
        return "whisper_api"

    def is_available(self) -> bool:
        return bool(self._api_key)

    def _get_client(self) -> OpenAI:
        if self._client is not None:
            return self._client

        if not self._api_key:
            raise ConfigurationError(
                "OpenAI API key not configured. "
                "Set OPENAI_API_KEY or use transcription_provider 'whisper_server'."
            )

        # The SDK retries by default; every call here is a single attempt
        self._client = OpenAI(api_key=self._api_key, timeout=self._timeout, max_retries=0)
        return self._client

    def transcribe(self, audio_path: Path | str) -> TranscriptionResult:
        path = self.require_file(audio_path)
        client = self._get_client()

        try:
            with open(path, "rb") as audio_file:
                response = client.audio.transcriptions.create(
                    model=self._model,
                    file=audio_file,
                )
        except openai.APIStatusError as e:
            body = e.response.text if e.response is not None else ""
            raise RemoteStatusError(
                f"Whisper API status {e.status_code}: {e.message}",
                status=e.status_code,
                body=body,
            ) from e
        except openai.APIConnectionError as e:
            raise TransportError(f"Could not reach Whisper API: {e}") from e

        text = getattr(response, "text", None)
        if not isinstance(text, str):
            raise DecodeError("Whisper API response has no text")

        return TranscriptionResult(
            text=text.strip(),
            provider=self.name,
            model=self._model,
            audio_path=str(path),
        )
