"""whisper.cpp server transcription provider.

Uploads a WAV file to a running `whisper-server` and reads back the
transcript. The server expects a multipart form upload rather than a
JSON body.
"""

from __future__ import annotations

from pathlib import Path

import requests

from asr_rag.errors import DecodeError, RemoteStatusError, TransportError
from asr_rag.logging import get_logger
from asr_rag.transcription.base import TranscriptionProvider, TranscriptionResult

logger = get_logger(__name__)


class WhisperServerProvider(TranscriptionProvider):
    """Transcription provider for whisper.cpp's HTTP server.

    Run the server with e.g.:
        whisper-server -m models/ggml-base.en.bin --port 8080
    """

    DEFAULT_BASE_URL = "http://localhost:8080"

    def __init__(self, base_url: str | None = None, timeout: float = 120.0):
        """Initialize the provider.

        Args:
            base_url: whisper-server base URL
            timeout: Request timeout in seconds
        """
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "whisper_server"

    def is_available(self) -> bool:
        try:
            requests.get(self.base_url, timeout=5)
            return True
        except requests.RequestException:
            return False

    def transcribe(self, audio_path: Path | str) -> TranscriptionResult:
        path = self.require_file(audio_path)
        url = f"{self.base_url}/inference"

        logger.debug(f"POST {url}", extra={"audio": str(path)})

        try:
            with open(path, "rb") as audio_file:
                resp = requests.post(
                    url,
                    files={"file": ("audio.wav", audio_file, "audio/wav")},
                    timeout=self.timeout,
                )
        except requests.RequestException as e:
            raise TransportError(f"Could not post to whisper at {url}: {e}") from e

        if not resp.ok:
            raise RemoteStatusError(
                f"whisper status {resp.status_code}: {resp.text}",
                status=resp.status_code,
                body=resp.text,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise DecodeError(f"Error decoding whisper response: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("text"), str):
            raise DecodeError("whisper response has no 'text' field")

        return TranscriptionResult(
            text=data["text"].strip(),
            provider=self.name,
            audio_path=str(path),
        )
