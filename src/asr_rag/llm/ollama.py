"""Ollama gateways for embedding and transcript correction.

Talks to a local Ollama server over its JSON HTTP API:
- /api/embed turns text into vectors
- /api/chat generates the corrected transcript
- /api/tags lists installed models (availability checks)

Each call is a single round trip; nothing is retried.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from typing import Any, Sequence

from asr_rag.errors import (
    DecodeError,
    EmptyResultError,
    RemoteStatusError,
    TransportError,
)
from asr_rag.llm.base import Corrector, Embedder, GroundingTerm
from asr_rag.llm.prompts import DEFAULT_PROMPT, CorrectionPromptBuilder
from asr_rag.logging import get_logger

logger = get_logger(__name__)


class OllamaClient:
    """Minimal JSON client for an Ollama server.

    Requires Ollama to be installed and running:
    - Install: https://ollama.ai
    - Run: ollama serve
    - Pull models: ollama pull nomic-embed-text && ollama pull llama3.2:3b
    """

    DEFAULT_BASE_URL = "http://localhost:11434"

    def __init__(self, base_url: str | None = None, timeout: float = 120.0):
        """Initialize the client.

        Args:
            base_url: Ollama API base URL (default: http://localhost:11434)
            timeout: Request timeout in seconds
        """
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout

    def is_available(self) -> bool:
        """Check if the Ollama server is responding."""
        req = urllib.request.Request(f"{self.base_url}/api/tags", method="GET")
        try:
            with urllib.request.urlopen(req, timeout=5) as response:
                return response.status == 200
        except (urllib.error.URLError, TimeoutError, ConnectionError):
            return False

    def available_models(self) -> list[str]:
        """List models installed on the server.

        Returns:
            Model names, empty if the server cannot be queried
        """
        req = urllib.request.Request(f"{self.base_url}/api/tags", method="GET")
        try:
            with urllib.request.urlopen(req, timeout=10) as response:
                data = json.loads(response.read().decode("utf-8"))
                return [m["name"] for m in data.get("models", [])]
        except (urllib.error.URLError, TimeoutError, ConnectionError, json.JSONDecodeError, KeyError):
            return []

    def post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a JSON payload and decode the JSON response.

        Args:
            path: Endpoint path, e.g. "/api/embed"
            payload: Request body

        Returns:
            Decoded response object

        Raises:
            TransportError: If the server cannot be reached
            RemoteStatusError: If the server returns a non-2xx status
            DecodeError: If the body is not a JSON object
        """
        url = f"{self.base_url}{path}"
        req = urllib.request.Request(
            url,
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )

        logger.debug(f"POST {url}", extra={"model": payload.get("model")})

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                raw = response.read()
        except urllib.error.HTTPError as e:
            # HTTPError subclasses URLError, so it must be caught first
            body = e.read().decode("utf-8", errors="replace")
            raise RemoteStatusError(
                f"Ollama {path} status {e.code}: {body}",
                status=e.code,
                body=body,
            ) from e
        except urllib.error.URLError as e:
            raise TransportError(
                f"Cannot connect to Ollama at {self.base_url}: {e.reason}"
            ) from e
        except (TimeoutError, ConnectionError) as e:
            raise TransportError(f"Request to Ollama {path} failed: {e}") from e

        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecodeError(f"Invalid JSON from Ollama {path}: {e}") from e

        if not isinstance(data, dict):
            raise DecodeError(f"Expected a JSON object from Ollama {path}, got {type(data).__name__}")

        return data


class OllamaEmbedder(Embedder):
    """Embedding gateway backed by Ollama's /api/embed endpoint.

    The endpoint accepts batches and always answers with a list of
    vectors; one input is sent per call and the first vector is used.
    """

    def __init__(self, client: OllamaClient, model: str = "nomic-embed-text"):
        self.client = client
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    def embed(self, text: str) -> list[float]:
        data = self.client.post_json("/api/embed", {"model": self._model, "input": text})

        embeddings = data.get("embeddings")
        if not isinstance(embeddings, list):
            raise DecodeError("Ollama embed response has no 'embeddings' list")
        if not embeddings:
            raise EmptyResultError(
                "Embedding service returned no vectors",
                context={"model": self._model},
            )

        first = embeddings[0]
        if not isinstance(first, list) or not first:
            raise DecodeError("Ollama embed response contains a malformed vector")

        try:
            return [float(value) for value in first]
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Non-numeric value in embedding vector: {e}") from e


class OllamaCorrector(Corrector):
    """Correction gateway backed by Ollama's /api/chat endpoint.

    Sends the reference terms as the system message and the transcript as
    the user message, with streaming disabled. The reply content is
    returned verbatim.
    """

    def __init__(
        self,
        client: OllamaClient,
        model: str = "llama3.2:3b",
        prompt_builder: CorrectionPromptBuilder | None = None,
    ):
        self.client = client
        self._model = model
        self.prompt_builder = prompt_builder or DEFAULT_PROMPT

    @property
    def model(self) -> str:
        return self._model

    def build_messages(self, transcript: str, terms: Sequence[GroundingTerm]) -> list[dict[str, str]]:
        """Build the chat messages for a correction request."""
        return [
            {"role": "system", "content": self.prompt_builder.build_system_prompt(terms)},
            {"role": "user", "content": transcript},
        ]

    def correct(self, transcript: str, terms: Sequence[GroundingTerm]) -> str:
        payload = {
            "model": self._model,
            "messages": self.build_messages(transcript, terms),
            "stream": False,
        }
        data = self.client.post_json("/api/chat", payload)

        message = data.get("message")
        if not isinstance(message, dict) or not isinstance(message.get("content"), str):
            raise DecodeError("Ollama chat response has no message content")

        return message["content"]
