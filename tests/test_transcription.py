"""Tests for transcription providers."""

from unittest.mock import MagicMock, Mock, patch

import httpx
import openai
import pytest
import requests

from asr_rag.config import AppConfig
from asr_rag.errors import (
    ConfigurationError,
    DecodeError,
    RemoteStatusError,
    ResourceError,
    TransportError,
)
from asr_rag.transcription import (
    TranscriptionResult,
    WhisperAPIProvider,
    WhisperServerProvider,
    get_transcription_provider,
)

OPENAI_URL = "https://api.openai.com/v1/audio/transcriptions"


@pytest.fixture
def wav_file(tmp_path):
    path = tmp_path / "clip.wav"
    path.write_bytes(b"RIFF\x00\x00\x00\x00WAVEfmt ")
    return path


def _http_response(status=200, json_data=None, text=""):
    resp = Mock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.text = text
    if isinstance(json_data, Exception):
        resp.json.side_effect = json_data
    else:
        resp.json.return_value = json_data
    return resp


class TestTranscriptionResult:
    """Tests for TranscriptionResult."""

    def test_to_dict(self):
        """Test serialization."""
        result = TranscriptionResult(text="hello", provider="whisper_server", audio_path="a.wav")

        data = result.to_dict()

        assert data["text"] == "hello"
        assert data["provider"] == "whisper_server"
        assert "timestamp" in data


class TestWhisperServerProvider:
    """Tests for WhisperServerProvider."""

    def test_name_and_url(self):
        """Test provider identity and URL normalization."""
        provider = WhisperServerProvider("http://whisper.test:8080/")

        assert provider.name == "whisper_server"
        assert provider.base_url == "http://whisper.test:8080"

    @patch("asr_rag.transcription.whisper_server.requests.post")
    def test_transcribe(self, mock_post, wav_file):
        """Test the multipart upload and trimmed text."""
        mock_post.return_value = _http_response(json_data={"text": " spawn a go routine\n"})
        provider = WhisperServerProvider("http://whisper.test:8080", timeout=30)

        result = provider.transcribe(wav_file)

        assert result.text == "spawn a go routine"
        assert result.provider == "whisper_server"
        args, kwargs = mock_post.call_args
        assert args[0] == "http://whisper.test:8080/inference"
        filename, _, content_type = kwargs["files"]["file"]
        assert filename == "audio.wav"
        assert content_type == "audio/wav"
        assert kwargs["timeout"] == 30

    def test_missing_file(self, tmp_path):
        """Test a nonexistent audio file."""
        provider = WhisperServerProvider()

        with pytest.raises(ResourceError, match="not found"):
            provider.transcribe(tmp_path / "missing.wav")

    @patch("asr_rag.transcription.whisper_server.requests.post")
    def test_connection_error(self, mock_post, wav_file):
        """Test an unreachable server."""
        mock_post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(TransportError):
            WhisperServerProvider().transcribe(wav_file)

    @patch("asr_rag.transcription.whisper_server.requests.post")
    def test_failure_status(self, mock_post, wav_file):
        """Test a non-2xx response."""
        mock_post.return_value = _http_response(status=500, text="model failed")

        with pytest.raises(RemoteStatusError) as exc_info:
            WhisperServerProvider().transcribe(wav_file)

        assert exc_info.value.status == 500
        assert exc_info.value.body == "model failed"

    @patch("asr_rag.transcription.whisper_server.requests.post")
    def test_invalid_json(self, mock_post, wav_file):
        """Test an undecodable body."""
        mock_post.return_value = _http_response(json_data=ValueError("bad json"))

        with pytest.raises(DecodeError):
            WhisperServerProvider().transcribe(wav_file)

    @patch("asr_rag.transcription.whisper_server.requests.post")
    def test_missing_text(self, mock_post, wav_file):
        """Test a body without the text field."""
        mock_post.return_value = _http_response(json_data={"error": "x"})

        with pytest.raises(DecodeError, match="text"):
            WhisperServerProvider().transcribe(wav_file)

    @patch("asr_rag.transcription.whisper_server.requests.get")
    def test_is_available(self, mock_get):
        """Test availability check."""
        assert WhisperServerProvider().is_available() is True

        mock_get.side_effect = requests.ConnectionError("refused")
        assert WhisperServerProvider().is_available() is False


class TestWhisperAPIProvider:
    """Tests for WhisperAPIProvider."""

    def test_not_available_without_key(self, monkeypatch):
        """Test availability depends on the API key."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        assert WhisperAPIProvider().is_available() is False
        assert WhisperAPIProvider(api_key="sk-test").is_available() is True

    def test_missing_key(self, monkeypatch, wav_file):
        """Test transcription without a key."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            WhisperAPIProvider().transcribe(wav_file)

    @patch("asr_rag.transcription.whisper_api.OpenAI")
    def test_client_does_not_retry(self, mock_openai):
        """Test the SDK client is built with retries disabled."""
        WhisperAPIProvider(api_key="sk-test", timeout=45)._get_client()

        mock_openai.assert_called_once_with(api_key="sk-test", timeout=45, max_retries=0)

    def test_transcribe(self, wav_file):
        """Test a successful transcription."""
        provider = WhisperAPIProvider(api_key="sk-test")
        client = MagicMock()
        client.audio.transcriptions.create.return_value = Mock(text=" use a channel ")
        provider._client = client

        result = provider.transcribe(wav_file)

        assert result.text == "use a channel"
        assert result.provider == "whisper_api"
        assert result.model == "whisper-1"

    def test_status_error(self, wav_file):
        """Test an error status from the API."""
        provider = WhisperAPIProvider(api_key="sk-test")
        response = httpx.Response(401, request=httpx.Request("POST", OPENAI_URL), text="unauthorized")
        client = MagicMock()
        client.audio.transcriptions.create.side_effect = openai.APIStatusError(
            "unauthorized", response=response, body=None
        )
        provider._client = client

        with pytest.raises(RemoteStatusError) as exc_info:
            provider.transcribe(wav_file)

        assert exc_info.value.status == 401

    def test_connection_error(self, wav_file):
        """Test an unreachable API."""
        provider = WhisperAPIProvider(api_key="sk-test")
        client = MagicMock()
        client.audio.transcriptions.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", OPENAI_URL)
        )
        provider._client = client

        with pytest.raises(TransportError):
            provider.transcribe(wav_file)


class TestGetTranscriptionProvider:
    """Tests for provider selection."""

    def _config(self, **overrides):
        return AppConfig(
            whisper_url="http://whisper.test:8080",
            ollama_url="http://ollama.test:11434",
            qdrant_url=":memory:",
            **overrides,
        )

    def test_default_is_whisper_server(self):
        """Test the default provider."""
        provider = get_transcription_provider(self._config(timeout=12))

        assert isinstance(provider, WhisperServerProvider)
        assert provider.base_url == "http://whisper.test:8080"
        assert provider.timeout == 12

    def test_whisper_api(self):
        """Test selecting the hosted API."""
        provider = get_transcription_provider(self._config(transcription_provider="whisper_api"))

        assert isinstance(provider, WhisperAPIProvider)
