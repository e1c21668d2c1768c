"""Configuration and corpus loading for asr-rag.

Both files are read once at process start. The resulting values are
immutable and passed explicitly into each gateway constructor.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from asr_rag.errors import ConfigurationError

DEFAULT_CONFIG_PATH = Path("config.json")
DEFAULT_CORPUS_PATH = Path("corpus.json")


class AppConfig(BaseModel):
    """Service endpoints and model settings."""

    model_config = ConfigDict(frozen=True)

    whisper_url: str
    ollama_url: str
    # "host:port", "http(s)://host:port", or ":memory:" for an in-process store
    qdrant_url: str
    embedding_model: str = "nomic-embed-text"
    # Must match what embedding_model produces (nomic-embed-text = 768)
    embedding_dimension: int = Field(default=768, gt=0)
    correction_model: str = "llama3.2:3b"
    collection_name: str = "go_terms"
    transcription_provider: Literal["whisper_server", "whisper_api"] = "whisper_server"
    search_limit: int = Field(default=5, ge=1)
    correction_limit: int = Field(default=10, ge=1)
    # Transport deadline per request, in seconds
    timeout: float = Field(default=120.0, gt=0)


class CorpusEntry(BaseModel):
    """A single glossary term and its definition."""

    model_config = ConfigDict(frozen=True)

    term: str = Field(min_length=1)
    definition: str = Field(min_length=1)

    @property
    def embedding_text(self) -> str:
        """Text that gets embedded for this entry."""
        return f"{self.term}: {self.definition}"


_corpus_adapter = TypeAdapter(list[CorpusEntry])


def _read_json(path: Path, what: str) -> Any:
    if not path.exists():
        raise ConfigurationError(f"{what} file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {what} file {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Could not read {what} file {path}: {e}") from e


def load_config(path: Path | str = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Load service configuration from a JSON file.

    Args:
        path: Path to the config file

    Returns:
        AppConfig with the service settings

    Raises:
        ConfigurationError: If the file is missing, not JSON, or invalid
    """
    path = Path(path)
    data = _read_json(path, "config")

    try:
        return AppConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid config in {path}: {e}") from e


def load_corpus(path: Path | str = DEFAULT_CORPUS_PATH) -> list[CorpusEntry]:
    """Load the glossary corpus from a JSON array of term objects.

    Entry order is preserved; it determines each term's id in the index.

    Args:
        path: Path to the corpus file

    Returns:
        List of corpus entries in file order

    Raises:
        ConfigurationError: If the file is missing, not JSON, or invalid
    """
    path = Path(path)
    data = _read_json(path, "corpus")

    try:
        return _corpus_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid corpus in {path}: {e}") from e
