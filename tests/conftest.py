"""Shared fixtures."""

from __future__ import annotations

import json

import pytest


@pytest.fixture
def corpus_data() -> list[dict[str, str]]:
    return [
        {"term": "goroutine", "definition": "a lightweight thread managed by the runtime"},
        {"term": "channel", "definition": "a typed conduit between goroutines"},
    ]


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "whisper_url": "http://whisper.test:8080",
        "ollama_url": "http://ollama.test:11434",
        "qdrant_url": ":memory:",
        "embedding_dimension": 4,
        "collection_name": "test_terms",
    }))
    return path


@pytest.fixture
def corpus_file(tmp_path, corpus_data):
    path = tmp_path / "corpus.json"
    path.write_text(json.dumps(corpus_data))
    return path
