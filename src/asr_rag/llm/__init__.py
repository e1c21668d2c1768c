"""LLM gateways for asr-rag.

Provides text embedding and transcript correction through a local
Ollama server, behind interfaces the pipeline can swap out.
"""

from asr_rag.llm.base import Corrector, Embedder, GroundingTerm
from asr_rag.llm.ollama import OllamaClient, OllamaCorrector, OllamaEmbedder
from asr_rag.llm.prompts import DEFAULT_PROMPT, CorrectionPromptBuilder

__all__ = [
    "Corrector",
    "Embedder",
    "GroundingTerm",
    "OllamaClient",
    "OllamaCorrector",
    "OllamaEmbedder",
    "CorrectionPromptBuilder",
    "DEFAULT_PROMPT",
]
