"""ASR RAG - Retrieval-augmented correction of speech-to-text jargon.

Records or accepts speech, transcribes it, retrieves the closest glossary
terms from a vector index, and asks a local LLM to fix misheard jargon
using those terms as grounding context.
"""

__version__ = "0.1.0"
