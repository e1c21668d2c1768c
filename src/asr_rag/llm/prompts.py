"""Prompt templates for transcript correction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from asr_rag.llm.base import GroundingTerm


@dataclass
class CorrectionPromptBuilder:
    """Builder for the correction system prompt.

    Terms are listed in the order received, which is similarity order
    when they come from the index.

    Attributes:
        domain: Short name of the glossary domain, used in the instruction
    """

    domain: str = "Go"

    def build_instruction(self) -> str:
        return (
            f"Fix misheard {self.domain} terms in this transcript using the provided reference. "
            "Only substitute terms that appear in the reference. "
            "Return only the corrected text."
        )

    def build_system_prompt(self, terms: Sequence[GroundingTerm]) -> str:
        """Build the system prompt for a correction request.

        Args:
            terms: Reference terms, most relevant first

        Returns:
            System prompt string
        """
        instruction = self.build_instruction()

        if not terms:
            return f"{instruction}\n\nNo reference terms were found for this transcript."

        bullets = "\n".join(f"- {t.name}: {t.definition}" for t in terms)
        return f"{instruction}\n\nReference terms:\n{bullets}\n"


DEFAULT_PROMPT = CorrectionPromptBuilder()
