"""Prompt assembly for the Earthie chat pipeline."""
import logging
from typing import Optional, Sequence

import tiktoken

from models.conversation import Message

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """### Context and Role
- You are Earthie, Earth2's first AI companion. You help players understand Earth2: land tiles, \
Essence, Jewels, Resources, Civilians, Droids, Mentars and the wider metaverse economy.
- You are friendly, knowledgeable and practical. You speak as a fellow Earth2 enthusiast, not as \
an official representative of Earth2.

### Response Rules
- Keep responses concise and focused on the user's question.
- Prefer facts from the Relevant Knowledge Base section when it is present, and say so when \
the knowledge base does not cover the question.
- Never invent prices, dates, drop rates or official announcements.
- Do not give financial advice; you may explain how game mechanics work.
- Format lists and steps with Markdown when it helps readability."""


class PromptBuilder:
    """Builds the single prompt string sent to the generation model."""

    def __init__(self, system_prompt: str = SYSTEM_PROMPT, encoding_name: str = "o200k_base"):
        self.system_prompt = system_prompt
        self.encoder = tiktoken.get_encoding(encoding_name)

    def build(
        self,
        messages: Sequence[Message],
        knowledge: str = "",
        context: Optional[str] = None
    ) -> str:
        """
        Build the prompt in a fixed order.

        1. System/persona prompt
        2. Relevant Knowledge Base (only when knowledge is non-empty)
        3. Additional Context (only when the caller supplied it)
        4. Conversation transcript as "role: content" lines

        The prompt is not truncated; its size is logged.

        Args:
            messages: Full conversation, oldest first, latest user turn last
            knowledge: Formatted retrieved chunks, or ""
            context: Optional caller-supplied context

        Returns:
            Complete prompt string
        """
        sections = [self.system_prompt]

        if knowledge:
            sections.append(f"### Relevant Knowledge Base\n{knowledge}")

        if context and context.strip():
            sections.append(f"### Additional Context\n{context.strip()}")

        transcript = "\n".join(f"{m.role}: {m.content}" for m in messages)
        sections.append(f"### Conversation\n{transcript}")

        prompt = "\n\n".join(sections)

        logger.info(
            f"Assembled prompt: {len(prompt)} chars, ~{self.count_tokens(prompt)} tokens, "
            f"{len(messages)} messages, knowledge={'yes' if knowledge else 'no'}"
        )
        return prompt

    def count_tokens(self, text: str) -> int:
        """Approximate token count (o200k_base); Gemini's tokenizer differs slightly."""
        return len(self.encoder.encode(text))
