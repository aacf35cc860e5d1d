"""Translation and summarization of E2 articles with a lightweight Gemini model."""
import logging

from config import TEXT_SERVICES_MODEL
from services.llm_client import LLMClient, GenerationErrorKind

logger = logging.getLogger(__name__)


class TextServiceError(Exception):
    """Raised when translation or summarization cannot produce text."""


class TextServices:
    """Prompted one-shot text transformations."""

    def __init__(self, llm_client: LLMClient, model: str = TEXT_SERVICES_MODEL):
        self.llm_client = llm_client
        self.model = model

    async def translate(self, text: str, target_language: str, source_language: str = "auto") -> str:
        """
        Translate text into target_language.

        Raises:
            ValueError: If text or target language is empty
            TextServiceError: If the model fails for a reason other than safety
        """
        if not text or not text.strip():
            raise ValueError("Text to translate cannot be empty.")
        if not target_language or not target_language.strip():
            raise ValueError("Target language cannot be empty.")

        source = "the auto-detected language" if source_language == "auto" else source_language
        prompt = f'Translate the following text from {source} to {target_language}:\n\n"{text}"\n\nTranslated text:'

        logger.info(f"Prompting {self.model} for translation to {target_language}")
        return await self._run(prompt, "Translation")

    async def summarize(self, text: str) -> str:
        """
        Summarize text concisely.

        Raises:
            ValueError: If text is empty
            TextServiceError: If the model fails for a reason other than safety
        """
        if not text or not text.strip():
            raise ValueError("Text to summarize cannot be empty.")

        prompt = f'Please provide a concise summary of the following text:\n\n"{text}"\n\nSummary:'

        logger.info(f"Prompting {self.model} for summarization")
        return await self._run(prompt, "Summarization")

    async def _run(self, prompt: str, label: str) -> str:
        result = await self.llm_client.generate(prompt, model=self.model)
        if result.ok:
            return result.text.strip()

        if result.error is GenerationErrorKind.SAFETY:
            return f"{label} blocked due to safety filters."

        raise TextServiceError(f"{label} failed: {result.error.value}")
