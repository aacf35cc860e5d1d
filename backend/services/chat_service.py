"""Chat pipeline: retrieval gate, knowledge lookup, prompt assembly, generation."""
import logging
from typing import List, Optional, Sequence

from models.conversation import Message
from services.llm_client import LLMClient, GenerationErrorKind
from services.prompt_builder import PromptBuilder
from services.query_classifier import QueryClassifier
from services.retrieval_engine import RetrievalEngine

logger = logging.getLogger(__name__)

# User-facing replies for each generation failure kind
ERROR_MESSAGES = {
    GenerationErrorKind.SAFETY: "I apologize, but my response was blocked due to safety settings.",
    GenerationErrorKind.QUOTA: "I'm receiving too many requests right now. Please wait a moment and try again.",
    GenerationErrorKind.TIMEOUT: "The request took too long to complete. Please try again.",
    GenerationErrorKind.OTHER: "I encountered an unexpected error while generating a response. Please try again later.",
}


class MissingUserMessageError(ValueError):
    """Raised when the conversation does not end with a user message."""


class ChatService:
    """Runs one chat turn end to end and always returns a reply string."""

    def __init__(
        self,
        retrieval_engine: RetrievalEngine,
        llm_client: LLMClient,
        prompt_builder: PromptBuilder,
        classifier: Optional[QueryClassifier] = None
    ):
        self.retrieval_engine = retrieval_engine
        self.llm_client = llm_client
        self.prompt_builder = prompt_builder
        self.classifier = classifier or QueryClassifier()

    async def respond(self, messages: Sequence[Message], context: Optional[str] = None) -> str:
        """
        Produce the assistant reply for a conversation.

        Retrieval and generation failures degrade to a reply without
        knowledge or to a fixed apology; they never raise.

        Args:
            messages: Conversation so far, oldest first
            context: Optional extra context supplied by the caller

        Returns:
            Reply text

        Raises:
            MissingUserMessageError: If no latest user message can be found
        """
        history = self._clean_history(messages)
        latest = history[-1].content

        classification = self.classifier.classify(latest)
        knowledge = ""
        if classification.skip_retrieval:
            logger.info(f"Retrieval skipped ({classification.rule_triggered})")
        else:
            knowledge = await self.retrieval_engine.find_relevant_knowledge(latest)

        prompt = self.prompt_builder.build(history, knowledge=knowledge, context=context)
        result = await self.llm_client.generate(prompt)

        if result.ok:
            return result.text

        logger.warning(f"Returning fallback reply for generation error {result.error.value}")
        return ERROR_MESSAGES[result.error]

    @staticmethod
    def _clean_history(messages: Sequence[Message]) -> List[Message]:
        history = [m for m in messages if m.content and m.content.strip()]
        if not history or history[-1].role != "user":
            logger.error("Could not identify the latest user message")
            raise MissingUserMessageError("Could not identify the latest user message")
        return history
