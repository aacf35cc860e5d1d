"""
Query classifier for the Earthie chat pipeline.

Decides, before any network call is made, whether the latest user message
is worth a knowledge-base lookup. Greetings and very short messages go
straight to generation.
"""

from dataclasses import dataclass
import logging
import re

from config import MIN_RETRIEVAL_WORDS

logger = logging.getLogger(__name__)


@dataclass
class Classification:
    """
    Result of query classification.

    Attributes:
        skip_retrieval: Whether to skip the knowledge-base lookup
        rule_triggered: Which rule decided ("greeting", "short_message", "retrieval")
        reasoning: Explanation of the decision, for logs
    """
    skip_retrieval: bool
    rule_triggered: str
    reasoning: str = ""


class QueryClassifier:
    """
    Deterministic gate in front of retrieval.

    Rules, in order:
    0. Greeting: the whole message is a greeting phrase → skip
    1. Short message: fewer than MIN_RETRIEVAL_WORDS tokens → skip
    2. Default → retrieve
    """

    GREETING = "greeting"
    SHORT_MESSAGE = "short_message"
    RETRIEVAL = "retrieval"

    GREETING_PATTERNS = {
        "hi", "hello", "hey", "hiya", "howdy", "greetings", "yo", "sup",
        "good morning", "good afternoon", "good evening",
    }

    def __init__(self, min_words: int = MIN_RETRIEVAL_WORDS):
        self.min_words = min_words

        # Longest first so "good morning" is tried before shorter prefixes
        sorted_patterns = sorted(self.GREETING_PATTERNS, key=len, reverse=True)
        patterns_regex = '|'.join(re.escape(p) for p in sorted_patterns)
        # Entire string must be the greeting, ignoring trailing punctuation/spaces
        self._greeting_regex = re.compile(rf'^\s*({patterns_regex})\s*[.!?,\s]*$', re.IGNORECASE)

    def classify(self, message: str) -> Classification:
        """
        Classify the latest user message.

        Args:
            message: Latest user message text

        Returns:
            Classification telling the caller whether to run retrieval
        """
        if not message or not message.strip():
            return Classification(
                skip_retrieval=True,
                rule_triggered=self.SHORT_MESSAGE,
                reasoning="Empty message"
            )

        if self.is_greeting(message):
            logger.info(f"Skipping retrieval (greeting) - {message[:50]}")
            return Classification(
                skip_retrieval=True,
                rule_triggered=self.GREETING,
                reasoning="Message is a greeting"
            )

        word_count = len(message.split())
        if word_count < self.min_words:
            logger.info(f"Skipping retrieval ({word_count} words) - {message[:50]}")
            return Classification(
                skip_retrieval=True,
                rule_triggered=self.SHORT_MESSAGE,
                reasoning=f"Message has {word_count} words, fewer than {self.min_words}"
            )

        return Classification(
            skip_retrieval=False,
            rule_triggered=self.RETRIEVAL,
            reasoning=f"Message has {word_count} words"
        )

    def is_greeting(self, message: str) -> bool:
        """Check if the message is EXCLUSIVELY a greeting."""
        return bool(self._greeting_regex.match(message))
