"""LLM Client for Gemini text generation."""
import asyncio
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from google import genai
from google.genai import types

from config import GEMINI_API_KEY, CHAT_MODEL, GENERATION_TIMEOUT

logger = logging.getLogger(__name__)


class GenerationErrorKind(str, enum.Enum):
    """Why a generation request produced no usable text."""
    SAFETY = "SAFETY"
    QUOTA = "QUOTA"
    TIMEOUT = "TIMEOUT"
    OTHER = "OTHER"


@dataclass
class GenerationResult:
    """Outcome of one generation request: either text or an error kind."""
    text: Optional[str]
    model_used: str
    latency_ms: int
    error: Optional[GenerationErrorKind] = None
    tokens_input: int = 0
    tokens_output: int = 0
    detail: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None


def _enum_value(value: Any) -> str:
    if isinstance(value, enum.Enum):
        return str(value.value)
    return str(value) if value is not None else ""


def classify_exception(exc: BaseException) -> GenerationErrorKind:
    """Map an exception raised by the Gemini SDK to an error kind."""
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return GenerationErrorKind.TIMEOUT

    message = str(exc)
    code = getattr(exc, "code", None)
    status = _enum_value(getattr(exc, "status", None))

    if "SAFETY" in message.upper():
        return GenerationErrorKind.SAFETY
    if code == 429 or status == "RESOURCE_EXHAUSTED" or "RESOURCE_EXHAUSTED" in message \
            or "quota" in message.lower() or "429" in message:
        return GenerationErrorKind.QUOTA
    if code == 504 or status == "DEADLINE_EXCEEDED":
        return GenerationErrorKind.TIMEOUT
    return GenerationErrorKind.OTHER


class LLMClient:
    """Client for interfacing with the Gemini API for text generation."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = CHAT_MODEL,
        timeout: float = GENERATION_TIMEOUT,
        temperature: float = 0.7
    ):
        """
        Initialize LLM client with a Gemini API key.

        Args:
            api_key: Gemini API key (defaults to GEMINI_API_KEY from environment)
            model: Default model for generate()
            timeout: Deadline in seconds for each generation call
            temperature: Sampling temperature
        """
        self.api_key = api_key or GEMINI_API_KEY
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY must be provided or set in environment")

        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.client = genai.Client(api_key=self.api_key)
        logger.info(f"LLMClient initialized (model={model}, timeout={timeout}s)")

    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_tokens: int = 8192
    ) -> GenerationResult:
        """
        Generate a response for a fully assembled prompt.

        Never raises and never retries: failures come back as a
        GenerationResult whose `error` says what went wrong.

        Args:
            prompt: Complete prompt with persona, knowledge and transcript
            model: Model override (defaults to the client's model)
            max_tokens: Maximum tokens to generate

        Returns:
            GenerationResult with text on success, or an error kind
        """
        model = model or self.model
        start_time = time.time()

        config = types.GenerateContentConfig(
            temperature=self.temperature,
            max_output_tokens=max_tokens,
            safety_settings=[
                types.SafetySetting(
                    category=types.HarmCategory.HARM_CATEGORY_HARASSMENT,
                    threshold=types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
                ),
            ],
        )

        try:
            logger.debug(f"Generating response with model: {model}")
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=model,
                    contents=prompt,
                    config=config,
                ),
                timeout=self.timeout,
            )
        except Exception as e:
            latency_ms = int((time.time() - start_time) * 1000)
            kind = classify_exception(e)
            logger.error(
                f"Generation failed: model={model}, kind={kind.value}, latency={latency_ms}ms, error={e}",
                exc_info=kind is GenerationErrorKind.OTHER,
                extra={"error_code": kind.value, "model": model}
            )
            return GenerationResult(
                text=None,
                model_used=model,
                latency_ms=latency_ms,
                error=kind,
                detail={"original_error": str(e), "error_type": type(e).__name__}
            )

        latency_ms = int((time.time() - start_time) * 1000)
        return self._interpret_response(response, model, latency_ms)

    def _interpret_response(self, response: Any, model: str, latency_ms: int) -> GenerationResult:
        """Turn an SDK response into a GenerationResult, detecting safety blocks."""
        usage = getattr(response, "usage_metadata", None)
        tokens_input = getattr(usage, "prompt_token_count", None) or 0
        tokens_output = getattr(usage, "candidates_token_count", None) or 0

        def failure(kind: GenerationErrorKind, reason: str) -> GenerationResult:
            logger.warning(f"Generation produced no text: model={model}, kind={kind.value}, reason={reason}")
            return GenerationResult(
                text=None,
                model_used=model,
                latency_ms=latency_ms,
                error=kind,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                detail={"reason": reason}
            )

        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None) if feedback else None
        if block_reason:
            return failure(GenerationErrorKind.SAFETY, f"prompt blocked: {_enum_value(block_reason)}")

        candidates = getattr(response, "candidates", None) or []
        finish_reason = _enum_value(getattr(candidates[0], "finish_reason", None)) if candidates else ""
        if finish_reason == "SAFETY":
            return failure(GenerationErrorKind.SAFETY, "finish_reason=SAFETY")

        text = getattr(response, "text", None)
        if not text:
            return failure(GenerationErrorKind.OTHER, f"empty response (finish_reason={finish_reason or 'none'})")

        if finish_reason and finish_reason not in ("STOP", "MAX_TOKENS"):
            logger.warning(f"Response finished with reason: {finish_reason}")

        logger.info(
            f"Generated response: model={model}, "
            f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
            f"latency={latency_ms}ms, length={len(text)}"
        )
        return GenerationResult(
            text=text,
            model_used=model,
            latency_ms=latency_ms,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
        )
