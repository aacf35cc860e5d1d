"""Embedding model integration with the Gemini embedding REST API."""
import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from config import GEMINI_API_KEY, EMBEDDING_MODEL, EMBEDDING_TIMEOUT

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"

# batchEmbedContents accepts at most 100 requests per call
MAX_BATCH_SIZE = 100


class EmbeddingModel:
    """Async wrapper around Gemini's embedContent / batchEmbedContents endpoints."""

    def __init__(
        self,
        api_key: Optional[str] = GEMINI_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        max_retries: int = 1,
        initial_delay: float = 2.0,
        timeout: float = EMBEDDING_TIMEOUT
    ):
        """
        Initialize the embedding model client.

        Args:
            api_key: Gemini API key
            model_name: Embedding model identifier (default: text-embedding-004)
            max_retries: Total attempts per request; 1 means no retry
            initial_delay: Initial delay in seconds for exponential backoff
            timeout: Request timeout in seconds

        Raises:
            ValueError: If no API key is available
        """
        if not api_key:
            raise ValueError("GEMINI_API_KEY environment variable is required")

        self.api_key = api_key
        self.model_name = model_name
        self.max_retries = max(1, max_retries)
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.api_url = f"{GEMINI_API_BASE}/models/{model_name}"

        logger.info(f"Initialized EmbeddingModel with model: {model_name}")

    async def embed_query(self, text: str) -> List[float]:
        """
        Embed a user query for similarity search.

        Never raises: any failure is logged and reported as an empty vector,
        which callers treat as "embedding unavailable".

        Args:
            text: Latest user message

        Returns:
            Embedding vector, or [] on failure
        """
        try:
            return await self.embed_text(text, task_type="RETRIEVAL_QUERY")
        except (ValueError, RuntimeError) as e:
            logger.error(f"Query embedding failed: {e}")
            return []

    async def embed_text(self, text: str, task_type: str = "RETRIEVAL_QUERY") -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed
            task_type: Gemini task type hint

        Returns:
            Embedding vector as list of floats

        Raises:
            ValueError: If text is empty
            RuntimeError: If the API request fails after all retries
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        payload = {
            "model": f"models/{self.model_name}",
            "content": {"parts": [{"text": text}]},
            "taskType": task_type,
        }
        data = await self._post_with_retry("embedContent", payload)

        try:
            values = data["embedding"]["values"]
        except (KeyError, TypeError):
            raise RuntimeError("Malformed embedding response: missing embedding.values")

        if not isinstance(values, list) or not values:
            raise RuntimeError("Malformed embedding response: empty embedding")
        try:
            return [float(v) for v in values]
        except (TypeError, ValueError):
            raise RuntimeError("Malformed embedding response: non-numeric embedding values")

    async def embed_batch(
        self,
        texts: List[str],
        task_type: str = "RETRIEVAL_DOCUMENT"
    ) -> List[List[float]]:
        """
        Generate embeddings for multiple texts, 100 per API call.

        Results line up one-to-one with the input list.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors

        Raises:
            ValueError: If the list is empty or contains an empty string
            RuntimeError: If any API request fails after all retries
        """
        if not texts:
            raise ValueError("Texts list cannot be empty")

        empty = sum(1 for t in texts if not t or not t.strip())
        if empty:
            raise ValueError(f"Texts list contains {empty} empty entries")

        embeddings: List[List[float]] = []
        for start in range(0, len(texts), MAX_BATCH_SIZE):
            batch = texts[start:start + MAX_BATCH_SIZE]
            payload = {
                "requests": [
                    {
                        "model": f"models/{self.model_name}",
                        "content": {"parts": [{"text": text}]},
                        "taskType": task_type,
                    }
                    for text in batch
                ]
            }
            data = await self._post_with_retry("batchEmbedContents", payload)

            try:
                batch_embeddings = [item["values"] for item in data["embeddings"]]
            except (KeyError, TypeError):
                raise RuntimeError("Malformed batch embedding response")

            if len(batch_embeddings) != len(batch):
                raise RuntimeError(
                    f"Expected {len(batch)} embeddings, received {len(batch_embeddings)}"
                )
            embeddings.extend(batch_embeddings)

        return embeddings

    async def _post_with_retry(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST to a model method with exponential backoff on 503 and network errors.

        Args:
            method: Model method name, e.g. "embedContent"
            payload: JSON request body

        Returns:
            Parsed JSON response body

        Raises:
            RuntimeError: If the request fails after all retries
        """
        url = f"{self.api_url}:{method}"
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json"
        }

        delay = self.initial_delay
        last_error = None

        for attempt in range(self.max_retries):
            try:
                start_time = time.time()

                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, headers=headers, json=payload)

                elapsed = time.time() - start_time

                if response.status_code == 503:
                    last_error = "Embedding service unavailable (503)"
                    logger.warning(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")
                    if attempt < self.max_retries - 1:
                        await asyncio.sleep(delay)
                        delay = min(delay * 2, 60.0)
                        continue
                    break

                if response.status_code == 429:
                    logger.error("Rate limit exceeded for Gemini embedding API")
                    raise RuntimeError("Rate limit exceeded. Please try again later.")

                if response.status_code in (401, 403):
                    logger.error("Authentication failed for Gemini embedding API")
                    raise RuntimeError("Invalid API key")

                if response.status_code != 200:
                    error_msg = f"API request failed with status {response.status_code}: {response.text}"
                    logger.error(error_msg)
                    raise RuntimeError(error_msg)

                try:
                    data = response.json()
                except ValueError:
                    raise RuntimeError("Embedding response is not valid JSON")

                logger.debug(f"{method} completed in {elapsed:.2f}s")
                return data

            except httpx.TimeoutException:
                last_error = f"Request timeout after {self.timeout}s"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

            except httpx.RequestError as e:
                last_error = f"Network error: {str(e)}"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

            if attempt < self.max_retries - 1:
                await asyncio.sleep(delay)
                delay = min(delay * 2, 60.0)

        error_msg = f"Failed to generate embeddings after {self.max_retries} attempts. Last error: {last_error}"
        logger.error(error_msg)
        raise RuntimeError(error_msg)
