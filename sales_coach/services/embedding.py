"""
Embedding service
Generates text embeddings with the OpenAI embeddings API.
"""
import logging
import time
from typing import List

from openai import AsyncOpenAI, OpenAIError

from sales_coach.errors import EmbeddingError, RequestTimeoutError
from sales_coach.utils.timeout import with_timeout

logger = logging.getLogger(__name__)


class EmbeddingService:
    """Embedding service backed by an injected ``AsyncOpenAI`` client."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "text-embedding-ada-002",
        timeout: float = 30.0,
    ):
        self.client = client
        self.model = model
        self.timeout = timeout

    async def embed_query(self, text: str) -> List[float]:
        """
        Generate one embedding vector.

        Args:
            text: Text to embed

        Returns:
            The embedding vector

        Raises:
            EmbeddingError: if the call fails or returns no vector
        """
        start = time.time()
        try:
            response = await with_timeout(
                self.client.embeddings.create(model=self.model, input=text),
                self.timeout,
            )
        except (OpenAIError, RequestTimeoutError) as e:
            logger.error(f"[Embedding] call failed after {time.time() - start:.2f}s: {e}")
            raise EmbeddingError(f"Failed to generate embedding: {e}") from e

        if not response.data or not response.data[0].embedding:
            raise EmbeddingError("Failed to generate embedding: empty response")

        vector = response.data[0].embedding
        logger.debug(f"[Embedding] {len(text)} chars -> dim {len(vector)} ({time.time() - start:.2f}s)")
        return vector
