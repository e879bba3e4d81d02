"""Embedding generation against an OpenAI-compatible provider."""

import structlog
from openai import AsyncOpenAI, OpenAIError

from crawl_rag.errors import TransientNetworkError
from crawl_rag.observability.metrics import EMBEDDING_FALLBACKS
from crawl_rag.retry import RetryPolicy

logger = structlog.get_logger()


def is_zero_vector(vector: list[float]) -> bool:
    return all(v == 0.0 for v in vector)


class EmbeddingClient:
    """
    Batch embedding with per-item fallback.

    Missing, failed or short responses are filled with zero vectors, so the
    output always has one vector of ``dimensions`` floats per input text.
    """

    def __init__(
        self,
        client: AsyncOpenAI | None,
        model: str = "text-embedding-3-small",
        dimensions: int = 1024,
        retry_policy: RetryPolicy | None = None,
    ):
        self.client = client
        self.model = model
        self.dimensions = dimensions
        self.retry_policy = retry_policy or RetryPolicy(max_attempts=1)

    def zero_vector(self) -> list[float]:
        return [0.0] * self.dimensions

    async def _create(self, texts: list[str]) -> list[list[float]]:
        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=texts,
                dimensions=self.dimensions,
            )
        except OpenAIError as e:
            raise TransientNetworkError(f"Embedding request failed: {e}") from e

        vectors = [item.embedding for item in sorted(response.data, key=lambda d: d.index)]
        if len(vectors) < len(texts):
            logger.warning("embedding_response_short", expected=len(texts), received=len(vectors))
            vectors.extend(self.zero_vector() for _ in range(len(texts) - len(vectors)))
        return vectors

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """
        Embed many texts in one provider call.

        The batch call runs under the retry policy. When it is exhausted each
        text is embedded on its own, and any that still fail get a zero vector.
        """
        if not texts:
            return []
        if self.client is None:
            logger.warning("embedding_client_missing", count=len(texts))
            return [self.zero_vector() for _ in texts]

        try:
            return await self.retry_policy.run(lambda: self._create(texts), "embed_batch")
        except TransientNetworkError as e:
            logger.warning("embedding_batch_failed", count=len(texts), error=str(e))

        EMBEDDING_FALLBACKS.inc()
        vectors = []
        successes = 0
        for index, text in enumerate(texts):
            try:
                vectors.append((await self._create([text]))[0])
                successes += 1
            except TransientNetworkError as e:
                logger.warning("embedding_item_failed", index=index, error=str(e))
                vectors.append(self.zero_vector())

        logger.info("embedding_fallback_complete", succeeded=successes, total=len(texts))
        return vectors

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single text (zero vector on failure)."""
        return (await self.embed_batch([text]))[0]
