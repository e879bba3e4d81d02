"""Rerank providers: Cohere's hosted API or a local cross-encoder."""

import asyncio
from typing import Protocol

import httpx
import structlog

from crawl_rag.errors import ConfigurationError, TransientNetworkError
from crawl_rag.models.search import SearchResult
from crawl_rag.observability.metrics import RERANK_FAILURES

logger = structlog.get_logger()


class Reranker(Protocol):
    """Scores documents against a query. Returns (document index, score) pairs."""

    name: str

    async def rerank(self, query: str, documents: list[str]) -> list[tuple[int, float]]: ...


class CohereReranker:
    """Cohere ``/v2/rerank`` over httpx."""

    name = "cohere"

    def __init__(
        self,
        api_key: str | None,
        client: httpx.AsyncClient,
        model: str = "rerank-multilingual-v3.0",
        base_url: str = "https://api.cohere.com",
    ):
        if not api_key:
            raise ConfigurationError("Cohere API key is not configured")
        self.api_key = api_key
        self.client = client
        self.model = model
        self.base_url = base_url.rstrip("/")

    async def rerank(self, query: str, documents: list[str]) -> list[tuple[int, float]]:
        try:
            response = await self.client.post(
                f"{self.base_url}/v2/rerank",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "model": self.model,
                    "query": query,
                    "documents": documents,
                    "top_n": len(documents),
                },
            )
        except httpx.HTTPError as e:
            raise TransientNetworkError(f"Cohere rerank request failed: {e}") from e

        if response.status_code >= 400:
            raise TransientNetworkError(
                f"Cohere rerank returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
            return [(item["index"], float(item["relevance_score"])) for item in payload["results"]]
        except (ValueError, KeyError, TypeError) as e:
            raise TransientNetworkError(f"Unexpected Cohere rerank response: {e}") from e


class CrossEncoderReranker:
    """Local sentence-transformers cross-encoder, loaded on first use."""

    name = "cross_encoder"

    def __init__(self, model_name: str = "cross-encoder/ms-marco-MiniLM-L-6-v2"):
        self.model_name = model_name
        self._model = None

    def _load(self):
        if self._model is None:
            from sentence_transformers import CrossEncoder

            logger.info("loading_cross_encoder", model=self.model_name)
            self._model = CrossEncoder(self.model_name)
        return self._model

    def _score(self, query: str, documents: list[str]) -> list[float]:
        model = self._load()
        return [float(s) for s in model.predict([(query, doc) for doc in documents])]

    async def rerank(self, query: str, documents: list[str]) -> list[tuple[int, float]]:
        scores = await asyncio.to_thread(self._score, query, documents)
        return list(enumerate(scores))


async def apply_rerank(
    reranker: Reranker,
    query: str,
    results: list[SearchResult],
) -> tuple[list[SearchResult], bool]:
    """
    Reorder results by reranker score, highest first.

    Returns:
        (results, applied). On any provider failure the input list is
        returned unchanged with ``applied=False``.
    """
    if not results:
        return results, False

    try:
        scored = await reranker.rerank(query, [r.content for r in results])
    except Exception as e:
        RERANK_FAILURES.labels(provider=reranker.name).inc()
        logger.warning("rerank_failed", provider=reranker.name, error=repr(e))
        return results, False

    reranked = [
        results[index].model_copy(update={"rerank_score": score})
        for index, score in scored
        if 0 <= index < len(results)
    ]
    reranked.sort(key=lambda r: r.rerank_score, reverse=True)
    return reranked, True
