"""Search service wrapping retrieval in response envelopes."""

import structlog

from crawl_rag.models.search import SearchResponse
from crawl_rag.retrieval.hybrid import HybridRetriever

logger = structlog.get_logger()

CODE_SEARCH_DISABLED = "Code example extraction is disabled. Perform a normal RAG search."


class SearchService:
    """
    High-level search service.

    Retrieval errors are reported in the envelope (``success=False``)
    instead of being raised to the caller.
    """

    def __init__(self, retriever: HybridRetriever, code_examples_enabled: bool = False):
        self.retriever = retriever
        self.code_examples_enabled = code_examples_enabled

    async def perform_rag_query(
        self,
        query: str,
        source: str | None = None,
        match_count: int = 5,
        owner: str | None = None,
    ) -> SearchResponse:
        """Search stored page chunks, optionally restricted to one source."""
        source = source.strip() if source and source.strip() else None
        try:
            outcome = await self.retriever.search(query, match_count, source=source, owner=owner)
        except Exception as e:
            logger.error("rag_query_error", query=query, error=str(e))
            return SearchResponse(success=False, query=query, error=str(e))

        return SearchResponse(
            success=True,
            query=query,
            source_filter=source,
            search_mode=outcome.search_mode,
            reranking_applied=outcome.rerank_applied,
            results=outcome.results,
            count=len(outcome.results),
        )

    async def search_code_examples(
        self,
        query: str,
        source_id: str | None = None,
        match_count: int = 5,
        owner: str | None = None,
    ) -> SearchResponse:
        """Search stored code examples (only when code extraction is enabled)."""
        if not self.code_examples_enabled:
            return SearchResponse(success=False, query=query, error=CODE_SEARCH_DISABLED)

        source_id = source_id.strip() if source_id and source_id.strip() else None
        try:
            outcome = await self.retriever.search_code_examples(
                query, match_count, source=source_id, owner=owner
            )
        except Exception as e:
            logger.error("code_search_error", query=query, error=str(e))
            return SearchResponse(success=False, query=query, error=str(e))

        return SearchResponse(
            success=True,
            query=query,
            source_filter=source_id,
            search_mode=outcome.search_mode,
            reranking_applied=outcome.rerank_applied,
            results=outcome.results,
            count=len(outcome.results),
        )
