"""Hybrid retrieval combining vector similarity and keyword matching."""

import asyncio
import time

import structlog
from sqlalchemy.exc import SQLAlchemyError

from crawl_rag.llm.embeddings import EmbeddingClient, is_zero_vector
from crawl_rag.models.search import RetrievalOutcome, SearchMode, SearchResult
from crawl_rag.observability.metrics import SEARCH_LATENCY, SEARCH_REQUESTS
from crawl_rag.retrieval.rerank import Reranker, apply_rerank
from crawl_rag.storage.database import Database
from crawl_rag.storage.repositories import CodeExampleRepository, CrawledPageRepository

logger = structlog.get_logger()


def code_query_text(query: str) -> str:
    """Phrase a query the way code examples are embedded (code + summary)."""
    return f"Code example for {query}\n\nSummary: Example code showing {query}"


def merge_hybrid_results(
    vector_results: list[SearchResult],
    keyword_results: list[SearchResult],
    match_count: int,
    boost: float = 1.2,
    keyword_similarity: float = 0.5,
) -> list[SearchResult]:
    """
    Merge vector and keyword hits into one ranked list.

    Ordering:
        1. Rows found by both searches (in keyword order), using the vector
           row with similarity boosted to ``min(1.0, similarity * boost)``
        2. Remaining vector rows, in vector order
        3. Remaining keyword rows, with ``keyword_similarity``

    Each id appears at most once and at most ``match_count`` rows are returned.
    """
    vector_by_id = {r.id: r for r in vector_results}
    seen: set[int] = set()
    merged: list[SearchResult] = []

    for result in keyword_results:
        if result.id in vector_by_id and result.id not in seen:
            vector_hit = vector_by_id[result.id]
            merged.append(
                vector_hit.model_copy(update={"similarity": min(1.0, vector_hit.similarity * boost)})
            )
            seen.add(result.id)

    for result in vector_results:
        if result.id not in seen and len(merged) < match_count:
            merged.append(result)
            seen.add(result.id)

    for result in keyword_results:
        if result.id not in seen and len(merged) < match_count:
            merged.append(result.model_copy(update={"similarity": keyword_similarity}))
            seen.add(result.id)

    return merged[:match_count]


class HybridRetriever:
    """
    Search crawled pages or code examples.

    In hybrid mode a vector search and a keyword search, each over-fetching
    ``2 * match_count`` rows, run concurrently and are merged with
    :func:`merge_hybrid_results`. Otherwise only the vector search runs.
    An optional reranker reorders the final list.
    """

    def __init__(
        self,
        db: Database,
        embeddings: EmbeddingClient,
        reranker: Reranker | None = None,
        use_hybrid_search: bool = True,
        boost: float = 1.2,
        keyword_similarity: float = 0.5,
    ):
        self.db = db
        self.embeddings = embeddings
        self.reranker = reranker
        self.use_hybrid_search = use_hybrid_search
        self.boost = boost
        self.keyword_similarity = keyword_similarity

    @property
    def mode(self) -> SearchMode:
        return "hybrid" if self.use_hybrid_search else "vector"

    async def search(
        self,
        query: str,
        match_count: int = 5,
        source: str | None = None,
        owner: str | None = None,
    ) -> RetrievalOutcome:
        """Search crawled page chunks."""
        return await self._search(CrawledPageRepository, query, query, match_count, source, owner)

    async def search_code_examples(
        self,
        query: str,
        match_count: int = 5,
        source: str | None = None,
        owner: str | None = None,
    ) -> RetrievalOutcome:
        """Search code examples; keyword matching covers code and summaries."""
        return await self._search(
            CodeExampleRepository, query, code_query_text(query), match_count, source, owner
        )

    async def _search(
        self,
        repository_class: type[CrawledPageRepository] | type[CodeExampleRepository],
        query: str,
        embedding_text: str,
        match_count: int,
        source: str | None,
        owner: str | None,
    ) -> RetrievalOutcome:
        table = repository_class.orm_class.__tablename__
        start = time.perf_counter()

        try:
            if self.use_hybrid_search:
                vector_results, keyword_results = await asyncio.gather(
                    self._vector_search(repository_class, embedding_text, match_count * 2, source, owner),
                    self._keyword_search(repository_class, query, match_count * 2, source, owner),
                )
                results = merge_hybrid_results(
                    vector_results,
                    keyword_results,
                    match_count,
                    boost=self.boost,
                    keyword_similarity=self.keyword_similarity,
                )
            else:
                results = await self._vector_search(repository_class, embedding_text, match_count, source, owner)
        except Exception:
            SEARCH_REQUESTS.labels(status="error", mode=self.mode, table=table).inc()
            raise

        rerank_applied = False
        if self.reranker is not None and results:
            results, rerank_applied = await apply_rerank(self.reranker, query, results)

        SEARCH_REQUESTS.labels(status="success", mode=self.mode, table=table).inc()
        SEARCH_LATENCY.labels(mode=self.mode, table=table).observe(time.perf_counter() - start)
        logger.info(
            "search_complete",
            table=table,
            mode=self.mode,
            results=len(results),
            reranked=rerank_applied,
        )
        return RetrievalOutcome(results=results, search_mode=self.mode, rerank_applied=rerank_applied)

    async def _vector_search(self, repository_class, text, limit, source, owner) -> list[SearchResult]:
        embedding = await self.embeddings.embed_one(text)
        if is_zero_vector(embedding):
            # Query could not be embedded; similarity against it is meaningless
            logger.warning("vector_search_unavailable", table=repository_class.orm_class.__tablename__)
            return []
        async with self.db.session() as session:
            return await repository_class(session).match(
                embedding,
                match_count=limit,
                filter={"source": source} if source else None,
                owner_filter=owner,
            )

    async def _keyword_search(self, repository_class, query, limit, source, owner) -> list[SearchResult]:
        try:
            async with self.db.session() as session:
                return await repository_class(session).keyword_search(query, limit, source=source, owner=owner)
        except SQLAlchemyError as e:
            logger.warning("keyword_search_failed", error=str(e))
            return []
