"""Observability package."""

from crawl_rag.observability.metrics import (
    SEARCH_REQUESTS,
    SEARCH_LATENCY,
    RERANK_FAILURES,
    INGESTION_PAGES,
    INGESTION_LATENCY,
    CHUNKS_STORED,
    CODE_EXAMPLES_STORED,
    EMBEDDING_FALLBACKS,
    get_metrics,
)

__all__ = [
    "SEARCH_REQUESTS",
    "SEARCH_LATENCY",
    "RERANK_FAILURES",
    "INGESTION_PAGES",
    "INGESTION_LATENCY",
    "CHUNKS_STORED",
    "CODE_EXAMPLES_STORED",
    "EMBEDDING_FALLBACKS",
    "get_metrics",
]
