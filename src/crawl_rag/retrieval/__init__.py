"""Retrieval package."""

from crawl_rag.retrieval.hybrid import HybridRetriever, code_query_text, merge_hybrid_results
from crawl_rag.retrieval.rerank import (
    CohereReranker,
    CrossEncoderReranker,
    Reranker,
    apply_rerank,
)

__all__ = [
    "CohereReranker",
    "CrossEncoderReranker",
    "HybridRetriever",
    "Reranker",
    "apply_rerank",
    "code_query_text",
    "merge_hybrid_results",
]
