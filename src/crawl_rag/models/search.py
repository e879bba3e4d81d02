"""Search result models."""

from typing import Literal

from pydantic import BaseModel, Field

SearchMode = Literal["hybrid", "vector"]


class SearchResult(BaseModel):
    """A single retrieved chunk or code example."""

    id: int
    url: str
    content: str
    metadata: dict = Field(default_factory=dict)
    source_id: str
    similarity: float = 0.0
    chunk_number: int | None = None
    summary: str | None = None  # Only set for code examples
    rerank_score: float | None = None


class RetrievalOutcome(BaseModel):
    """Ranked results plus how they were produced."""

    results: list[SearchResult]
    search_mode: SearchMode
    rerank_applied: bool = False


class SearchResponse(BaseModel):
    """Envelope returned to callers of the search service."""

    success: bool
    query: str
    source_filter: str | None = None
    search_mode: SearchMode | None = None
    reranking_applied: bool = False
    results: list[SearchResult] = Field(default_factory=list)
    count: int = 0
    error: str | None = None
