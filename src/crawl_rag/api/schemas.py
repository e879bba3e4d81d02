"""API Pydantic schemas for request/response validation."""

from pydantic import BaseModel, Field

from crawl_rag.models.search import SearchMode


# ===== Ingestion =====

class CrawlPageRequestSchema(BaseModel):
    """Single-page crawl request."""

    url: str = Field(..., min_length=1)
    chunk_size: int | None = Field(default=None, ge=100, le=20000)


class SmartCrawlRequestSchema(BaseModel):
    """Smart crawl request (webpage, sitemap or text file)."""

    url: str = Field(..., min_length=1)
    max_depth: int | None = Field(default=None, ge=1, le=5)
    max_concurrent: int | None = Field(default=None, ge=1, le=20)
    chunk_size: int | None = Field(default=None, ge=500, le=10000)


class LinksCountSchema(BaseModel):
    internal: int = 0
    external: int = 0


class CrawlPageResponseSchema(BaseModel):
    """Single-page crawl response."""

    success: bool
    url: str
    chunks_stored: int = 0
    code_examples_stored: int = 0
    content_length: int = 0
    total_word_count: int = 0
    source_id: str | None = None
    links_count: LinksCountSchema | None = None
    error: str | None = None


class SmartCrawlResponseSchema(BaseModel):
    """Smart crawl response."""

    success: bool
    url: str
    crawl_type: str | None = None
    pages_crawled: int = 0
    chunks_stored: int = 0
    code_examples_stored: int = 0
    sources_updated: int = 0
    urls_crawled: list[str] = Field(default_factory=list)
    error: str | None = None


# ===== Search =====

class SearchRequestSchema(BaseModel):
    """Search request schema."""

    query: str = Field(..., min_length=1, max_length=1000)
    source: str | None = None
    match_count: int = Field(default=5, ge=1, le=20)


class SearchResultSchema(BaseModel):
    """A single search result."""

    id: int
    url: str
    content: str
    metadata: dict = Field(default_factory=dict)
    source_id: str
    similarity: float
    chunk_number: int | None = None
    summary: str | None = None
    rerank_score: float | None = None


class SearchResponseSchema(BaseModel):
    """Search response schema."""

    success: bool
    query: str
    source_filter: str | None = None
    search_mode: SearchMode | None = None
    reranking_applied: bool = False
    results: list[SearchResultSchema] = Field(default_factory=list)
    count: int = 0
    error: str | None = None


# ===== Sources =====

class SourceSchema(BaseModel):
    source_id: str
    summary: str
    total_word_count: int
    created_at: str | None = None
    updated_at: str | None = None


class SourcesResponseSchema(BaseModel):
    """Available sources response."""

    success: bool
    sources: list[SourceSchema] = Field(default_factory=list)
    count: int = 0
    error: str | None = None


# ===== Health =====

class ComponentStatusSchema(BaseModel):
    """Status of a system component."""

    database: str = "unknown"
    crawler: str = "unknown"
    llm: str = "unknown"


class HealthResponseSchema(BaseModel):
    """Health check response schema."""

    status: str
    components: ComponentStatusSchema
    search_mode: SearchMode
