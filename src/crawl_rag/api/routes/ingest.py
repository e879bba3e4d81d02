"""Ingestion API routes."""

from fastapi import APIRouter, Depends

from crawl_rag.api.dependencies import get_owner, get_pipeline, get_services
from crawl_rag.api.schemas import (
    CrawlPageRequestSchema,
    CrawlPageResponseSchema,
    SmartCrawlRequestSchema,
    SmartCrawlResponseSchema,
)
from crawl_rag.ingestion.pipeline import IngestionPipeline
from crawl_rag.services import Services

router = APIRouter(prefix="/ingest", tags=["ingestion"])


@router.post("/page", response_model=CrawlPageResponseSchema)
async def crawl_single_page(
    request: CrawlPageRequestSchema,
    pipeline: IngestionPipeline = Depends(get_pipeline),
    services: Services = Depends(get_services),
    owner: str | None = Depends(get_owner),
):
    """Crawl a single page and store its chunks without following links."""
    return await pipeline.crawl_single_page(
        request.url,
        chunk_size=request.chunk_size or services.settings.single_page_chunk_size,
        owner=owner,
    )


@router.post("/smart", response_model=SmartCrawlResponseSchema)
async def smart_crawl(
    request: SmartCrawlRequestSchema,
    pipeline: IngestionPipeline = Depends(get_pipeline),
    services: Services = Depends(get_services),
    owner: str | None = Depends(get_owner),
):
    """
    Crawl a URL based on its type and store the content.

    Sitemaps have every listed page crawled, text files are fetched
    directly, and other pages are crawled recursively through their
    internal links.
    """
    settings = services.settings
    return await pipeline.smart_crawl_url(
        request.url,
        max_depth=request.max_depth or settings.default_max_depth,
        max_concurrent=request.max_concurrent or settings.default_max_concurrent,
        chunk_size=request.chunk_size or settings.default_chunk_size,
        owner=owner,
    )
