"""Routes package."""

from crawl_rag.api.routes.health import router as health_router
from crawl_rag.api.routes.ingest import router as ingest_router
from crawl_rag.api.routes.search import router as search_router
from crawl_rag.api.routes.sources import router as sources_router

__all__ = [
    "health_router",
    "ingest_router",
    "search_router",
    "sources_router",
]
