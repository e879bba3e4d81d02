"""Source listing routes."""

from fastapi import APIRouter, Depends

from crawl_rag.api.dependencies import get_owner, get_services
from crawl_rag.api.schemas import SourcesResponseSchema
from crawl_rag.ingestion.pipeline import list_sources
from crawl_rag.services import Services

router = APIRouter(prefix="/sources", tags=["sources"])


@router.get("", response_model=SourcesResponseSchema)
async def get_available_sources(
    services: Services = Depends(get_services),
    owner: str | None = Depends(get_owner),
):
    """List crawled sources with their summaries and word counts."""
    return await list_sources(services.db, owner)
