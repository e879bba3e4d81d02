"""Search API routes."""

from fastapi import APIRouter, Depends

from crawl_rag.api.dependencies import get_owner, get_search_service
from crawl_rag.api.schemas import SearchRequestSchema, SearchResponseSchema
from crawl_rag.api.service import SearchService

router = APIRouter(prefix="/search", tags=["search"])


@router.post("", response_model=SearchResponseSchema)
async def search(
    request: SearchRequestSchema,
    service: SearchService = Depends(get_search_service),
    owner: str | None = Depends(get_owner),
):
    """Search crawled content with hybrid retrieval, optionally filtered by source."""
    response = await service.perform_rag_query(
        request.query,
        source=request.source,
        match_count=request.match_count,
        owner=owner,
    )
    return response.model_dump()


@router.post("/code", response_model=SearchResponseSchema)
async def search_code_examples(
    request: SearchRequestSchema,
    service: SearchService = Depends(get_search_service),
    owner: str | None = Depends(get_owner),
):
    """Search extracted code examples by code and summary."""
    response = await service.search_code_examples(
        request.query,
        source_id=request.source,
        match_count=request.match_count,
        owner=owner,
    )
    return response.model_dump()
