"""FastAPI dependencies resolving shared services from application state."""

from fastapi import Depends, Header, HTTPException, Request

from crawl_rag.api.service import SearchService
from crawl_rag.ingestion.pipeline import IngestionPipeline
from crawl_rag.services import Services


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return services


def get_search_service(services: Services = Depends(get_services)) -> SearchService:
    return services.search


def get_pipeline(services: Services = Depends(get_services)) -> IngestionPipeline:
    if services.pipeline is None:
        raise HTTPException(status_code=503, detail="Render service is not configured")
    return services.pipeline


def get_owner(x_owner_id: str | None = Header(default=None)) -> str | None:
    """Owner scope supplied by the fronting auth layer."""
    return x_owner_id or None
