"""Health and metrics API routes."""

import structlog
from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from crawl_rag.api.dependencies import get_services
from crawl_rag.api.schemas import ComponentStatusSchema, HealthResponseSchema
from crawl_rag.observability import get_metrics
from crawl_rag.services import Services

logger = structlog.get_logger()

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponseSchema)
async def health_check(services: Services = Depends(get_services)):
    """
    Health check endpoint.

    Returns component status and the active search mode.
    """
    try:
        async with services.db.session() as session:
            await session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.warning("health_database_error", error=str(e))
        database = "error"

    components = ComponentStatusSchema(
        database=database,
        crawler="ok" if services.pipeline is not None else "not_configured",
        llm="ok" if services.settings.llm_api_key else "not_configured",
    )

    # Determine overall status
    if database != "ok":
        status = "unhealthy"
    elif components.crawler != "ok" or components.llm != "ok":
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponseSchema(
        status=status,
        components=components,
        search_mode=services.search.retriever.mode,
    )


@router.get("/metrics")
async def metrics():
    """Get Prometheus metrics."""
    data, content_type = get_metrics()
    return Response(content=data, media_type=content_type)
