"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crawl_rag import __version__
from crawl_rag.api.routes import health_router, ingest_router, search_router, sources_router
from crawl_rag.config import get_settings
from crawl_rag.services import Services, build_services


def create_app(services: Services | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        services: Prebuilt services (tests); built from Settings on startup otherwise
    """
    settings = services.settings if services else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        # Startup
        owned = services is None
        app.state.services = services or await build_services(settings)

        yield

        # Shutdown
        if owned:
            await app.state.services.close()

    app = FastAPI(
        title="crawl-rag",
        description="Web crawling and hybrid retrieval for RAG",
        version=__version__,
        lifespan=lifespan,
    )

    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    app.include_router(ingest_router)
    app.include_router(search_router)
    app.include_router(sources_router)
    app.include_router(health_router)

    @app.get("/")
    async def root():
        return {
            "name": "crawl-rag",
            "version": __version__,
            "docs": "/docs",
        }

    return app


# Create app instance for uvicorn
app = create_app()
