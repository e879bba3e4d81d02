"""Wiring: build the database, provider clients, pipeline and search service from Settings."""

from dataclasses import dataclass

import httpx
import structlog
from openai import AsyncOpenAI

from crawl_rag.api.service import SearchService
from crawl_rag.config import Settings, get_settings
from crawl_rag.ingestion.crawler import WebCrawler
from crawl_rag.ingestion.pipeline import IngestionPipeline
from crawl_rag.ingestion.render import RenderClient
from crawl_rag.llm.chat import ChatClient
from crawl_rag.llm.embeddings import EmbeddingClient
from crawl_rag.retrieval.hybrid import HybridRetriever
from crawl_rag.retrieval.rerank import CohereReranker, CrossEncoderReranker, Reranker
from crawl_rag.retry import RetryPolicy
from crawl_rag.storage.database import Database
from crawl_rag.storage.writer import StorageWriter

logger = structlog.get_logger()


@dataclass
class Services:
    """Long-lived collaborators shared by the API and the CLI."""

    settings: Settings
    db: Database
    http_client: httpx.AsyncClient
    search: SearchService
    pipeline: IngestionPipeline | None

    async def close(self):
        await self.http_client.aclose()
        await self.db.dispose()


def build_openai_client(settings: Settings) -> AsyncOpenAI | None:
    if not settings.llm_api_key:
        logger.warning("llm_not_configured", hint="embeddings fall back to zero vectors")
        return None
    return AsyncOpenAI(api_key=settings.llm_api_key, base_url=settings.llm_api_url)


def build_reranker(settings: Settings, http_client: httpx.AsyncClient) -> Reranker | None:
    if not settings.use_reranking:
        return None
    if settings.rerank_provider == "cross_encoder":
        return CrossEncoderReranker(settings.cross_encoder_model)
    return CohereReranker(
        settings.cohere_api_key,
        http_client,
        model=settings.rerank_model,
        base_url=settings.cohere_api_url,
    )


async def build_services(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
    openai_client: AsyncOpenAI | None = None,
) -> Services:
    """
    Create every collaborator and initialize the database schema.

    Crawling needs a render token; without one the pipeline is left unset
    and only search and source listing are available.
    """
    settings = settings or get_settings()
    http_client = http_client or httpx.AsyncClient(timeout=settings.render_timeout_seconds)
    openai_client = openai_client or build_openai_client(settings)

    db = Database(settings.database_url, echo=settings.debug)
    await db.init()

    embeddings = EmbeddingClient(
        openai_client,
        model=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
        retry_policy=RetryPolicy(
            max_attempts=settings.embedding_max_attempts,
            base_delay=settings.embedding_base_delay_seconds,
        ),
    )
    chat = ChatClient(openai_client, model=settings.model_choice)

    retriever = HybridRetriever(
        db,
        embeddings,
        reranker=build_reranker(settings, http_client),
        use_hybrid_search=settings.use_hybrid_search,
        boost=settings.hybrid_boost,
        keyword_similarity=settings.keyword_default_similarity,
    )
    search = SearchService(retriever, code_examples_enabled=settings.use_agentic_rag)

    pipeline = None
    if settings.render_token:
        crawler = WebCrawler(
            RenderClient(
                settings.render_url,
                settings.render_token,
                http_client,
                timeout_seconds=settings.render_timeout_seconds,
            ),
            http_client,
            batch_delay_seconds=settings.batch_delay_seconds,
            depth_delay_seconds=settings.depth_delay_seconds,
        )
        writer = StorageWriter(
            db,
            embeddings,
            chat,
            batch_size=settings.storage_batch_size,
            retry_policy=RetryPolicy(
                max_attempts=settings.storage_max_attempts,
                base_delay=settings.storage_base_delay_seconds,
            ),
            use_contextual_embeddings=settings.use_contextual_embeddings,
        )
        pipeline = IngestionPipeline(
            crawler,
            writer,
            chat,
            db,
            use_agentic_rag=settings.use_agentic_rag,
            code_example_min_length=settings.code_example_min_length,
            summary_max_length=settings.summary_max_length,
        )
    else:
        logger.warning("render_service_not_configured", hint="set CRAWL_RAG_RENDER_TOKEN to enable crawling")

    return Services(settings=settings, db=db, http_client=http_client, search=search, pipeline=pipeline)
