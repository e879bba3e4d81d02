"""Ingestion pipeline orchestration."""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from crawl_rag.ingestion.chunker import extract_section_info, smart_chunk_markdown
from crawl_rag.ingestion.code_blocks import extract_code_blocks
from crawl_rag.ingestion.crawler import WebCrawler
from crawl_rag.ingestion.urls import classify_url, extract_source_id
from crawl_rag.llm.chat import ChatClient
from crawl_rag.models.document import CrawlResult
from crawl_rag.observability.metrics import INGESTION_LATENCY, INGESTION_PAGES
from crawl_rag.storage.database import Database
from crawl_rag.storage.repositories import SourceRepository
from crawl_rag.storage.writer import StorageWriter

logger = structlog.get_logger()

SUMMARY_SOURCE_CHARS = 5000
URLS_PREVIEW_COUNT = 5


@dataclass
class PreparedChunks:
    """Parallel lists of chunk rows plus per-source aggregates."""

    urls: list[str] = field(default_factory=list)
    chunk_numbers: list[int] = field(default_factory=list)
    contents: list[str] = field(default_factory=list)
    metadatas: list[dict] = field(default_factory=list)
    source_content: dict[str, str] = field(default_factory=dict)
    source_word_counts: dict[str, int] = field(default_factory=dict)


class IngestionPipeline:
    """
    Orchestrates crawling, chunking, enrichment and storage.

    Flow:
    1. Crawl (single page, sitemap, text file or internal-link BFS)
    2. Chunk each page and collect per-source word counts
    3. Summarize and upsert each source
    4. Replace the stored chunks (and optionally code examples) per URL
    """

    def __init__(
        self,
        crawler: WebCrawler,
        writer: StorageWriter,
        chat: ChatClient,
        db: Database,
        use_agentic_rag: bool = False,
        code_example_min_length: int = 1000,
        summary_max_length: int = 500,
    ):
        self.crawler = crawler
        self.writer = writer
        self.chat = chat
        self.db = db
        self.use_agentic_rag = use_agentic_rag
        self.code_example_min_length = code_example_min_length
        self.summary_max_length = summary_max_length

    async def crawl_single_page(
        self,
        url: str,
        chunk_size: int = 1000,
        owner: str | None = None,
    ) -> dict[str, Any]:
        """
        Crawl one page and store its chunks without following links.

        Returns:
            Envelope with chunk/code-example counts, content length, word
            count, source id and internal/external link counts, or
            ``success=False`` with an error.
        """
        start = time.perf_counter()
        result = await self.crawler.crawl(url)
        if not result.success:
            INGESTION_PAGES.labels(crawl_type="single_page", status="failed").inc()
            return {"success": False, "url": url, "error": result.error}

        try:
            prepared = self._prepare_chunks([result], chunk_size)
            if not prepared.contents:
                return {"success": False, "url": url, "error": "No chunks generated from content"}

            source_id = extract_source_id(url)
            await self._update_sources(prepared, owner)
            stats = await self.writer.replace_documents(
                prepared.urls,
                prepared.chunk_numbers,
                prepared.contents,
                prepared.metadatas,
                {url: result.markdown},
                owner=owner,
            )
            code_examples_stored = await self._store_code_examples([result], owner)
        except Exception as e:
            INGESTION_PAGES.labels(crawl_type="single_page", status="error").inc()
            logger.error("single_page_ingestion_error", url=url, error=str(e))
            return {"success": False, "url": url, "error": f"Error processing content: {e}"}

        INGESTION_PAGES.labels(crawl_type="single_page", status="success").inc()
        INGESTION_LATENCY.labels(crawl_type="single_page").observe(time.perf_counter() - start)
        logger.info("single_page_ingested", url=url, chunks=stats.inserted, failed=stats.failed)

        return {
            "success": True,
            "url": url,
            "chunks_stored": stats.inserted,
            "code_examples_stored": code_examples_stored,
            "content_length": len(result.markdown),
            "total_word_count": prepared.source_word_counts.get(source_id, 0),
            "source_id": source_id,
            "links_count": {
                "internal": sum(1 for link in result.links if link.internal),
                "external": sum(1 for link in result.links if not link.internal),
            },
        }

    async def smart_crawl_url(
        self,
        url: str,
        max_depth: int = 3,
        max_concurrent: int = 10,
        chunk_size: int = 5000,
        owner: str | None = None,
    ) -> dict[str, Any]:
        """
        Crawl a URL with the strategy its type calls for and store everything.

        Text files are fetched directly, sitemaps have every listed page
        crawled in batches, and other URLs get a breadth-first crawl of
        their internal links up to ``max_depth`` levels.
        """
        start = time.perf_counter()
        target = classify_url(url)
        crawl_type = target.kind

        if target.kind == "text_file":
            results = await self.crawler.crawl_text_file(url)
        elif target.kind == "sitemap":
            sitemap_urls = await self.crawler.parse_sitemap(url)
            if not sitemap_urls:
                return {"success": False, "url": url, "error": "No URLs found in sitemap"}
            # Repeated <loc> entries would collide on (url, chunk_number, owner)
            results = await self.crawler.crawl_batch(list(dict.fromkeys(sitemap_urls)), max_concurrent)
        else:
            results = await self.crawler.crawl_recursive_internal_links([url], max_depth, max_concurrent)

        if not results:
            INGESTION_PAGES.labels(crawl_type=crawl_type, status="empty").inc()
            return {"success": False, "url": url, "error": "No content found"}

        try:
            prepared = self._prepare_chunks(results, chunk_size, crawl_type=crawl_type)
            await self._update_sources(prepared, owner)
            stats = await self.writer.replace_documents(
                prepared.urls,
                prepared.chunk_numbers,
                prepared.contents,
                prepared.metadatas,
                {result.url: result.markdown for result in results},
                owner=owner,
            )
            code_examples_stored = await self._store_code_examples(results, owner)
        except Exception as e:
            INGESTION_PAGES.labels(crawl_type=crawl_type, status="error").inc()
            logger.error("smart_crawl_error", url=url, crawl_type=crawl_type, error=str(e))
            return {"success": False, "url": url, "error": str(e)}

        INGESTION_PAGES.labels(crawl_type=crawl_type, status="success").inc(len(results))
        INGESTION_LATENCY.labels(crawl_type=crawl_type).observe(time.perf_counter() - start)
        logger.info(
            "smart_crawl_complete",
            url=url,
            crawl_type=crawl_type,
            pages=len(results),
            chunks=stats.inserted,
            failed=stats.failed,
            code_examples=code_examples_stored,
        )

        urls_crawled = [result.url for result in results[:URLS_PREVIEW_COUNT]]
        if len(results) > URLS_PREVIEW_COUNT:
            urls_crawled.append("...")

        return {
            "success": True,
            "url": url,
            "crawl_type": crawl_type,
            "pages_crawled": len(results),
            "chunks_stored": stats.inserted,
            "code_examples_stored": code_examples_stored,
            "sources_updated": len(prepared.source_content),
            "urls_crawled": urls_crawled,
        }

    async def list_sources(self, owner: str | None = None) -> dict[str, Any]:
        """List every known source with its summary and word count."""
        return await list_sources(self.db, owner)

    def _prepare_chunks(
        self,
        results: list[CrawlResult],
        chunk_size: int,
        crawl_type: str | None = None,
    ) -> PreparedChunks:
        prepared = PreparedChunks()
        crawl_time = datetime.now(timezone.utc).isoformat()

        for result in results:
            source_id = extract_source_id(result.url)
            if source_id not in prepared.source_content:
                prepared.source_content[source_id] = result.markdown[:SUMMARY_SOURCE_CHARS]
                prepared.source_word_counts[source_id] = 0

            for index, chunk in enumerate(smart_chunk_markdown(result.markdown, chunk_size)):
                section = extract_section_info(chunk)
                metadata = {
                    **section.model_dump(),
                    "chunk_index": index,
                    "url": result.url,
                    "source": source_id,
                    "crawl_time": crawl_time,
                }
                if crawl_type:
                    metadata["crawl_type"] = crawl_type

                prepared.urls.append(result.url)
                prepared.chunk_numbers.append(index)
                prepared.contents.append(chunk)
                prepared.metadatas.append(metadata)
                prepared.source_word_counts[source_id] += section.word_count

        return prepared

    async def _update_sources(self, prepared: PreparedChunks, owner: str | None):
        # Sources must exist before their chunks are inserted
        for source_id, content in prepared.source_content.items():
            summary = await self.chat.summarize_source(source_id, content, self.summary_max_length)
            await self.writer.upsert_source(
                source_id,
                summary,
                prepared.source_word_counts.get(source_id, 0),
                owner=owner,
            )

    async def _store_code_examples(self, results: list[CrawlResult], owner: str | None) -> int:
        if not self.use_agentic_rag:
            return 0

        urls: list[str] = []
        chunk_numbers: list[int] = []
        codes: list[str] = []
        summaries: list[str] = []
        metadatas: list[dict] = []

        for result in results:
            blocks = extract_code_blocks(result.markdown, min_length=self.code_example_min_length)
            if not blocks:
                continue

            block_summaries = await asyncio.gather(
                *(
                    self.chat.summarize_code_example(block.code, block.context_before, block.context_after)
                    for block in blocks
                )
            )
            source_id = extract_source_id(result.url)

            for block, summary in zip(blocks, block_summaries):
                index = len(codes)
                urls.append(result.url)
                chunk_numbers.append(index)
                codes.append(block.code)
                summaries.append(summary)
                metadatas.append(
                    {
                        "chunk_index": index,
                        "url": result.url,
                        "source": source_id,
                        "char_count": len(block.code),
                        "word_count": len(block.code.split()),
                        "language": block.language,
                    }
                )

        if not codes:
            return 0

        stats = await self.writer.replace_code_examples(
            urls, chunk_numbers, codes, summaries, metadatas, owner=owner
        )
        return stats.inserted


async def list_sources(db: Database, owner: str | None = None) -> dict[str, Any]:
    """List sources (optionally one owner's) as a JSON-able envelope."""
    try:
        async with db.session() as session:
            sources = await SourceRepository(session).get_all(owner)
    except Exception as e:
        logger.error("list_sources_error", error=str(e))
        return {"success": False, "error": str(e)}

    return {
        "success": True,
        "sources": [
            {
                "source_id": source.source_id,
                "summary": source.summary,
                "total_word_count": source.total_word_count,
                "created_at": source.created_at.isoformat() if source.created_at else None,
                "updated_at": source.updated_at.isoformat() if source.updated_at else None,
            }
            for source in sources
        ],
        "count": len(sources),
    }
