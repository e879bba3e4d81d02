"""Crawling strategies: single page, batches, internal-link BFS, sitemaps and text files."""

import asyncio
from typing import Protocol

import httpx
import structlog

from crawl_rag.errors import CrawlRagError, EmptyContentError, TransientNetworkError
from crawl_rag.ingestion.markdown import MarkdownConverter
from crawl_rag.ingestion.urls import extract_sitemap_urls, normalize_url
from crawl_rag.models.document import CrawlResult

logger = structlog.get_logger()


class PageRenderer(Protocol):
    async def content(self, url: str) -> str: ...


class WebCrawler:
    """
    Fetch pages through the render service and turn them into markdown.

    Individual page failures never propagate; they come back as
    ``CrawlResult(success=False)`` and are dropped by the batch helpers.
    """

    def __init__(
        self,
        renderer: PageRenderer,
        client: httpx.AsyncClient,
        converter: MarkdownConverter | None = None,
        batch_delay_seconds: float = 1.0,
        depth_delay_seconds: float = 2.0,
    ):
        self.renderer = renderer
        self.client = client
        self.converter = converter or MarkdownConverter()
        self.batch_delay_seconds = batch_delay_seconds
        self.depth_delay_seconds = depth_delay_seconds

    async def crawl(self, url: str) -> CrawlResult:
        """Render one page and convert it. Never raises."""
        try:
            html = await self.renderer.content(url)
            if not html or not html.strip():
                raise EmptyContentError("Render service returned no HTML")

            markdown = self.converter.html_to_markdown(html)
            links = self.converter.extract_links(html, url)
            if not markdown and not links:
                raise EmptyContentError("Page produced no markdown and no links")

            return CrawlResult(url=url, html=html, markdown=markdown, links=links)
        except CrawlRagError as e:
            logger.warning("crawl_failed", url=url, error=str(e))
            return CrawlResult.failed(url, str(e))
        except (ValueError, RecursionError) as e:
            logger.warning("conversion_failed", url=url, error=repr(e))
            return CrawlResult.failed(url, f"Could not convert page: {e}")

    async def crawl_batch(self, urls: list[str], max_concurrent: int = 10) -> list[CrawlResult]:
        """
        Crawl URLs in windows of ``max_concurrent``.

        Each window is awaited fully before the next starts, with a fixed
        pause between windows. Failed pages are dropped; the rest keep
        their input order.
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        results: list[CrawlResult] = []
        for start in range(0, len(urls), max_concurrent):
            if start > 0 and self.batch_delay_seconds > 0:
                await asyncio.sleep(self.batch_delay_seconds)

            window = urls[start:start + max_concurrent]
            window_results = await asyncio.gather(*(self.crawl(url) for url in window))
            results.extend(r for r in window_results if r.success)

            logger.debug(
                "batch_window_crawled",
                window=start // max_concurrent + 1,
                requested=len(window),
                succeeded=sum(1 for r in window_results if r.success),
            )

        return results

    async def crawl_recursive_internal_links(
        self,
        start_urls: list[str],
        max_depth: int = 3,
        max_concurrent: int = 10,
    ) -> list[CrawlResult]:
        """
        Breadth-first crawl following internal links.

        URLs are compared with their fragment stripped. Each level crawls
        the current frontier as a batch; unvisited internal links found on
        it form the next frontier. Stops when the frontier is empty or
        after ``max_depth`` levels.
        """
        visited: set[str] = set()
        # dict keys keep discovery order while deduplicating
        frontier = dict.fromkeys(normalize_url(url) for url in start_urls)
        results: list[CrawlResult] = []

        for depth in range(max_depth):
            urls_to_crawl = [url for url in frontier if url not in visited]
            if not urls_to_crawl:
                break

            if depth > 0 and self.depth_delay_seconds > 0:
                await asyncio.sleep(self.depth_delay_seconds)

            visited.update(urls_to_crawl)
            level_results = await self.crawl_batch(urls_to_crawl, max_concurrent)

            next_frontier: dict[str, None] = {}
            for result in level_results:
                if not result.markdown:
                    continue
                results.append(result)
                for link in result.links:
                    if not link.internal:
                        continue
                    next_url = normalize_url(link.url)
                    if next_url not in visited:
                        next_frontier[next_url] = None

            logger.info(
                "depth_crawled",
                depth=depth + 1,
                pages=len(level_results),
                next_frontier=len(next_frontier),
            )
            frontier = next_frontier

        return results

    async def parse_sitemap(self, sitemap_url: str) -> list[str]:
        """Fetch a sitemap and return its <loc> URLs (empty on failure)."""
        try:
            body = await self._fetch_text(sitemap_url)
        except TransientNetworkError as e:
            logger.warning("sitemap_fetch_failed", url=sitemap_url, error=str(e))
            return []
        urls = extract_sitemap_urls(body)
        logger.info("sitemap_parsed", url=sitemap_url, urls=len(urls))
        return urls

    async def crawl_sitemap(self, sitemap_url: str, max_concurrent: int = 10) -> list[CrawlResult]:
        """Crawl every page listed in a sitemap."""
        urls = await self.parse_sitemap(sitemap_url)
        if not urls:
            return []
        return await self.crawl_batch(urls, max_concurrent)

    async def crawl_text_file(self, url: str) -> list[CrawlResult]:
        """Fetch a plain text file; its body is used as markdown verbatim."""
        try:
            body = await self._fetch_text(url)
        except TransientNetworkError as e:
            logger.warning("text_fetch_failed", url=url, error=str(e))
            return []
        if not body.strip():
            logger.warning("text_file_empty", url=url)
            return []
        return [CrawlResult(url=url, markdown=body)]

    async def _fetch_text(self, url: str) -> str:
        try:
            response = await self.client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise TransientNetworkError(f"Fetching {url} failed: {e}") from e
        if response.status_code >= 400:
            raise TransientNetworkError(
                f"Fetching {url} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response.text
