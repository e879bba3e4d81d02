"""Command-line interface for crawl-rag."""

import argparse
import asyncio
import json
import sys

import structlog
import uvicorn

from crawl_rag.config import get_settings
from crawl_rag.ingestion.pipeline import list_sources
from crawl_rag.services import build_services

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(0),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


def _print_json(payload: dict):
    print(json.dumps(payload, indent=2, default=str))


async def _with_services(operation):
    services = await build_services()
    try:
        return await operation(services)
    finally:
        await services.close()


def _require_pipeline(services):
    if services.pipeline is None:
        logger.error("render_service_not_configured", hint="set CRAWL_RAG_RENDER_TOKEN")
        sys.exit(1)
    return services.pipeline


def cmd_serve(args):
    """Start the API server."""
    settings = get_settings()
    host = args.host or settings.host
    port = args.port or settings.port

    logger.info("starting_server", host=host, port=port)

    uvicorn.run(
        "crawl_rag.api.app:app",
        host=host,
        port=port,
        reload=args.reload,
    )


def cmd_crawl(args):
    """Smart crawl a URL (webpage, sitemap or text file)."""
    settings = get_settings()
    logger.info("starting_crawl", url=args.url)

    async def run(services):
        return await _require_pipeline(services).smart_crawl_url(
            args.url,
            max_depth=args.max_depth or settings.default_max_depth,
            max_concurrent=args.max_concurrent or settings.default_max_concurrent,
            chunk_size=args.chunk_size or settings.default_chunk_size,
            owner=args.owner,
        )

    result = asyncio.run(_with_services(run))
    _print_json(result)
    if not result["success"]:
        sys.exit(1)


def cmd_crawl_page(args):
    """Crawl a single page without following links."""
    settings = get_settings()

    async def run(services):
        return await _require_pipeline(services).crawl_single_page(
            args.url,
            chunk_size=args.chunk_size or settings.single_page_chunk_size,
            owner=args.owner,
        )

    result = asyncio.run(_with_services(run))
    _print_json(result)
    if not result["success"]:
        sys.exit(1)


def cmd_search(args):
    """Test search from command line."""

    async def run(services):
        return await services.search.perform_rag_query(
            args.query, source=args.source, match_count=args.match_count, owner=args.owner
        )

    response = asyncio.run(_with_services(run))
    if not response.success:
        logger.error("search_failed", error=response.error)
        sys.exit(1)

    print(f"\n Query: {response.query}")
    print(f" Mode: {response.search_mode} | Reranked: {response.reranking_applied}\n")

    for i, result in enumerate(response.results, 1):
        print(f"{i}. {result.url} (chunk {result.chunk_number})")
        print(f"    Source: {result.source_id} | Similarity: {result.similarity:.4f}")
        if result.rerank_score is not None:
            print(f"    Rerank: {result.rerank_score:.4f}")
        print(f"   {result.content[:200].replace(chr(10), ' ')}...")
        print()


def cmd_search_code(args):
    """Search extracted code examples."""

    async def run(services):
        return await services.search.search_code_examples(
            args.query, source_id=args.source, match_count=args.match_count, owner=args.owner
        )

    response = asyncio.run(_with_services(run))
    _print_json(response.model_dump())
    if not response.success:
        sys.exit(1)


def cmd_sources(args):
    """List crawled sources."""

    async def run(services):
        return await list_sources(services.db, args.owner)

    _print_json(asyncio.run(_with_services(run)))


def main():
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        prog="crawl-rag",
        description="Web crawling and hybrid retrieval for RAG",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", type=str, help="Host to bind to")
    serve_parser.add_argument("--port", type=int, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve_parser.set_defaults(func=cmd_serve)

    # crawl command
    crawl_parser = subparsers.add_parser("crawl", help="Smart crawl a URL and store its content")
    crawl_parser.add_argument("url", help="Webpage, sitemap.xml or .txt URL")
    crawl_parser.add_argument("--max-depth", "-d", type=int, help="Link depth for webpages")
    crawl_parser.add_argument("--max-concurrent", "-c", type=int, help="Pages rendered per batch")
    crawl_parser.add_argument("--chunk-size", type=int, help="Maximum characters per chunk")
    crawl_parser.add_argument("--owner", help="Owner scope for stored rows")
    crawl_parser.set_defaults(func=cmd_crawl)

    # crawl-page command
    page_parser = subparsers.add_parser("crawl-page", help="Crawl a single page")
    page_parser.add_argument("url", help="Page URL")
    page_parser.add_argument("--chunk-size", type=int, help="Maximum characters per chunk")
    page_parser.add_argument("--owner", help="Owner scope for stored rows")
    page_parser.set_defaults(func=cmd_crawl_page)

    # search command
    search_parser = subparsers.add_parser("search", help="Test search from CLI")
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("--source", "-s", help="Restrict to one source_id")
    search_parser.add_argument("--match-count", "-k", type=int, default=5, help="Number of results")
    search_parser.add_argument("--owner", help="Owner scope")
    search_parser.set_defaults(func=cmd_search)

    # search-code command
    code_parser = subparsers.add_parser("search-code", help="Search code examples")
    code_parser.add_argument("query", help="Search query")
    code_parser.add_argument("--source", "-s", help="Restrict to one source_id")
    code_parser.add_argument("--match-count", "-k", type=int, default=5, help="Number of results")
    code_parser.add_argument("--owner", help="Owner scope")
    code_parser.set_defaults(func=cmd_search_code)

    # sources command
    sources_parser = subparsers.add_parser("sources", help="List crawled sources")
    sources_parser.add_argument("--owner", help="Owner scope")
    sources_parser.set_defaults(func=cmd_sources)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
