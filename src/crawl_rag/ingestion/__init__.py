"""Ingestion package."""

from crawl_rag.ingestion.chunker import extract_section_info, smart_chunk_markdown
from crawl_rag.ingestion.code_blocks import extract_code_blocks
from crawl_rag.ingestion.crawler import WebCrawler
from crawl_rag.ingestion.markdown import MarkdownConverter
from crawl_rag.ingestion.render import RenderClient
from crawl_rag.ingestion.urls import classify_url, extract_source_id, normalize_url

__all__ = [
    "MarkdownConverter",
    "RenderClient",
    "WebCrawler",
    "classify_url",
    "extract_code_blocks",
    "extract_section_info",
    "extract_source_id",
    "normalize_url",
    "smart_chunk_markdown",
]
