"""Models package."""

from crawl_rag.models.document import (
    CodeBlock,
    CodeExampleRecord,
    CrawlResult,
    CrawlTarget,
    LinkInfo,
    SectionInfo,
    Source,
    StoredDocument,
    TargetKind,
)
from crawl_rag.models.search import (
    RetrievalOutcome,
    SearchMode,
    SearchResponse,
    SearchResult,
)

__all__ = [
    "CodeBlock",
    "CodeExampleRecord",
    "CrawlResult",
    "CrawlTarget",
    "LinkInfo",
    "RetrievalOutcome",
    "SearchMode",
    "SearchResponse",
    "SearchResult",
    "SectionInfo",
    "Source",
    "StoredDocument",
    "TargetKind",
]
