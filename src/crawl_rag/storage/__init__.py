"""Storage package."""

from crawl_rag.storage.database import (
    Base,
    CodeExampleORM,
    CrawledPageORM,
    Database,
    SourceORM,
)
from crawl_rag.storage.repositories import (
    CodeExampleRepository,
    CrawledPageRepository,
    SourceRepository,
    cosine_similarities,
    owner_key,
)
from crawl_rag.storage.writer import InsertStats, StorageWriter

__all__ = [
    "Base",
    "CodeExampleORM",
    "CodeExampleRepository",
    "CrawledPageORM",
    "CrawledPageRepository",
    "Database",
    "InsertStats",
    "SourceORM",
    "SourceRepository",
    "StorageWriter",
    "cosine_similarities",
    "owner_key",
]
