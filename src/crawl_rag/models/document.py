"""Data models for crawl targets, crawl results, chunks and stored records."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TargetKind = Literal["text_file", "sitemap", "webpage"]


class CrawlTarget(BaseModel):
    """A URL classified by the crawl strategy it needs."""

    model_config = ConfigDict(frozen=True)

    url: str
    kind: TargetKind


class LinkInfo(BaseModel):
    """An outbound link discovered on a rendered page."""

    url: str
    text: str = ""
    internal: bool = False


class CrawlResult(BaseModel):
    """Outcome of fetching a single URL."""

    url: str
    html: str = ""
    markdown: str = ""
    links: list[LinkInfo] = Field(default_factory=list)
    success: bool = True
    error: str | None = None

    @classmethod
    def failed(cls, url: str, error: str) -> "CrawlResult":
        return cls(url=url, success=False, error=error)


class SectionInfo(BaseModel):
    """Lightweight statistics derived from a chunk."""

    word_count: int
    char_count: int
    heading: str
    line_count: int


class CodeBlock(BaseModel):
    """A fenced code block lifted out of markdown with its surroundings."""

    code: str
    language: str = ""
    context_before: str = ""
    context_after: str = ""

    @property
    def full_context(self) -> str:
        return f"{self.context_before}\n\n{self.code}\n\n{self.context_after}"


class Source(BaseModel):
    """Aggregate metadata for one content origin (normalized hostname)."""

    source_id: str
    summary: str = ""
    total_word_count: int = 0
    owner: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class StoredDocument(BaseModel):
    """A chunk row ready for (or read back from) the crawled_pages table."""

    id: int | None = None
    url: str
    chunk_number: int
    content: str
    metadata: dict = Field(default_factory=dict)
    source_id: str
    embedding: list[float] = Field(default_factory=list)
    owner: str | None = None


class CodeExampleRecord(StoredDocument):
    """A code example row for the code_examples table."""

    summary: str = ""
