"""Exception types shared across crawling, enrichment and storage."""


class CrawlRagError(Exception):
    """Base class for all crawl-rag errors."""


class ConfigurationError(CrawlRagError):
    """A required credential or parameter is missing. Raised at construction time."""


class TransientNetworkError(CrawlRagError):
    """A call to the render service, a model provider or the store failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EmptyContentError(CrawlRagError):
    """A fetch succeeded but produced nothing worth ingesting."""
