"""Crawl web documentation into a searchable store and query it with hybrid retrieval."""

__version__ = "0.1.0"
