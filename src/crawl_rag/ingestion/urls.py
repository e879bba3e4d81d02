"""URL classification and normalization helpers."""

import html
import re
from urllib.parse import urldefrag, urlparse

from crawl_rag.models.document import CrawlTarget

LOC_PATTERN = re.compile(r"<loc>(.*?)</loc>", re.DOTALL | re.IGNORECASE)


def is_text_file(url: str) -> bool:
    """Check if a URL points at a plain text file (e.g. llms.txt)."""
    return url.endswith(".txt")


def is_sitemap(url: str) -> bool:
    """Check if a URL points at a sitemap XML document."""
    return "sitemap" in url and url.endswith(".xml")


def classify_url(url: str) -> CrawlTarget:
    """Classify a URL into the crawl strategy it needs."""
    if is_text_file(url):
        return CrawlTarget(url=url, kind="text_file")
    if is_sitemap(url):
        return CrawlTarget(url=url, kind="sitemap")
    return CrawlTarget(url=url, kind="webpage")


def normalize_url(url: str) -> str:
    """Strip the fragment identifier so '#section' variants dedupe."""
    return urldefrag(url)[0]


def origin_of(url: str) -> str:
    """Return 'scheme://host[:port]' for a URL."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def extract_source_id(url: str) -> str:
    """
    Derive the source identifier for a URL.

    Uses the hostname without a leading 'www.', or the path when the URL
    has no host (e.g. file paths).
    """
    parsed = urlparse(url)
    source = parsed.netloc or parsed.path
    if source.startswith("www."):
        source = source[len("www."):]
    return source


def extract_sitemap_urls(xml: str) -> list[str]:
    """
    Pull every <loc> value out of a sitemap document.

    A pattern scan rather than an XML parse, so truncated or otherwise
    malformed sitemaps still yield their well-formed entries.
    """
    return [html.unescape(match.strip()) for match in LOC_PATTERN.findall(xml) if match.strip()]
