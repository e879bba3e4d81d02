"""Line-preserving markdown chunker and per-chunk section statistics."""

import re

from crawl_rag.models.document import SectionInfo

HEADING_PATTERN = re.compile(r"^#{1,6}\s+")
NO_HEADING = "No heading"


def smart_chunk_markdown(markdown: str, max_chunk_size: int = 5000) -> list[str]:
    """
    Split markdown into chunks of at most ``max_chunk_size`` characters.

    Lines are accumulated greedily and never split, so headings, list items
    and code fences survive intact. A single line longer than the limit
    becomes its own oversized chunk.

    Args:
        markdown: Markdown content
        max_chunk_size: Maximum characters per chunk

    Returns:
        Whitespace-trimmed, non-empty chunks in document order
    """
    chunks = []
    current_lines: list[str] = []
    current_size = 0

    for line in markdown.split("\n"):
        line_size = len(line) + 1  # +1 for the newline

        if current_size + line_size > max_chunk_size and "".join(current_lines).strip():
            chunks.append("\n".join(current_lines).strip())
            current_lines = []
            current_size = 0

        current_lines.append(line)
        current_size += line_size

    tail = "\n".join(current_lines).strip()
    if tail:
        chunks.append(tail)

    return chunks


def extract_section_info(chunk: str) -> SectionInfo:
    """Derive word/char/line counts and the first heading of a chunk."""
    lines = chunk.split("\n")

    heading = ""
    for line in lines:
        if HEADING_PATTERN.match(line):
            heading = HEADING_PATTERN.sub("", line).strip()
            break

    return SectionInfo(
        word_count=len(chunk.split()),
        char_count=len(chunk),
        heading=heading or NO_HEADING,
        line_count=len(lines),
    )
