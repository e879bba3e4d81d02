"""Extract fenced code blocks, with surrounding prose, from markdown."""

from crawl_rag.models.document import CodeBlock

FENCE = "```"
MAX_LANGUAGE_LENGTH = 20


def extract_code_blocks(
    markdown: str,
    min_length: int = 1000,
    context_chars: int = 1000,
) -> list[CodeBlock]:
    """
    Find ``` fenced blocks whose body is at least ``min_length`` characters.

    Fences are paired in order of appearance. When the document itself
    opens with a fence, that fence is skipped. The first body line is taken
    as the language when it is a short single token (e.g. "python").

    Args:
        markdown: Markdown content
        min_length: Minimum code length to keep
        context_chars: Characters of surrounding text captured on each side

    Returns:
        Code blocks in document order
    """
    positions = []
    start = 0
    while True:
        pos = markdown.find(FENCE, start)
        if pos == -1:
            break
        positions.append(pos)
        start = pos + len(FENCE)

    if markdown.lstrip().startswith(FENCE) and positions:
        positions = positions[1:]

    blocks = []
    for i in range(0, len(positions) - 1, 2):
        open_pos = positions[i]
        close_pos = positions[i + 1]

        body = markdown[open_pos + len(FENCE):close_pos]
        first_line, newline, rest = body.partition("\n")
        if newline and first_line.strip() and " " not in first_line.strip() and len(first_line.strip()) < MAX_LANGUAGE_LENGTH:
            language = first_line.strip()
            code = rest.strip()
        else:
            language = ""
            code = body.strip()

        if len(code) < min_length:
            continue

        context_start = max(0, open_pos - context_chars)
        context_end = min(len(markdown), close_pos + len(FENCE) + context_chars)
        blocks.append(
            CodeBlock(
                code=code,
                language=language,
                context_before=markdown[context_start:open_pos].strip(),
                context_after=markdown[close_pos + len(FENCE):context_end].strip(),
            )
        )

    return blocks
