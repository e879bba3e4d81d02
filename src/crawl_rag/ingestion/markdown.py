"""HTML to markdown conversion and link extraction."""

import re
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment, Doctype, NavigableString, Tag

from crawl_rag.ingestion.urls import origin_of
from crawl_rag.models.document import LinkInfo


class MarkdownConverter:
    """
    Convert rendered HTML into markdown text.

    Best-effort: keeps headings, paragraphs, emphasis, code, lists, quotes,
    links, images and tables, and drops page chrome (scripts, styles,
    navigation, headers and footers).
    """

    STRIP_TAGS = ("script", "style", "nav", "footer", "header", "noscript")
    HEADING_TAGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}

    # Cleanup patterns
    EXCESS_NEWLINES_PATTERN = re.compile(r"\n{3,}")
    WHITESPACE_PATTERN = re.compile(r"\s+")
    EMPTY_LINK_PATTERN = re.compile(r"\[([^\]]*)\]\(\)")

    def html_to_markdown(self, html: str) -> str:
        """
        Convert an HTML document into markdown.

        Args:
            html: Raw HTML

        Returns:
            Markdown text (may be empty)
        """
        soup = BeautifulSoup(html, "html.parser")

        for tag in soup.find_all(self.STRIP_TAGS):
            tag.decompose()

        root = soup.find("main") or soup.find("article") or soup.find("body") or soup
        markdown = self._process_element(root)

        markdown = self.EXCESS_NEWLINES_PATTERN.sub("\n\n", markdown)
        markdown = markdown.strip()
        markdown = self.EMPTY_LINK_PATTERN.sub(r"\1", markdown)
        return markdown

    def extract_links(self, html: str, base_url: str) -> list[LinkInfo]:
        """
        Extract every anchor from the page.

        Args:
            html: Raw HTML
            base_url: URL the page was fetched from, used to resolve relative links

        Returns:
            Links with their text and whether they stay on the page's origin
        """
        soup = BeautifulSoup(html, "html.parser")
        origin = origin_of(base_url)
        links = []

        for anchor in soup.select("a[href]"):
            href = anchor.get("href", "").strip()
            if not href:
                continue
            try:
                full_url = urljoin(base_url, href)
                internal = origin_of(full_url) == origin
            except ValueError:
                # Unparseable href, e.g. a malformed IPv6 host
                continue
            links.append(LinkInfo(url=full_url, text=anchor.get_text(strip=True), internal=internal))

        return links

    def _process_element(self, element: Tag) -> str:
        result = ""

        for child in element.children:
            if isinstance(child, (Comment, Doctype)):
                continue
            if isinstance(child, NavigableString):
                text = self.WHITESPACE_PATTERN.sub(" ", str(child))
                if text.strip():
                    result += text
                continue
            if not isinstance(child, Tag):
                continue

            name = child.name.lower()
            text = child.get_text().strip()

            if name in self.HEADING_TAGS:
                result += f"\n{'#' * self.HEADING_TAGS[name]} {text}\n\n"
            elif name == "p":
                result += "\n" + self._process_element(child).strip() + "\n\n"
            elif name == "br":
                result += "\n"
            elif name in ("strong", "b"):
                result += f"**{text}**"
            elif name in ("em", "i"):
                result += f"*{text}*"
            elif name == "code":
                result += f"`{text}`"
            elif name == "pre":
                code = child.find("code")
                language = self._code_language(code) if code else ""
                body = (code or child).get_text().strip("\n")
                result += f"\n```{language}\n{body}\n```\n\n"
            elif name == "blockquote":
                quoted = "\n".join(f"> {line.strip()}" for line in text.split("\n"))
                result += f"\n{quoted}\n\n"
            elif name in ("ul", "ol"):
                result += "\n" + self._process_list(child, ordered=name == "ol") + "\n"
            elif name == "a":
                href = child.get("href")
                result += f"[{text}]({href})" if href and text else text
            elif name == "img":
                src = child.get("src")
                if src:
                    result += f"![{child.get('alt', '')}]({src})"
            elif name == "table":
                result += "\n" + self._process_table(child) + "\n"
            else:
                result += self._process_element(child)

        return result

    def _process_list(self, list_element: Tag, ordered: bool = False) -> str:
        lines = []
        for index, item in enumerate(list_element.find_all("li", recursive=False)):
            prefix = f"{index + 1}. " if ordered else "- "
            lines.append(prefix + self._process_element(item).strip())
        return "\n".join(lines) + "\n"

    def _process_table(self, table: Tag) -> str:
        rows = table.find_all("tr")
        if not rows:
            return ""

        lines = []
        headers = [cell.get_text(strip=True) for cell in rows[0].find_all(["th", "td"])]
        if headers:
            lines.append("| " + " | ".join(headers) + " |")
            lines.append("| " + " | ".join("---" for _ in headers) + " |")

        for row in rows[1:]:
            cells = [cell.get_text(strip=True) for cell in row.find_all(["td", "th"])]
            if cells:
                lines.append("| " + " | ".join(cells) + " |")

        return "\n".join(lines) + "\n"

    @staticmethod
    def _code_language(code: Tag) -> str:
        # Highlighters mark the language as class="language-python" or "lang-python"
        for css_class in code.get("class") or []:
            for prefix in ("language-", "lang-"):
                if css_class.startswith(prefix):
                    return css_class[len(prefix):]
        return ""
