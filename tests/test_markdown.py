"""Tests for HTML to markdown conversion and link extraction."""

import pytest

from crawl_rag.ingestion.markdown import MarkdownConverter


@pytest.fixture
def converter():
    return MarkdownConverter()


PAGE = """
<html>
<head><title>Docs</title><style>body { color: red; }</style></head>
<body>
  <nav><a href="/nav-only">Navigation</a></nav>
  <header>Site header</header>
  <main>
    <h1>Getting Started</h1>
    <p>Install the <strong>client</strong> with <code>pip</code>.</p>
    <pre><code class="language-python">import client
client.run()
</code></pre>
    <ul><li>First</li><li>Second</li></ul>
    <ol><li>One</li><li>Two</li></ol>
    <blockquote>Be careful</blockquote>
    <p>See the <a href="/guide#setup">guide</a> or <a href="https://other.org/x">elsewhere</a>.</p>
    <table>
      <tr><th>Name</th><th>Value</th></tr>
      <tr><td>timeout</td><td>30</td></tr>
    </table>
  </main>
  <script>console.log("tracking")</script>
  <footer>Footer text</footer>
</body>
</html>
"""


class TestHtmlToMarkdown:
    def test_headings_and_inline_formatting(self, converter):
        markdown = converter.html_to_markdown(PAGE)

        assert "# Getting Started" in markdown
        assert "**client**" in markdown
        assert "`pip`" in markdown

    def test_code_block_keeps_language(self, converter):
        markdown = converter.html_to_markdown(PAGE)

        assert "```python\nimport client\nclient.run()\n```" in markdown

    def test_lists_and_quotes(self, converter):
        markdown = converter.html_to_markdown(PAGE)

        assert "- First\n- Second" in markdown
        assert "1. One\n2. Two" in markdown
        assert "> Be careful" in markdown

    def test_links_and_tables(self, converter):
        markdown = converter.html_to_markdown(PAGE)

        assert "[guide](/guide#setup)" in markdown
        assert "| Name | Value |" in markdown
        assert "| timeout | 30 |" in markdown

    def test_chrome_is_stripped(self, converter):
        markdown = converter.html_to_markdown(PAGE)

        assert "tracking" not in markdown
        assert "Navigation" not in markdown
        assert "Footer text" not in markdown
        assert "Site header" not in markdown

    def test_no_runs_of_blank_lines(self, converter):
        assert "\n\n\n" not in converter.html_to_markdown(PAGE)

    def test_empty_document(self, converter):
        assert converter.html_to_markdown("<html><body></body></html>") == ""


class TestExtractLinks:
    def test_links_are_resolved_and_classified(self, converter):
        links = converter.extract_links(PAGE, "https://docs.example.com/start")
        by_url = {link.url: link for link in links}

        assert by_url["https://docs.example.com/guide#setup"].internal is True
        assert by_url["https://docs.example.com/guide#setup"].text == "guide"
        assert by_url["https://other.org/x"].internal is False

    def test_links_in_navigation_are_still_discovered(self, converter):
        links = converter.extract_links(PAGE, "https://docs.example.com/start")

        assert "https://docs.example.com/nav-only" in {link.url for link in links}

    def test_different_scheme_is_external(self, converter):
        html = '<a href="http://docs.example.com/page">plain</a>'

        links = converter.extract_links(html, "https://docs.example.com/")

        assert links[0].internal is False

    def test_anchors_without_href_are_ignored(self, converter):
        html = '<a name="top">Top</a><a href="">empty</a><a href="/ok">ok</a>'

        links = converter.extract_links(html, "https://docs.example.com/")

        assert [link.url for link in links] == ["https://docs.example.com/ok"]
