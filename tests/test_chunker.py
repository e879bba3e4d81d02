"""Tests for markdown chunking and section statistics."""

from crawl_rag.ingestion.chunker import extract_section_info, smart_chunk_markdown


def make_lines(count: int, width: int = 99) -> list[str]:
    return [f"{i:02d}" + "x" * (width - 2) for i in range(count)]


class TestSmartChunkMarkdown:
    def test_page_of_2500_chars_gives_three_chunks(self):
        lines = make_lines(25)
        markdown = "\n".join(lines)

        chunks = smart_chunk_markdown(markdown, max_chunk_size=1000)

        assert len(chunks) == 3
        assert [len(c.split("\n")) for c in chunks] == [10, 10, 5]

    def test_chunks_respect_size_limit(self):
        markdown = "\n".join(make_lines(40, width=57))

        chunks = smart_chunk_markdown(markdown, max_chunk_size=500)

        assert all(len(c) <= 500 for c in chunks)

    def test_chunks_reconstruct_all_lines_in_order(self):
        lines = make_lines(30, width=40)
        markdown = "# Title\n\n" + "\n".join(lines)

        chunks = smart_chunk_markdown(markdown, max_chunk_size=300)
        rebuilt = [line for chunk in chunks for line in chunk.split("\n") if line]

        assert rebuilt == ["# Title"] + lines

    def test_lines_are_never_split(self):
        markdown = "short line\n" + "y" * 120 + "\nanother"

        chunks = smart_chunk_markdown(markdown, max_chunk_size=50)

        assert "y" * 120 in chunks
        assert chunks == ["short line", "y" * 120, "another"]

    def test_small_document_is_single_chunk(self):
        assert smart_chunk_markdown("# Hello\n\nWorld", max_chunk_size=1000) == ["# Hello\n\nWorld"]

    def test_blank_input_gives_no_chunks(self):
        assert smart_chunk_markdown("", max_chunk_size=100) == []
        assert smart_chunk_markdown("\n\n   \n", max_chunk_size=100) == []

    def test_leading_blank_lines_do_not_flush_empty_chunk(self):
        markdown = "\n" * 5 + "z" * 40

        assert smart_chunk_markdown(markdown, max_chunk_size=10) == ["z" * 40]


class TestExtractSectionInfo:
    def test_first_heading_is_used(self):
        info = extract_section_info("Intro text\n## Installing\nRun it\n### Later")

        assert info.heading == "Installing"

    def test_no_heading(self):
        info = extract_section_info("just some words here")

        assert info.heading == "No heading"

    def test_hash_without_space_is_not_a_heading(self):
        assert extract_section_info("#hashtag text").heading == "No heading"

    def test_counts(self):
        chunk = "# Title\n\nalpha beta  gamma\ndelta"

        info = extract_section_info(chunk)

        assert info.word_count == 6
        assert info.char_count == len(chunk)
        assert info.line_count == 4
