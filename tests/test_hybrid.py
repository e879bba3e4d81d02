"""Tests for hybrid merging, reranking and the retriever."""

import pytest

from crawl_rag.api.service import SearchService
from crawl_rag.errors import TransientNetworkError
from crawl_rag.llm.embeddings import EmbeddingClient
from crawl_rag.models.search import SearchResult
from crawl_rag.retrieval.hybrid import HybridRetriever, code_query_text, merge_hybrid_results
from crawl_rag.retrieval.rerank import apply_rerank
from crawl_rag.storage.writer import StorageWriter
from tests.conftest import DIMENSIONS, FakeEmbeddingsAPI, fake_openai

URL = "https://docs.example.com/guide"


def result(id: int, similarity: float = 0.0) -> SearchResult:
    return SearchResult(id=id, url=f"https://ex.com/{id}", content=f"doc {id}", source_id="ex.com", similarity=similarity)


class FakeReranker:
    name = "fake"

    def __init__(self, scores=None, error=None):
        self.scores = scores
        self.error = error

    async def rerank(self, query, documents):
        if self.error:
            raise self.error
        return list(enumerate(self.scores))


class TestMergeHybridResults:
    def test_shared_rows_come_first_with_boost(self):
        vector = [result(1, 0.9), result(2, 0.8), result(3, 0.7), result(4, 0.6)]
        keyword = [result(3), result(1), result(5)]

        merged = merge_hybrid_results(vector, keyword, match_count=5)

        assert [r.id for r in merged] == [3, 1, 2, 4, 5]
        assert merged[0].similarity == pytest.approx(0.84)
        assert merged[1].similarity == 1.0
        assert merged[2].similarity == 0.8
        assert merged[4].similarity == 0.5

    def test_never_exceeds_match_count(self):
        vector = [result(i, 0.5) for i in range(10)]
        keyword = [result(i) for i in range(20, 30)]

        merged = merge_hybrid_results(vector, keyword, match_count=3)

        assert [r.id for r in merged] == [0, 1, 2]

    def test_no_duplicate_ids(self):
        vector = [result(1, 0.4), result(2, 0.3)]
        keyword = [result(2), result(2), result(1)]

        merged = merge_hybrid_results(vector, keyword, match_count=10)

        assert [r.id for r in merged] == [2, 1]

    def test_inputs_are_not_mutated(self):
        vector = [result(1, 0.9)]

        merge_hybrid_results(vector, [result(1)], match_count=5, boost=2.0)

        assert vector[0].similarity == 0.9

    def test_keyword_only(self):
        merged = merge_hybrid_results([], [result(7), result(8)], match_count=5, keyword_similarity=0.4)

        assert [(r.id, r.similarity) for r in merged] == [(7, 0.4), (8, 0.4)]


class TestApplyRerank:
    async def test_sorts_by_score(self):
        results = [result(1), result(2), result(3)]

        reranked, applied = await apply_rerank(FakeReranker(scores=[0.1, 0.9, 0.5]), "q", results)

        assert applied is True
        assert [r.id for r in reranked] == [2, 3, 1]
        assert reranked[0].rerank_score == 0.9

    async def test_failure_keeps_original_order(self):
        results = [result(1), result(2)]
        reranker = FakeReranker(error=TransientNetworkError("provider down", status_code=502))

        reranked, applied = await apply_rerank(reranker, "q", results)

        assert applied is False
        assert reranked == results

    async def test_empty_input(self):
        assert await apply_rerank(FakeReranker(scores=[]), "q", []) == ([], False)


def test_code_query_text():
    assert code_query_text("retry") == "Code example for retry\n\nSummary: Example code showing retry"


class TestHybridRetriever:
    @pytest.fixture
    async def populated(self, db, embedding_client):
        writer = StorageWriter(db, embedding_client)
        await writer.upsert_source("docs.example.com", "Docs", 10)
        contents = ["install the python client", "configure logging output"]
        await writer.replace_documents(
            [URL, URL],
            [0, 1],
            contents,
            [{"source": "docs.example.com"}, {"source": "docs.example.com"}],
            {URL: "\n".join(contents)},
        )
        await writer.replace_code_examples(
            [URL], [0], ["client.retry(3)"], ["Retry with backoff"], [{"source": "docs.example.com"}]
        )
        return db

    async def test_hybrid_search_boosts_keyword_matches(self, populated, embedding_client):
        retriever = HybridRetriever(populated, embedding_client)

        outcome = await retriever.search("python client", match_count=5)

        assert outcome.search_mode == "hybrid"
        assert outcome.rerank_applied is False
        assert outcome.results[0].content == "install the python client"
        assert outcome.results[0].similarity == pytest.approx(min(1.0, 2 ** -0.5 * 1.2))

    async def test_vector_only_mode(self, populated, embedding_client):
        retriever = HybridRetriever(populated, embedding_client, use_hybrid_search=False)

        outcome = await retriever.search("python client", match_count=1)

        assert outcome.search_mode == "vector"
        assert len(outcome.results) == 1
        assert outcome.results[0].similarity == pytest.approx(2 ** -0.5)

    async def test_source_filter(self, populated, embedding_client):
        retriever = HybridRetriever(populated, embedding_client)

        outcome = await retriever.search("python client", source="other.com")

        assert outcome.results == []

    async def test_code_search_matches_summary(self, populated, embedding_client):
        retriever = HybridRetriever(populated, embedding_client)

        outcome = await retriever.search_code_examples("backoff")

        assert [r.summary for r in outcome.results] == ["Retry with backoff"]

    async def test_reranker_reorders_results(self, populated, embedding_client):
        retriever = HybridRetriever(populated, embedding_client, reranker=FakeReranker(scores=[0.1, 0.9]))

        outcome = await retriever.search("python client", match_count=5)

        assert outcome.rerank_applied is True
        assert outcome.results[0].content == "configure logging output"

    async def test_reranker_error_keeps_merged_results(self, populated, embedding_client):
        reranker = FakeReranker(error=ValueError("tokenizer blew up"))
        service = SearchService(HybridRetriever(populated, embedding_client, reranker=reranker))

        response = await service.perform_rag_query("python client", match_count=5)

        assert response.success is True
        assert response.reranking_applied is False
        assert [r.content for r in response.results] == ["install the python client", "configure logging output"]


async def test_unembeddable_query_falls_back_to_keyword_hits(db):
    api = FakeEmbeddingsAPI(fail_texts={"kubernetes"})
    embeddings = EmbeddingClient(fake_openai(api), dimensions=DIMENSIONS)
    writer = StorageWriter(db, embeddings)
    await writer.upsert_source("docs.example.com", "Docs", 10)
    contents = [f"filler text number {i}" for i in range(6)] + ["deploy on kubernetes clusters"]
    await writer.replace_documents(
        [URL] * len(contents),
        list(range(len(contents))),
        contents,
        [{"source": "docs.example.com"}] * len(contents),
        {},
    )

    outcome = await HybridRetriever(db, embeddings).search("kubernetes", match_count=2)

    assert [(r.content, r.similarity) for r in outcome.results] == [("deploy on kubernetes clusters", 0.5)]
