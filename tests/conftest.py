"""Shared fixtures: temporary SQLite database and fake provider clients."""

from __future__ import annotations

import zlib
from types import SimpleNamespace

import httpx
import openai
import pytest

from crawl_rag.errors import TransientNetworkError
from crawl_rag.llm.chat import ChatClient
from crawl_rag.llm.embeddings import EmbeddingClient
from crawl_rag.storage.database import Database

DIMENSIONS = 16


def bag_of_words_vector(text: str, dimensions: int = DIMENSIONS) -> list[float]:
    """Deterministic embedding: word counts hashed into buckets."""
    vector = [0.0] * dimensions
    for word in text.lower().split():
        vector[zlib.crc32(word.encode()) % dimensions] += 1.0
    return vector


def connection_error() -> openai.APIConnectionError:
    return openai.APIConnectionError(request=httpx.Request("POST", "https://llm.test/v1"))


class FakeEmbeddingsAPI:
    """Mimics ``AsyncOpenAI().embeddings``."""

    def __init__(
        self,
        fail_texts: set[str] | None = None,
        fail_batches: bool = False,
        drop_last: bool = False,
        fail_times: dict[str, int] | None = None,
    ):
        self.fail_texts = fail_texts or set()
        # Texts that fail for their first N requests, then succeed
        self.fail_times = dict(fail_times or {})
        self.fail_batches = fail_batches
        self.drop_last = drop_last
        self.calls: list[list[str]] = []

    async def create(self, model: str, input: list[str], dimensions: int):
        self.calls.append(list(input))
        if self.fail_batches and len(input) > 1:
            raise connection_error()
        if any(text in self.fail_texts for text in input):
            raise connection_error()
        flaky = [text for text in input if self.fail_times.get(text, 0) > 0]
        if flaky:
            for text in flaky:
                self.fail_times[text] -= 1
            raise connection_error()
        items = [
            SimpleNamespace(index=i, embedding=bag_of_words_vector(text, dimensions))
            for i, text in enumerate(input)
        ]
        if self.drop_last:
            items = items[:-1]
        return SimpleNamespace(data=items)


class FakeChatAPI:
    """Mimics ``AsyncOpenAI().chat.completions``."""

    def __init__(self, reply: str | None = "A short context.", fail: bool = False):
        self.reply = reply
        self.fail = fail
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.fail:
            raise connection_error()
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai(embeddings: FakeEmbeddingsAPI | None = None, chat: FakeChatAPI | None = None):
    return SimpleNamespace(
        embeddings=embeddings or FakeEmbeddingsAPI(),
        chat=SimpleNamespace(completions=chat or FakeChatAPI()),
    )


class FakeRenderer:
    """Serves canned HTML per URL; unknown URLs fail like an unreachable page."""

    def __init__(self, pages: dict[str, str]):
        self.pages = pages
        self.requested: list[str] = []

    async def content(self, url: str) -> str:
        self.requested.append(url)
        if url not in self.pages:
            raise TransientNetworkError(f"Render service returned 404 for {url}", status_code=404)
        return self.pages[url]


@pytest.fixture
async def db(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await database.init()
    yield database
    await database.dispose()


@pytest.fixture
def embeddings_api():
    return FakeEmbeddingsAPI()


@pytest.fixture
def chat_api():
    return FakeChatAPI()


@pytest.fixture
def openai_client(embeddings_api, chat_api):
    return fake_openai(embeddings_api, chat_api)


@pytest.fixture
def embedding_client(openai_client):
    return EmbeddingClient(openai_client, dimensions=DIMENSIONS)


@pytest.fixture
def chat_client(openai_client):
    return ChatClient(openai_client, model="test-model")
