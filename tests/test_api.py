"""API tests over ASGI with services wired to fakes."""

import json

import httpx
import pytest

from crawl_rag.api.app import create_app
from crawl_rag.config import Settings
from crawl_rag.services import build_services
from tests.conftest import DIMENSIONS, fake_openai

PAGES = {
    "https://ex.com/install": (
        "<html><body><h1>Install</h1><p>Install the python client with pip.</p></body></html>"
    ),
}


def render_handler(request: httpx.Request) -> httpx.Response:
    url = json.loads(request.content)["url"]
    if request.url.path == "/content" and url in PAGES:
        return httpx.Response(200, text=PAGES[url])
    return httpx.Response(404)


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "data_dir": tmp_path,
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        "render_url": "https://render.test",
        "render_token": "token",
        "llm_api_key": "key",
        "embedding_dimensions": DIMENSIONS,
        "batch_delay_seconds": 0,
        "depth_delay_seconds": 0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
async def build_client(tmp_path):
    opened = []

    async def build(**overrides) -> httpx.AsyncClient:
        services = await build_services(
            make_settings(tmp_path, **overrides),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(render_handler)),
            openai_client=fake_openai(),
        )
        app = create_app(services)
        app.state.services = services
        client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")
        opened.append((client, services))
        return client

    yield build

    for api_client, services in opened:
        await api_client.aclose()
        await services.close()


@pytest.fixture
async def client(build_client):
    return await build_client()


async def test_root(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["name"] == "crawl-rag"


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "components": {"database": "ok", "crawler": "ok", "llm": "ok"},
        "search_mode": "hybrid",
    }


async def test_ingest_then_search(client):
    ingest = await client.post("/ingest/page", json={"url": "https://ex.com/install"})

    assert ingest.status_code == 200
    body = ingest.json()
    assert body["success"] is True
    assert body["chunks_stored"] == 1
    assert body["source_id"] == "ex.com"

    search = await client.post("/search", json={"query": "python client"})

    results = search.json()
    assert results["success"] is True
    assert results["search_mode"] == "hybrid"
    assert results["count"] == 1
    assert results["results"][0]["url"] == "https://ex.com/install"

    sources = (await client.get("/sources")).json()
    assert [s["source_id"] for s in sources["sources"]] == ["ex.com"]


async def test_owner_header_scopes_results(client):
    await client.post(
        "/ingest/page", json={"url": "https://ex.com/install"}, headers={"X-Owner-Id": "alice"}
    )

    mine = await client.post("/search", json={"query": "python"}, headers={"X-Owner-Id": "alice"})
    theirs = await client.post("/search", json={"query": "python"}, headers={"X-Owner-Id": "bob"})

    assert mine.json()["count"] == 1
    assert theirs.json()["count"] == 0


async def test_smart_crawl_failure_is_reported(client):
    response = await client.post("/ingest/smart", json={"url": "https://ex.com/missing"})

    assert response.status_code == 200
    assert response.json()["success"] is False
    assert response.json()["error"] == "No content found"


async def test_code_search_disabled(client):
    response = await client.post("/search/code", json={"query": "retry"})

    assert response.json() == {
        "success": False,
        "query": "retry",
        "source_filter": None,
        "search_mode": None,
        "reranking_applied": False,
        "results": [],
        "count": 0,
        "error": "Code example extraction is disabled. Perform a normal RAG search.",
    }


async def test_invalid_match_count_is_rejected(client):
    response = await client.post("/search", json={"query": "x", "match_count": 50})

    assert response.status_code == 422


async def test_ingest_unavailable_without_render_token(build_client):
    client = await build_client(render_token=None)

    response = await client.post("/ingest/page", json={"url": "https://ex.com/install"})
    health = await client.get("/health")

    assert response.status_code == 503
    assert health.json()["status"] == "degraded"
    assert health.json()["components"]["crawler"] == "not_configured"


async def test_metrics_endpoint(client):
    await client.post("/search", json={"query": "anything"})

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert "crawl_rag_search_requests_total" in response.text
