"""Tests for the headless render client."""

import base64
import json

import httpx
import pytest

from crawl_rag.errors import ConfigurationError, TransientNetworkError
from crawl_rag.ingestion.render import RenderClient


def make_client(handler) -> RenderClient:
    return RenderClient(
        "https://render.test/",
        "secret-token",
        httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        timeout_seconds=10.0,
    )


def test_missing_token_is_configuration_error():
    with pytest.raises(ConfigurationError):
        RenderClient("https://render.test", None, httpx.AsyncClient())


async def test_content_posts_url_and_goto_options():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["token"] = request.url.params["token"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, text="<html>ok</html>")

    html = await make_client(handler).content("https://ex.com/page")

    assert html == "<html>ok</html>"
    assert seen["path"] == "/content"
    assert seen["token"] == "secret-token"
    assert seen["body"] == {
        "url": "https://ex.com/page",
        "gotoOptions": {"waitUntil": "networkidle2", "timeout": 10000},
    }


async def test_screenshot_is_base64_encoded():
    image = b"\x89PNG fake image bytes"

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/screenshot"
        return httpx.Response(200, content=image)

    encoded = await make_client(handler).screenshot("https://ex.com/")

    assert base64.b64decode(encoded) == image


async def test_execute_script_returns_json():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert request.url.path == "/function"
        assert body["code"] == "return document.title"
        assert body["context"] == {"limit": 3}
        return httpx.Response(200, json={"title": "Example"})

    result = await make_client(handler).execute_script(
        "https://ex.com/", "return document.title", context={"limit": 3}
    )

    assert result == {"title": "Example"}


async def test_error_status_raises_transient_error():
    client = make_client(lambda request: httpx.Response(503))

    with pytest.raises(TransientNetworkError) as exc_info:
        await client.content("https://ex.com/")

    assert exc_info.value.status_code == 503


async def test_connection_error_raises_transient_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(TransientNetworkError):
        await make_client(handler).content("https://ex.com/")
