"""Client for a browserless-style headless render service."""

import base64
from typing import Any

import httpx
import structlog

from crawl_rag.errors import ConfigurationError, TransientNetworkError

logger = structlog.get_logger()


class RenderClient:
    """
    Render pages through a remote headless browser.

    Endpoints follow the browserless REST API: ``/content`` returns the
    rendered HTML, ``/screenshot`` returns image bytes and ``/function``
    runs a script in the page context.
    """

    WAIT_UNTIL = "networkidle2"

    def __init__(
        self,
        endpoint: str,
        token: str | None,
        client: httpx.AsyncClient,
        timeout_seconds: float = 30.0,
    ):
        if not token:
            raise ConfigurationError("Render service token is not configured")
        self.endpoint = endpoint.rstrip("/")
        self.token = token
        self.client = client
        self.timeout_seconds = timeout_seconds

    def _goto_options(self) -> dict[str, Any]:
        return {"waitUntil": self.WAIT_UNTIL, "timeout": int(self.timeout_seconds * 1000)}

    async def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        try:
            response = await self.client.post(
                f"{self.endpoint}/{path}",
                params={"token": self.token},
                json=payload,
                timeout=self.timeout_seconds + 5.0,
            )
        except httpx.HTTPError as e:
            raise TransientNetworkError(f"Render request to /{path} failed: {e}") from e

        if response.status_code >= 400:
            raise TransientNetworkError(
                f"Render service returned {response.status_code} for /{path}",
                status_code=response.status_code,
            )
        return response

    async def content(self, url: str) -> str:
        """Return the fully rendered HTML of a page."""
        response = await self._post("content", {"url": url, "gotoOptions": self._goto_options()})
        return response.text

    async def screenshot(self, url: str, full_page: bool = True) -> str:
        """Capture a PNG screenshot of a page, base64-encoded."""
        response = await self._post(
            "screenshot",
            {
                "url": url,
                "options": {"fullPage": full_page, "type": "png"},
                "gotoOptions": self._goto_options(),
            },
        )
        return base64.b64encode(response.content).decode("ascii")

    async def execute_script(self, url: str, code: str, context: dict[str, Any] | None = None) -> Any:
        """Run a script against a page and return its JSON result."""
        response = await self._post(
            "function",
            {
                "url": url,
                "code": code,
                "context": context or {},
                "gotoOptions": self._goto_options(),
            },
        )
        try:
            return response.json()
        except ValueError as e:
            raise TransientNetworkError(f"Render function returned invalid JSON: {e}") from e
