# Copyright (c) pluginkeeper Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Plugin Server Client

Thin HTTP layer over the plugin server's REST API. It only issues GET
requests and returns parsed JSON or raw bytes; all business rules live in the
components that call it.

Usage:
    async with RemoteClient("https://plugins.example.com") as remote:
        catalog = await remote.get_json("plugin")
        payload = await remote.get_bytes("plugin", "my-plugin", "version", "abc", "download")
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from pluginkeeper.exceptions import RemoteError

logger = logging.getLogger(__name__)

REST_PREFIX = "rest"


class RemoteClient:
    """Issue GET requests against ``{base_url}/rest/...``.

    Args:
        base_url: Server root, e.g. ``https://plugins.example.com``.
        timeout_seconds: Per-request timeout applied by httpx.
        transport: Optional httpx transport (``httpx.MockTransport`` in tests).
        client: Optional pre-configured ``httpx.AsyncClient``; when given,
            the caller owns its lifecycle.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout_seconds,
            transport=transport,
            follow_redirects=True,
        )

    def url_for(self, *parts: str) -> str:
        """Build the REST URL for *parts*, percent-encoding each segment."""
        path = "/".join(quote(str(part), safe="") for part in parts)
        return f"{self.base_url}/{REST_PREFIX}/{path}"

    async def get_json(self, *parts: str) -> Any:
        """GET a REST resource and return the decoded JSON body.

        Raises:
            RemoteError: On transport failure, non-2xx status, or invalid JSON.
        """
        response = await self._get(*parts)
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(
                f"Invalid JSON from {response.request.url}: {exc}",
                status_code=response.status_code,
            ) from exc

    async def get_bytes(self, *parts: str) -> bytes:
        """GET a REST resource and return the raw body.

        Raises:
            RemoteError: On transport failure or non-2xx status.
        """
        response = await self._get(*parts)
        return response.content

    async def _get(self, *parts: str) -> httpx.Response:
        url = self.url_for(*parts)
        try:
            response = await self._client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RemoteError(f"Request to {url} failed: {exc}") from exc
        if not response.is_success:
            raise RemoteError(
                f"Request to {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        logger.debug("GET %s -> %d (%d bytes)", url, response.status_code, len(response.content))
        return response

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RemoteClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
