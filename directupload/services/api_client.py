"""HTTP adapter for application server calls."""
from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from ..errors import TransportError

logger = logging.getLogger(__name__)


class HTTPAPIClient:
    """
    HTTP client adapter for API calls.

    Implements IAPIClient protocol. Every call is a single attempt: transport
    failures and non-2xx answers are raised as TransportError.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = base_url
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self

    async def __aexit__(self, *args):
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def post(self, endpoint: str, data: Dict[str, str]) -> httpx.Response:
        if not self._client:
            raise RuntimeError("HTTPAPIClient not initialized. Use 'async with' context.")

        try:
            response = await self._client.post(endpoint, data=data)
        except httpx.TimeoutException as exc:
            raise TransportError(f"POST {endpoint} timed out", cause=exc) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"POST {endpoint} failed: {exc}", cause=exc) from exc

        if not response.is_success:
            try:
                error_detail = response.json()
            except ValueError:
                error_detail = response.text
            raise TransportError(
                f"API error {response.status_code} on POST {endpoint}: {error_detail}",
                status_code=response.status_code,
            )

        return response
