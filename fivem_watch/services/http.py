"""
HttpFetcher - single JSON GET with a timeout, on top of httpx.
"""

from typing import Any

import httpx
from loguru import logger

from fivem_watch.services.errors import (
    HttpStatusError,
    RequestTimeoutError,
    TransientNetworkError,
)
from fivem_watch.settings import global_settings


class HttpFetcher:
    """
    Issues GET requests and decodes JSON bodies.

    Every wire-level failure is raised as a TransientNetworkError subclass so
    callers can retry without caring which HTTP library sits underneath.

    Usage:
        fetcher = HttpFetcher()
        info = await fetcher.get_json("http://127.0.0.1:30120/info.json")
        await fetcher.close()
    """

    def __init__(
        self,
        default_timeout_ms: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._default_timeout_ms = (
            default_timeout_ms
            if default_timeout_ms is not None
            else global_settings.request_timeout_ms
        )
        self._transport = transport

        # HTTP client (lazy initialization)
        self._http_client: httpx.AsyncClient | None = None

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._default_timeout_ms / 1000),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._http_client

    async def get_json(self, url: str, timeout_ms: int | None = None) -> Any:
        """
        GET ``url`` and return the decoded JSON body.

        Raises:
            RequestTimeoutError: If the request times out
            HttpStatusError: On a non-2xx response
            TransientNetworkError: On connection errors or an undecodable body
        """
        timeout_ms = timeout_ms if timeout_ms is not None else self._default_timeout_ms
        client = self._get_http_client()

        try:
            response = await client.get(url, timeout=timeout_ms / 1000)
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            raise RequestTimeoutError(url, timeout_ms) from e

        except httpx.HTTPStatusError as e:
            raise HttpStatusError(
                url, e.response.status_code, e.response.reason_phrase
            ) from e

        except httpx.RequestError as e:
            raise TransientNetworkError(str(e) or type(e).__name__, url=url) from e

        except ValueError as e:
            raise TransientNetworkError(f"Invalid JSON from '{url}': {e}", url=url) from e

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
            logger.debug("HttpFetcher closed")

    async def __aenter__(self) -> "HttpFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
