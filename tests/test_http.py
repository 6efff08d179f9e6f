from __future__ import annotations

import httpx
import pytest

from fivem_watch.services.errors import (
    HttpStatusError,
    RequestTimeoutError,
    TransientNetworkError,
)
from fivem_watch.services.http import HttpFetcher

URL = "http://127.0.0.1:30120/info.json"


def _fetcher(handler) -> HttpFetcher:
    return HttpFetcher(default_timeout_ms=5000, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_get_json_decodes_body() -> None:
    async with _fetcher(lambda request: httpx.Response(200, json={"ok": True})) as fetcher:
        assert await fetcher.get_json(URL) == {"ok": True}


@pytest.mark.asyncio
async def test_timeout_is_reported_as_request_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with _fetcher(handler) as fetcher:
        with pytest.raises(RequestTimeoutError) as exc_info:
            await fetcher.get_json(URL, timeout_ms=250)

    assert exc_info.value.timeout_ms == 250
    assert exc_info.value.url == URL
    assert isinstance(exc_info.value, TransientNetworkError)


@pytest.mark.asyncio
async def test_non_2xx_is_reported_with_status_code() -> None:
    async with _fetcher(lambda request: httpx.Response(404)) as fetcher:
        with pytest.raises(HttpStatusError) as exc_info:
            await fetcher.get_json(URL)

    assert exc_info.value.status_code == 404
    assert str(exc_info.value) == "HTTP 404: Not Found"


@pytest.mark.asyncio
async def test_invalid_json_is_a_network_error() -> None:
    async with _fetcher(lambda request: httpx.Response(200, content=b"<html>")) as fetcher:
        with pytest.raises(TransientNetworkError, match="Invalid JSON"):
            await fetcher.get_json(URL)


@pytest.mark.asyncio
async def test_connection_error_is_a_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    async with _fetcher(handler) as fetcher:
        with pytest.raises(TransientNetworkError, match="Connection refused"):
            await fetcher.get_json(URL)
