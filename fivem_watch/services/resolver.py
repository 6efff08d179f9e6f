"""
cfx.re join-link resolution.

A join link (``https://cfx.re/join/p7zxb5`` or ``cfx.re/join/p7zxb5``) names
a server indirectly. The FiveM servers-frontend API maps its code to the
server's connect endpoints; the first one is used.
"""

import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from loguru import logger

from fivem_watch.services.cache import TtlCache
from fivem_watch.services.errors import ResolutionError
from fivem_watch.services.http import HttpFetcher
from fivem_watch.settings import global_settings

CFX_JOIN_REGEX = re.compile(r"cfx\.re/join/([a-zA-Z0-9]+)", re.IGNORECASE)
DEFAULT_PORT = 30120


@dataclass(frozen=True)
class Endpoint:
    """A concrete server address."""

    address: str
    port: int

    @property
    def base_url(self) -> str:
        return f"http://{self.address}:{self.port}"


def is_join_link(value: str) -> bool:
    """Check if ``value`` is a cfx.re join link."""
    return CFX_JOIN_REGEX.search(value.strip()) is not None


def extract_code(value: str) -> str | None:
    """Extract the join code from a cfx.re link, or None if it is not one."""
    match = CFX_JOIN_REGEX.search(value.strip())
    return match.group(1) if match else None


def _find_endpoints(data: Any) -> list[Any] | None:
    """First non-empty endpoint list, in the API's known key spellings."""
    if not isinstance(data, dict):
        return None

    nested = data.get("Data")
    candidates = []
    if isinstance(nested, dict):
        candidates += [nested.get("connectEndPoints"), nested.get("ConnectEndPoints")]
    candidates += [data.get("connectEndPoints"), data.get("ConnectEndPoints")]

    for endpoints in candidates:
        if isinstance(endpoints, list) and endpoints:
            return endpoints
    return None


def parse_endpoint(raw: Any, code: str = "") -> Endpoint:
    """Parse an ``"ip:port"`` string; a missing port defaults to 30120."""
    if not isinstance(raw, str):
        raise ResolutionError(
            f"Invalid connect endpoint for code: {code}", code="PARSE_ERROR"
        )

    address, sep, rest = raw.partition(":")
    address = address.strip()
    # anything after a second colon is ignored
    port_text = rest.split(":", 1)[0].strip() if sep else str(DEFAULT_PORT)
    port = int(port_text) if port_text.isdecimal() else None

    if not address or port is None:
        raise ResolutionError(
            f'Could not parse endpoint "{raw}" for code: {code}', code="PARSE_ERROR"
        )
    return Endpoint(address=address, port=port)


class JoinCodeResolver:
    """
    Resolves join codes through the FiveM API, memoizing results.

    Usage:
        resolver = JoinCodeResolver()
        endpoint = await resolver.resolve_cached("p7zxb5")
    """

    def __init__(
        self,
        fetcher: HttpFetcher | None = None,
        cache: TtlCache[str, Endpoint] | None = None,
        api_base: str | None = None,
        timeout_ms: int | None = None,
    ):
        self.fetcher = fetcher or HttpFetcher()
        self.cache = cache or TtlCache(
            global_settings.resolve_cache_ttl_ms, name="cfx-resolver"
        )
        self.api_base = (api_base or global_settings.cfx_api_base).rstrip("/")
        self.timeout_ms = (
            timeout_ms if timeout_ms is not None else global_settings.resolve_timeout_ms
        )

    async def resolve(self, code: str) -> Endpoint:
        """
        Look ``code`` up through the API.

        Raises:
            ResolutionError: NO_ENDPOINTS if the response has no endpoint list,
                PARSE_ERROR if the first endpoint is malformed
            TransientNetworkError: If the lookup itself fails
        """
        url = f"{self.api_base}/{quote(code, safe='')}"
        data = await self.fetcher.get_json(url, timeout_ms=self.timeout_ms)

        endpoints = _find_endpoints(data)
        if not endpoints:
            raise ResolutionError(
                f"Cfx.re API did not return connect endpoints for code: {code}",
                code="NO_ENDPOINTS",
            )

        endpoint = parse_endpoint(endpoints[0], code)
        logger.debug(f"Resolved cfx.re/join/{code} -> {endpoint.address}:{endpoint.port}")
        return endpoint

    async def resolve_cached(self, code: str) -> Endpoint:
        """Same as resolve(), memoized per code for the cache's TTL."""
        cached = self.cache.get(code)
        if cached is not None:
            logger.debug(f"Resolver cache hit for {code}")
            return cached

        endpoint = await self.resolve(code)
        self.cache.set(code, endpoint)
        return endpoint

    async def resolve_join_link(self, value: str) -> Endpoint | None:
        """Resolve a join link; None if ``value`` is not one."""
        code = extract_code(value)
        if code is None:
            return None
        return await self.resolve_cached(code)

    async def close(self) -> None:
        self.cache.clear()
        await self.fetcher.close()


# Global resolver instance
_global_resolver: JoinCodeResolver | None = None


def get_resolver() -> JoinCodeResolver:
    """Get the process-wide resolver instance."""
    global _global_resolver
    if _global_resolver is None:
        _global_resolver = JoinCodeResolver()
    return _global_resolver


def set_resolver(resolver: JoinCodeResolver | None) -> None:
    """Replace the process-wide resolver (None resets it)."""
    global _global_resolver
    _global_resolver = resolver


async def resolve_join_link(value: str) -> Endpoint | None:
    """Resolve a join link with the process-wide resolver."""
    return await get_resolver().resolve_join_link(value)
