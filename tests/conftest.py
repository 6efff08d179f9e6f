from __future__ import annotations

from collections.abc import Callable, Generator
from typing import Any

import httpx
import pytest

from fivem_watch.client import FivemClient
from fivem_watch.services.http import HttpFetcher
from fivem_watch.services.resolver import JoinCodeResolver, set_resolver

CFX_HOST = "servers-frontend.fivem.net"


def make_player(player_id: int | None, name: str, **extra: Any) -> dict[str, Any]:
    player: dict[str, Any] = {
        "name": name,
        "identifiers": [f"license:{name.lower()}", f"steam:11000010000000{player_id or 0}"],
        "ping": 40,
        "endpoint": "127.0.0.1",
    }
    if player_id is not None:
        player["id"] = player_id
    player.update(extra)
    return player


class FakeServer:
    """In-memory FiveM server answering info.json and players.json."""

    def __init__(self, info: dict[str, Any] | None = None, players: list[Any] | None = None):
        self.info: Any = (
            info
            if info is not None
            else {"vars": {"sv_maxClients": 48}, "resources": ["mapmanager", "chat"]}
        )
        self.players: Any = players if players is not None else []
        self.fail_with: int | None = None
        self.fail_paths: set[str] | None = None
        self.requests: list[str] = []

    def count(self, path: str) -> int:
        return self.requests.count(path)

    def respond(self, path: str) -> httpx.Response:
        self.requests.append(path)
        if self.fail_with and (self.fail_paths is None or path in self.fail_paths):
            return httpx.Response(self.fail_with)
        if path == "/info.json":
            return httpx.Response(200, json=self.info)
        if path == "/players.json":
            return httpx.Response(200, json=self.players)
        return httpx.Response(404)


class FakeNetwork:
    """Routes requests to fake servers and a fake cfx.re lookup API."""

    def __init__(self) -> None:
        self.servers: dict[str, FakeServer] = {}
        self.cfx: dict[str, Any] = {}
        self.cfx_lookups: list[str] = []

    def add_server(self, address: str = "127.0.0.1", port: int = 30120, **kwargs: Any) -> FakeServer:
        server = FakeServer(**kwargs)
        self.servers[f"{address}:{port}"] = server
        return server

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == CFX_HOST:
            code = request.url.path.rsplit("/", 1)[-1]
            self.cfx_lookups.append(code)
            if code not in self.cfx:
                return httpx.Response(404)
            return httpx.Response(200, json=self.cfx[code])

        server = self.servers.get(f"{request.url.host}:{request.url.port}")
        if server is None:
            raise httpx.ConnectError("Connection refused", request=request)
        return server.respond(request.url.path)


@pytest.fixture()
def network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture()
def fetcher(network: FakeNetwork) -> HttpFetcher:
    return HttpFetcher(transport=httpx.MockTransport(network.handler))


@pytest.fixture()
def resolver(fetcher: HttpFetcher) -> JoinCodeResolver:
    return JoinCodeResolver(fetcher=fetcher)


@pytest.fixture(autouse=True)
def _fresh_global_resolver(resolver: JoinCodeResolver) -> Generator[None, None, None]:
    """Never share memoized join codes between tests."""
    set_resolver(resolver)
    yield
    set_resolver(None)


@pytest.fixture()
def make_client(
    fetcher: HttpFetcher, resolver: JoinCodeResolver
) -> Generator[Callable[..., FivemClient], None, None]:
    clients: list[FivemClient] = []

    def _make(**options: Any) -> FivemClient:
        options.setdefault("address", "127.0.0.1")
        client = FivemClient(options, fetcher=fetcher, resolver=resolver)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.destroy()
