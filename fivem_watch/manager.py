"""
ServerManager - several FiveM servers behind one interface.
"""

import asyncio
from typing import Any, Iterable, Mapping, NamedTuple

from loguru import logger

from fivem_watch.client import OFFLINE, FivemClient
from fivem_watch.events import ClientEvent, EventEmitter
from fivem_watch.options import ClientOptions
from fivem_watch.services.http import HttpFetcher
from fivem_watch.services.resolver import JoinCodeResolver

# Client event -> payload key used when re-emitting on the manager
_FORWARDED_EVENTS = {
    ClientEvent.READY_PLAYERS: "players",
    ClientEvent.READY_RESOURCES: "resources",
    ClientEvent.PLAYER_JOIN: "player",
    ClientEvent.PLAYER_LEAVE: "player",
    ClientEvent.RESOURCE_ADD: "resource",
    ClientEvent.RESOURCE_REMOVE: "resource",
}


class ServerEntry(NamedTuple):
    """Registration entry for from_entries()."""

    id: str
    options: ClientOptions | Mapping[str, Any]
    init: bool = False


class ServerManager(EventEmitter):
    """
    Registry of FivemClient instances keyed by caller-chosen ids.

    Client events are re-emitted with the server id attached:
    ``ready(server_id)`` and e.g. ``player_join({"server_id": ..., "player": ...})``.

    Usage:
        manager = ServerManager()
        manager.add_server("main", {"address": "127.0.0.1", "port": 30120})
        manager.on("player_join", lambda event: print(event["server_id"]))
        manager.start_all()
    """

    def __init__(
        self,
        fetcher: HttpFetcher | None = None,
        resolver: JoinCodeResolver | None = None,
    ):
        super().__init__()
        self._servers: dict[str, FivemClient] = {}
        self._fetcher = fetcher
        self._resolver = resolver

    def add_server(
        self,
        server_id: str,
        options: ClientOptions | Mapping[str, Any],
        init: bool = False,
    ) -> FivemClient:
        """Register a server, or return the existing client for ``server_id``."""
        if server_id in self._servers:
            return self._servers[server_id]

        client = FivemClient(
            options, init=init, fetcher=self._fetcher, resolver=self._resolver
        )
        self._subscribe(server_id, client)
        self._servers[server_id] = client
        logger.info(f"Added server '{server_id}' ({client.service_id})")
        return client

    def _subscribe(self, server_id: str, client: FivemClient) -> None:
        client.on(ClientEvent.READY, lambda: self.emit(ClientEvent.READY, server_id))
        for event, key in _FORWARDED_EVENTS.items():
            client.on(event, self._forwarder(server_id, event, key))

    def _forwarder(self, server_id: str, event: ClientEvent, key: str):
        def forward(value: Any) -> None:
            self.emit(event, {"server_id": server_id, key: value})

        return forward

    def remove_server(self, server_id: str) -> bool:
        """
        Destroy and unregister a server. False if the id is unknown.

        An HTTP client the server created for itself is closed in the background.
        """
        client = self._servers.get(server_id)
        if client is None:
            return False
        client.destroy()
        del self._servers[server_id]
        logger.info(f"Removed server '{server_id}'")
        return True

    def get_server(self, server_id: str) -> FivemClient | None:
        return self._servers.get(server_id)

    def get_server_ids(self) -> list[str]:
        return list(self._servers)

    @property
    def size(self) -> int:
        return len(self._servers)

    def __len__(self) -> int:
        return len(self._servers)

    def __contains__(self, server_id: object) -> bool:
        return server_id in self._servers

    async def get_all_status(self) -> dict[str, str]:
        """Status of every server, queried concurrently."""
        ids = list(self._servers)
        results = await asyncio.gather(
            *(self._servers[server_id].get_status() for server_id in ids),
            return_exceptions=True,
        )
        return {
            server_id: OFFLINE if isinstance(result, BaseException) else result
            for server_id, result in zip(ids, results)
        }

    def start_all(self) -> None:
        for client in self._servers.values():
            client.start()

    def stop_all(self) -> None:
        for client in self._servers.values():
            client.stop()

    def destroy_all(self) -> None:
        """Destroy and unregister every server."""
        for server_id in list(self._servers):
            self.remove_server(server_id)

    async def close(self) -> None:
        """destroy_all() and release HTTP clients."""
        clients = list(self._servers.values())
        self.destroy_all()
        for client in clients:
            await client.close()

    async def __aenter__(self) -> "ServerManager":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @classmethod
    def from_entries(
        cls,
        entries: Iterable[ServerEntry | Mapping[str, Any]],
        fetcher: HttpFetcher | None = None,
        resolver: JoinCodeResolver | None = None,
    ) -> "ServerManager":
        """Create a manager and add every entry (id, options, init)."""
        manager = cls(fetcher=fetcher, resolver=resolver)
        for entry in entries:
            if isinstance(entry, Mapping):
                entry = ServerEntry(entry["id"], entry["options"], entry.get("init", False))
            manager.add_server(entry.id, entry.options, entry.init)
        return manager
