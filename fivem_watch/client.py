"""
FivemClient - status queries and change events for one FiveM server.

Composes the service layer:
- TtlCache for info/players responses (when cache_ttl_ms > 0)
- CircuitBreaker around every request (when enabled)
- fetch_with_retry inside the breaker (when enabled)
- JoinCodeResolver for cfx.re/join addresses
"""

import asyncio
import warnings
from typing import Any, Callable, Iterable, Mapping

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from fivem_watch.events import ClientEvent, EventEmitter
from fivem_watch.options import ClientOptions, build_options
from fivem_watch.services.cache import TtlCache
from fivem_watch.services.circuit_breaker import CircuitBreaker
from fivem_watch.services.errors import (
    ConfigurationError,
    QueryRejectedError,
    ResolutionError,
    TransientNetworkError,
)
from fivem_watch.services.http import HttpFetcher
from fivem_watch.services.resolver import (
    Endpoint,
    JoinCodeResolver,
    extract_code,
    get_resolver,
)
from fivem_watch.services.retry import fetch_with_retry
from fivem_watch.structures import Player, ServerInfo, max_clients_from

CACHE_KEY_INFO = "info"
CACHE_KEY_PLAYERS = "players"

ONLINE = "online"
OFFLINE = "offline"


class FivemClient(EventEmitter):
    """
    Client for a single FiveM server.

    Query methods raise QueryRejectedError on failure (except get_status(),
    which reports "offline"). start() runs a polling job on the current event
    loop that emits player_join/player_leave and resource_add/resource_remove
    as the server's snapshots change.

    After destroy() the instance must not be reused: queries still work, but
    no events are delivered and snapshots start empty.

    Usage:
        client = FivemClient(address="127.0.0.1", port=30120)
        client.on(ClientEvent.PLAYER_JOIN, lambda player: print(player))
        client.start()
    """

    def __init__(
        self,
        options: ClientOptions | Mapping[str, Any] | None = None,
        init: bool = False,
        *,
        fetcher: HttpFetcher | None = None,
        resolver: JoinCodeResolver | None = None,
        **overrides: Any,
    ):
        if not isinstance(init, bool):
            raise ConfigurationError("The init option must be a boolean.", code="INVALID_INIT")
        self.options = build_options(options, **overrides)
        if init:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise ConfigurationError(
                    "init=True requires a running event loop.", code="INVALID_INIT"
                ) from e

        super().__init__()

        self.address: str = self.options.address or ""
        self.port: int = self.options.port or 0
        self.use_structure = self.options.use_structure
        self.service_id = f"{self.address}:{self.port}" if self.port else self.address

        self._owns_fetcher = fetcher is None
        self._fetcher = fetcher or HttpFetcher()
        self._resolver = resolver

        self._breaker = (
            CircuitBreaker(self.service_id, self.options.circuit_breaker)
            if self.options.circuit_breaker is not None
            else None
        )
        self._info_cache: TtlCache[str, dict[str, Any]] | None = None
        self._players_cache: TtlCache[str, list[dict[str, Any]]] | None = None
        if self.options.cache_ttl_ms > 0:
            self._info_cache = TtlCache(self.options.cache_ttl_ms, name=f"{self.service_id}/info")
            self._players_cache = TtlCache(
                self.options.cache_ttl_ms, name=f"{self.service_id}/players"
            )

        self._players: list[Any] = []
        self.resources: list[str] = []
        self._resolved_endpoint: Endpoint | None = None
        self._scheduler: AsyncIOScheduler | None = None
        self._initialized = False
        self._destroyed = False
        self._init_task: asyncio.Task[None] | None = None
        self._cycle: asyncio.Future[None] | None = None
        self._close_task: asyncio.Task[None] | None = None

        if init:
            self._init_task = loop.create_task(self.init())

    @property
    def players(self) -> list[Any]:
        """Last known player snapshot."""
        return self._players

    @players.setter
    def players(self, players: list[Any]) -> None:
        self._players = players

    @property
    def resolver(self) -> JoinCodeResolver:
        return self._resolver or get_resolver()

    # ── Endpoint resolution ─────────────────────────────────────────────────

    async def get_endpoint(self) -> Endpoint:
        """
        Concrete address of the server.

        For a cfx.re/join address the code is resolved once and memoized for
        the lifetime of this client.
        """
        if self._resolved_endpoint is not None:
            return self._resolved_endpoint

        if not self.options.is_join_link:
            self._resolved_endpoint = Endpoint(self.address, self.port)
            return self._resolved_endpoint

        code = extract_code(self.address)
        if code is None:
            raise ResolutionError(
                "Could not extract join code from cfx.re link.", code="INVALID_CFX_LINK"
            )
        self._resolved_endpoint = await self.resolver.resolve_cached(code)
        logger.info(
            f"{self.address} resolved to "
            f"{self._resolved_endpoint.address}:{self._resolved_endpoint.port}"
        )
        return self._resolved_endpoint

    # ── Requests ────────────────────────────────────────────────────────────

    async def _fetch(self, path: str) -> Any:
        """GET ``path`` on the server: breaker outside, retry inside."""
        endpoint = await self.get_endpoint()
        url = f"{endpoint.base_url}/{path}"

        async def do_fetch() -> Any:
            if self.options.retry is not None:
                return await fetch_with_retry(
                    lambda: self._fetcher.get_json(url), self.options.retry, description=url
                )
            return await self._fetcher.get_json(url)

        if self._breaker is not None:
            return await self._breaker.execute(do_fetch)
        return await do_fetch()

    async def _fetch_info(self) -> dict[str, Any]:
        data = await self._fetch("info.json")
        if not isinstance(data, dict):
            raise TransientNetworkError("info.json did not return an object")
        if self._info_cache is not None:
            self._info_cache.set(CACHE_KEY_INFO, data)
        return data

    async def _fetch_players(self) -> list[dict[str, Any]]:
        data = await self._fetch("players.json")
        if not isinstance(data, list):
            raise TransientNetworkError("players.json did not return a list")
        if self._players_cache is not None:
            self._players_cache.set(CACHE_KEY_PLAYERS, data)
        return data

    async def _info(self) -> dict[str, Any]:
        if self._info_cache is not None:
            cached = self._info_cache.get(CACHE_KEY_INFO)
            if cached is not None:
                return cached
        return await self._fetch_info()

    async def _raw_players(self) -> list[dict[str, Any]]:
        if self._players_cache is not None:
            cached = self._players_cache.get(CACHE_KEY_PLAYERS)
            if cached is not None:
                return cached
        return await self._fetch_players()

    # ── Queries ─────────────────────────────────────────────────────────────

    async def get_status(self) -> str:
        """Return "online" if info.json could be fetched, otherwise "offline"."""
        try:
            await self._fetch("info.json")
        except Exception as e:
            logger.debug(f"{self.service_id} is offline: {e}")
            return OFFLINE
        return ONLINE

    async def get_server_data(self) -> dict[str, Any] | ServerInfo:
        """
        Server info, from cache when fresh.

        Raises:
            QueryRejectedError: with fallback ``data = {}``
        """
        try:
            data = await self._info()
            return ServerInfo.model_validate(data) if self.use_structure else data
        except Exception as e:
            raise QueryRejectedError(e, "data", {}) from e

    async def get_server_players(self) -> list[Any]:
        """
        Connected players, from cache when fresh.

        With use_structure, players are Player models and the client's
        ``players`` snapshot is replaced by the result.

        Raises:
            QueryRejectedError: with fallback ``players = []``
        """
        try:
            data = await self._raw_players()
            if not self.use_structure:
                return data
            players = [Player.model_validate(p) for p in data]
        except Exception as e:
            raise QueryRejectedError(e, "players", []) from e

        self._players = players
        return players

    async def get_players_online(self) -> int:
        """
        Number of connected players.

        Raises:
            QueryRejectedError: with fallback ``players_online = 0``
        """
        try:
            return len(await self._raw_players())
        except Exception as e:
            raise QueryRejectedError(e, "players_online", 0) from e

    async def get_max_players(self) -> int:
        """
        ``sv_maxClients`` of the server.

        Raises:
            QueryRejectedError: with fallback ``max_players = 0``
        """
        try:
            return max_clients_from((await self._info()).get("vars"))
        except Exception as e:
            raise QueryRejectedError(e, "max_players", 0) from e

    @staticmethod
    def filter_players(players: Iterable[Any], predicate: Callable[[Any], bool]) -> list[Any]:
        return [p for p in players if predicate(p)]

    @staticmethod
    def sort_players(players: Iterable[Any], key: str, order: str = "asc") -> list[Any]:
        """
        Stable sort of players by ``key`` ("name", "id", ...).

        Values are compared with ``<``; players whose values cannot be
        compared (e.g. a missing name next to a present one) raise TypeError.
        """
        if order not in ("asc", "desc"):
            raise ValueError(f"order must be 'asc' or 'desc', got {order!r}")
        return sorted(players, key=lambda p: _field(p, key), reverse=order == "desc")

    # ── Polling lifecycle ───────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        """Whether polling is currently active."""
        return self._scheduler is not None

    def start(self) -> None:
        """
        Start polling on the running event loop. No-op if already running.

        A cycle still in flight when the next tick is due makes that tick be
        skipped.
        """
        if self._scheduler is not None:
            logger.warning(f"Polling for {self.service_id} is already running")
            return

        interval_ms = self.options.interval
        scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
        scheduler.add_job(
            self._poll_once,
            trigger="interval",
            seconds=interval_ms / 1000,
            id=f"poll:{self.service_id}",
            name=f"FiveM poller {self.service_id}",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(f"Polling {self.service_id} every {interval_ms}ms")

    def stop(self) -> None:
        """Stop polling. An in-flight cycle is left to complete."""
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info(f"Stopped polling {self.service_id}")

    def destroy(self) -> None:
        """
        Stop polling, clear caches, drop listeners and snapshots.

        An HTTP client created by this instance is closed in the background
        when an event loop is running; close() awaits it.
        """
        self.stop()
        if self._info_cache is not None:
            self._info_cache.destroy()
        if self._players_cache is not None:
            self._players_cache.destroy()
        self.remove_all_listeners()
        self._players = []
        self.resources = []
        self._initialized = False
        self._destroyed = True
        if self._owns_fetcher and self._close_task is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            self._close_task = loop.create_task(self._fetcher.close())

    async def close(self) -> None:
        """destroy() and release the HTTP client if this client created it."""
        self.destroy()
        if self._close_task is not None:
            await self._close_task
        if self._owns_fetcher:
            await self._fetcher.close()

    async def __aenter__(self) -> "FivemClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _safe_players(self) -> list[Any]:
        try:
            return await self.get_server_players()
        except QueryRejectedError as e:
            logger.debug(f"{self.service_id} players unavailable: {e}")
            return []

    async def _safe_server_data(self) -> dict[str, Any] | ServerInfo:
        try:
            return await self.get_server_data()
        except QueryRejectedError as e:
            logger.debug(f"{self.service_id} info unavailable: {e}")
            return {}

    async def _poll_once(self) -> None:
        """Scheduler job: run one cycle unless the previous one is still in flight."""
        if self._cycle is not None and not self._cycle.done():
            logger.debug(f"Previous cycle for {self.service_id} still running, skipping tick")
            return

        self._cycle = asyncio.ensure_future(self._run_cycle())
        try:
            await asyncio.shield(self._cycle)
        except asyncio.CancelledError:
            # stop() cancels the scheduler job, never the cycle itself
            if self._scheduler is not None:
                raise
            logger.debug(f"Polling job for {self.service_id} cancelled, cycle continues")

    async def _run_cycle(self) -> None:
        """One polling cycle: fetch both snapshots, emit the differences."""
        try:
            previous_players = self._players
            players, server_data = await asyncio.gather(
                self._safe_players(), self._safe_server_data()
            )

            joined, left = diff_players(previous_players, players)
            for player in joined:
                self.emit(ClientEvent.PLAYER_JOIN, player)
            for player in left:
                self.emit(ClientEvent.PLAYER_LEAVE, player)
            self._players = players

            resources = resources_from(server_data)
            added, removed = diff_resources(self.resources, resources)
            for resource in added:
                self.emit(ClientEvent.RESOURCE_ADD, resource)
            for resource in removed:
                self.emit(ClientEvent.RESOURCE_REMOVE, resource)
            self.resources = resources

            if joined or left or added or removed:
                logger.debug(
                    f"{self.service_id}: +{len(joined)}/-{len(left)} players, "
                    f"+{len(added)}/-{len(removed)} resources"
                )
        except Exception as e:
            logger.error(f"Polling cycle for {self.service_id} failed: {e}")

    async def init(self) -> None:
        """
        Deprecated: use start().

        Emits ``ready``, seeds the player and resource snapshots (emitting
        ``ready_players`` and ``ready_resources``), then starts polling.
        Calling it again, or after destroy(), is a no-op.
        """
        warnings.warn(
            "FivemClient.init() is deprecated, use start() instead",
            DeprecationWarning,
            stacklevel=2,
        )
        if self._initialized or self._destroyed:
            return
        self._initialized = True
        self.emit(ClientEvent.READY)

        server_data, players = await asyncio.gather(
            self._safe_server_data(), self._safe_players()
        )
        if self._destroyed:
            return

        self._players = players
        self.resources = resources_from(server_data)
        self.emit(ClientEvent.READY_PLAYERS, self._players)
        self.emit(ClientEvent.READY_RESOURCES, self.resources)

        self.start()

    def get_health_status(self) -> dict[str, Any]:
        """Diagnostics for breaker, caches and polling."""
        return {
            "service_id": self.service_id,
            "is_running": self.is_running,
            "endpoint": (
                f"{self._resolved_endpoint.address}:{self._resolved_endpoint.port}"
                if self._resolved_endpoint
                else None
            ),
            "circuit_breaker": self._breaker.get_status() if self._breaker else None,
            "cache": {
                "info": self._info_cache.get_stats().to_dict() if self._info_cache else None,
                "players": (
                    self._players_cache.get_stats().to_dict() if self._players_cache else None
                ),
            },
        }


def _field(player: Any, key: str) -> Any:
    if isinstance(player, (Mapping, Player)):
        return player.get(key)
    return getattr(player, key, None)


def _player_id(player: Any) -> Any:
    return _field(player, "id")


def diff_players(previous: list[Any], current: list[Any]) -> tuple[list[Any], list[Any]]:
    """
    Players that joined and left between two snapshots, matched by ``id``.

    A player without an id never matches anyone, so it shows up as both
    joined (from ``current``) and left (from ``previous``).
    """
    previous_ids = {pid for pid in map(_player_id, previous) if pid is not None}
    current_ids = {pid for pid in map(_player_id, current) if pid is not None}

    joined = [
        p for p in current if _player_id(p) is None or _player_id(p) not in previous_ids
    ]
    left = [
        p for p in previous if _player_id(p) is None or _player_id(p) not in current_ids
    ]
    return joined, left


def diff_resources(previous: list[str], current: list[str]) -> tuple[list[str], list[str]]:
    """Resource names added and removed between two snapshots."""
    previous_set = set(previous)
    current_set = set(current)
    added = [r for r in current if r not in previous_set]
    removed = [r for r in previous if r not in current_set]
    return added, removed


def resources_from(server_data: Any) -> list[str]:
    """Resource list of a raw or structured info snapshot."""
    if isinstance(server_data, ServerInfo):
        return list(server_data.resources)
    if isinstance(server_data, Mapping):
        resources = server_data.get("resources")
        if isinstance(resources, list):
            return list(resources)
    return []
