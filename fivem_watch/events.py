"""
Event subscription for clients and the multi-server manager.
"""

import asyncio
import inspect
from collections import defaultdict
from enum import Enum
from typing import Any, Callable

from loguru import logger

Listener = Callable[..., Any]


class ClientEvent(str, Enum):
    """Events emitted by a single-server client."""

    READY = "ready"
    READY_PLAYERS = "ready_players"  # (players)
    READY_RESOURCES = "ready_resources"  # (resources)
    PLAYER_JOIN = "player_join"  # (player)
    PLAYER_LEAVE = "player_leave"  # (player)
    RESOURCE_ADD = "resource_add"  # (resource)
    RESOURCE_REMOVE = "resource_remove"  # (resource)


class EventEmitter:
    """
    Minimal observer registry.

    Listeners may be plain callables or coroutine functions; coroutine
    listeners are scheduled as tasks on the running loop. A listener that
    raises is logged and does not stop delivery to the others.

    Usage:
        events = EventEmitter()
        unsubscribe = events.on("player_join", lambda player: print(player))
        events.emit("player_join", {"id": 1})
        unsubscribe()
    """

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._tasks: set[asyncio.Task[Any]] = set()

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        """Subscribe ``listener`` to ``event``. Returns an unsubscribe callable."""
        self._listeners[_event_name(event)].append(listener)
        return lambda: self.off(event, listener)

    def once(self, event: str, listener: Listener) -> Callable[[], None]:
        """Subscribe ``listener`` for a single delivery."""

        def _wrapper(*args: Any) -> Any:
            self.off(event, _wrapper)
            return listener(*args)

        return self.on(event, _wrapper)

    def off(self, event: str, listener: Listener) -> bool:
        listeners = self._listeners.get(_event_name(event))
        if listeners and listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(_event_name(event), None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(_event_name(event), ()))

    def emit(self, event: str, *args: Any) -> bool:
        """Deliver ``args`` to every listener of ``event``. True if any existed."""
        listeners = list(self._listeners.get(_event_name(event), ()))
        for listener in listeners:
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._tasks.add(task)
                    task.add_done_callback(self._on_task_done)
            except Exception as e:
                logger.exception(f"Listener for '{_event_name(event)}' failed: {e}")
        return bool(listeners)

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Async listener failed: {task.exception()}")


def _event_name(event: str) -> str:
    return event.value if isinstance(event, Enum) else event
