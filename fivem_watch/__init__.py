"""
fivem_watch - poll FiveM servers and get notified when players or resources change.
"""

from fivem_watch.client import FivemClient, diff_players, diff_resources
from fivem_watch.events import ClientEvent, EventEmitter
from fivem_watch.manager import ServerEntry, ServerManager
from fivem_watch.options import ClientOptions
from fivem_watch.services import (
    CircuitBreakerConfig,
    CircuitOpenError,
    ConfigurationError,
    FivemApiError,
    QueryRejectedError,
    ResolutionError,
    RetryConfig,
    TransientNetworkError,
)
from fivem_watch.structures import Player, ServerInfo

__version__ = "0.1.0"

__all__ = [
    "FivemClient",
    "ServerManager",
    "ServerEntry",
    "ClientOptions",
    "RetryConfig",
    "CircuitBreakerConfig",
    "ClientEvent",
    "EventEmitter",
    "Player",
    "ServerInfo",
    "diff_players",
    "diff_resources",
    "FivemApiError",
    "ConfigurationError",
    "TransientNetworkError",
    "CircuitOpenError",
    "ResolutionError",
    "QueryRejectedError",
]
