from __future__ import annotations

from typing import Any

import pytest

from fivem_watch.client import FivemClient
from fivem_watch.options import build_options
from fivem_watch.services.circuit_breaker import CircuitBreakerConfig
from fivem_watch.services.errors import ConfigurationError
from fivem_watch.services.retry import RetryConfig


def test_defaults() -> None:
    options = build_options(address="127.0.0.1")
    assert options.port == 30120
    assert options.use_structure is False
    assert options.interval == 2500
    assert options.cache_ttl_ms == 0
    assert options.retry is None
    assert options.circuit_breaker is None


def test_join_link_port_is_provisional() -> None:
    options = build_options(address="https://cfx.re/join/p7zxb5")
    assert options.port == 0
    assert options.is_join_link is True


def test_retry_and_breaker_toggles() -> None:
    options = build_options(address="h", retry=True, circuit_breaker={"failure_threshold": 2})
    assert options.retry == RetryConfig()
    assert options.circuit_breaker == CircuitBreakerConfig(failure_threshold=2)

    options = build_options(address="h", retry=False, circuit_breaker=None)
    assert options.retry is None
    assert options.circuit_breaker is None


@pytest.mark.parametrize(
    ("options", "code"),
    [
        ({}, "NO_ADDRESS"),
        ({"address": ""}, "NO_ADDRESS"),
        ({"address": None}, "NO_ADDRESS"),
        ({"address": 123}, "INVALID_ADDRESS"),
        ({"address": "127.0.0.1", "port": "30120"}, "INVALID_PORT"),
        ({"address": "127.0.0.1", "port": 0}, "INVALID_PORT"),
        ({"address": "127.0.0.1", "port": -1}, "INVALID_PORT"),
        ({"address": "127.0.0.1", "interval": "fast"}, "INVALID_INTERVAL"),
        ({"address": "127.0.0.1", "use_structure": "yes"}, "INVALID_USE_STRUCTURE"),
        ({"address": "127.0.0.1", "cache_ttl_ms": -5}, "INVALID_CACHE_TTL"),
        ({"address": "127.0.0.1", "retry": "always"}, "INVALID_RETRY"),
    ],
)
def test_invalid_configuration_fails_at_construction(options: dict[str, Any], code: str) -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        FivemClient(options)
    assert exc_info.value.code == code


def test_init_must_be_bool() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        FivemClient({"address": "127.0.0.1"}, init="yes")  # type: ignore[arg-type]
    assert exc_info.value.code == "INVALID_INIT"


def test_init_outside_event_loop_is_rejected() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        FivemClient({"address": "127.0.0.1"}, init=True)
    assert exc_info.value.code == "INVALID_INIT"


def test_join_link_accepts_missing_port() -> None:
    client = FivemClient(address="cfx.re/join/abc123")
    assert client.port == 0
    assert client.service_id == "cfx.re/join/abc123"
