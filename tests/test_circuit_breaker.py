from __future__ import annotations

import time

import pytest

from fivem_watch.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from fivem_watch.services.errors import CircuitOpenError


def _breaker(threshold: int = 3, cooldown_ms: int = 30000) -> CircuitBreaker:
    return CircuitBreaker(
        "test", CircuitBreakerConfig(failure_threshold=threshold, cooldown_ms=cooldown_ms)
    )


def test_defaults() -> None:
    cb = CircuitBreaker("test")
    assert cb.config.failure_threshold == 5
    assert cb.config.cooldown_ms == 30000
    assert cb.state == CircuitState.CLOSED


def test_opens_after_exactly_threshold_failures() -> None:
    cb = _breaker(threshold=3)
    cb.record_failure()
    cb.record_failure()
    assert cb.state == CircuitState.CLOSED
    cb.guard()

    cb.record_failure()
    assert cb.state == CircuitState.OPEN
    with pytest.raises(CircuitOpenError) as exc_info:
        cb.guard()
    assert exc_info.value.code == "CIRCUIT_OPEN"
    assert exc_info.value.reset_after_seconds > 0


def test_success_resets_consecutive_failures() -> None:
    cb = _breaker(threshold=3)
    cb.record_failure()
    cb.record_failure()
    cb.record_success()
    cb.record_failure()
    cb.record_failure()
    assert cb.state == CircuitState.CLOSED
    assert cb.failure_count == 2


def test_cooldown_moves_to_half_open_and_success_closes() -> None:
    cb = _breaker(threshold=1, cooldown_ms=20)
    cb.record_failure()
    assert cb.state == CircuitState.OPEN

    time.sleep(0.04)
    assert cb.state == CircuitState.HALF_OPEN
    assert cb.failure_count == 0
    cb.guard()

    cb.record_success()
    assert cb.state == CircuitState.CLOSED


def test_half_open_reopens_when_threshold_reached_again() -> None:
    cb = _breaker(threshold=2, cooldown_ms=20)
    cb.record_failure()
    cb.record_failure()
    time.sleep(0.04)
    assert cb.state == CircuitState.HALF_OPEN

    cb.record_failure()
    assert cb.state == CircuitState.HALF_OPEN
    cb.record_failure()
    assert cb.state == CircuitState.OPEN


@pytest.mark.asyncio
async def test_execute_returns_result_and_records_success() -> None:
    cb = _breaker(threshold=2)
    cb.record_failure()

    async def op() -> str:
        return "ok"

    assert await cb.execute(op) == "ok"
    assert cb.failure_count == 0


@pytest.mark.asyncio
async def test_execute_reraises_original_error_unchanged() -> None:
    cb = _breaker(threshold=5)
    boom = RuntimeError("boom")

    async def op() -> None:
        raise boom

    with pytest.raises(RuntimeError) as exc_info:
        await cb.execute(op)
    assert exc_info.value is boom
    assert cb.failure_count == 1


@pytest.mark.asyncio
async def test_execute_does_not_call_operation_when_open() -> None:
    cb = _breaker(threshold=1)
    cb.record_failure()
    calls = 0

    async def op() -> None:
        nonlocal calls
        calls += 1

    with pytest.raises(CircuitOpenError):
        await cb.execute(op)
    assert calls == 0


def test_reset_and_status() -> None:
    cb = _breaker(threshold=1)
    cb.record_failure()
    status = cb.get_status()
    assert status["state"] == "open"
    assert status["opened_at"] is not None
    assert status["time_until_reset"] is not None

    cb.reset()
    assert cb.state == CircuitState.CLOSED
    assert cb.get_status()["time_until_reset"] is None
