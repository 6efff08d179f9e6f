"""
CircuitBreaker - Stops hammering a server that keeps failing.

States:
- CLOSED: Normal operation, requests pass through
- OPEN: Server is failing, requests are blocked
- HALF_OPEN: Cooldown elapsed, requests pass again to probe recovery

Transitions:
- CLOSED → OPEN: When failure_threshold consecutive failures are recorded
- OPEN → HALF_OPEN: On the first state read after cooldown_ms has elapsed
- HALF_OPEN → CLOSED: On a successful request
- HALF_OPEN → OPEN: When failures reach failure_threshold again
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

from fivem_watch.services.errors import CircuitOpenError

T = TypeVar("T")


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    failure_threshold: int = 5  # Consecutive failures before opening
    cooldown_ms: int = 30000  # Time spent open before half-open


class CircuitBreaker:
    """
    Circuit breaker guarding a single server.

    Usage:
        cb = CircuitBreaker("127.0.0.1:30120")
        data = await cb.execute(lambda: fetcher.get_json(url))

    or, by hand:

        cb.guard()
        try:
            result = await make_request()
        except Exception:
            cb.record_failure()
            raise
        cb.record_success()
    """

    def __init__(
        self,
        service_id: str,
        config: CircuitBreakerConfig | None = None,
    ):
        self.service_id = service_id
        self.config = config or CircuitBreakerConfig()

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: datetime | None = None
        self._opened_at: datetime | None = None

    @property
    def state(self) -> CircuitState:
        """Get current state, checking for automatic transitions."""
        if self._state == CircuitState.OPEN and self._opened_at is not None:
            cooldown = timedelta(milliseconds=self.config.cooldown_ms)
            if datetime.now() - self._opened_at >= cooldown:
                self._state = CircuitState.HALF_OPEN
                self._failure_count = 0
                logger.info(
                    f"Circuit breaker '{self.service_id}' transitioned to HALF_OPEN"
                )
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def guard(self) -> None:
        """Raise CircuitOpenError if requests are currently blocked."""
        if self.state == CircuitState.OPEN:
            raise CircuitOpenError(self.service_id, self.get_time_until_reset() or 0)

    def record_success(self) -> None:
        """Record a successful request."""
        self._failure_count = 0
        if self._state == CircuitState.HALF_OPEN:
            self._close()

    def record_failure(self) -> None:
        """Record a failed request."""
        self._failure_count += 1
        self._last_failure_time = datetime.now()

        if self._failure_count >= self.config.failure_threshold:
            self._open()

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``operation`` behind the guard.

        Failures are recorded and re-raised unchanged.
        """
        self.guard()
        try:
            result = await operation()
        except Exception:
            self.record_failure()
            raise
        self.record_success()
        return result

    def _open(self) -> None:
        """Transition to OPEN state."""
        self._state = CircuitState.OPEN
        self._opened_at = datetime.now()
        logger.warning(
            f"Circuit breaker '{self.service_id}' OPENED after {self._failure_count} failures"
        )

    def _close(self) -> None:
        """Transition to CLOSED state."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = None
        logger.info(f"Circuit breaker '{self.service_id}' CLOSED (recovered)")

    def reset(self) -> None:
        """Manually reset the circuit breaker."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = None
        self._last_failure_time = None
        logger.info(f"Circuit breaker '{self.service_id}' manually reset")

    def get_time_until_reset(self) -> float | None:
        """Get seconds until circuit transitions to half-open."""
        if self._state != CircuitState.OPEN or not self._opened_at:
            return None

        reset_at = self._opened_at + timedelta(milliseconds=self.config.cooldown_ms)
        remaining = (reset_at - datetime.now()).total_seconds()
        return max(0, remaining)

    def get_status(self) -> dict[str, Any]:
        """Get current status as dictionary."""
        return {
            "service_id": self.service_id,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "last_failure": (
                self._last_failure_time.isoformat() if self._last_failure_time else None
            ),
            "opened_at": (self._opened_at.isoformat() if self._opened_at else None),
            "time_until_reset": self.get_time_until_reset(),
        }
