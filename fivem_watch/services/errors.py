"""
Error taxonomy for the client library.
"""

import traceback
from typing import Any


class FivemApiError(Exception):
    """Base exception carrying a machine-readable error code."""

    code = "FIVEM_API_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        service_id: str | None = None,
    ):
        if code is not None:
            self.code = code
        self.service_id = service_id
        super().__init__(message)


class ConfigurationError(FivemApiError):
    """Invalid client configuration. Raised at construction, never retried."""

    code = "INVALID_CONFIGURATION"


class TransientNetworkError(FivemApiError):
    """Request failed on the wire: connection error, bad status or bad body."""

    code = "NETWORK_ERROR"

    def __init__(self, message: str, url: str | None = None, code: str | None = None):
        self.url = url
        super().__init__(message, code=code)


class RequestTimeoutError(TransientNetworkError):
    """Request timed out."""

    code = "TIMEOUT"

    def __init__(self, url: str, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(f"Request to '{url}' timed out after {timeout_ms}ms", url=url)


class HttpStatusError(TransientNetworkError):
    """Server answered with a non-2xx status."""

    code = "HTTP_STATUS"

    def __init__(self, url: str, status_code: int, reason: str = ""):
        self.status_code = status_code
        message = f"HTTP {status_code}: {reason}" if reason else f"HTTP {status_code}"
        super().__init__(message, url=url)


class CircuitOpenError(FivemApiError):
    """Circuit breaker is open, request blocked."""

    code = "CIRCUIT_OPEN"

    def __init__(self, service_id: str, reset_after_seconds: float):
        self.reset_after_seconds = reset_after_seconds
        super().__init__(
            f"Circuit breaker open for service '{service_id}', "
            f"retry after {reset_after_seconds:.1f}s",
            service_id=service_id,
        )


class ResolutionError(FivemApiError):
    """A cfx.re join link could not be resolved to an endpoint."""

    code = "RESOLUTION_ERROR"


class QueryRejectedError(FivemApiError):
    """
    A query method failed.

    Carries the error description and the safe fallback value the caller
    should use instead, e.g. ``{"error": {...}, "players": []}``.
    """

    code = "QUERY_REJECTED"

    def __init__(self, cause: BaseException, fallback_key: str, fallback: Any):
        self.error = {
            "message": str(cause),
            "stack": _format_stack(cause),
        }
        self.fallback_key = fallback_key
        self.fallback = fallback
        super().__init__(str(cause))

    def to_dict(self) -> dict[str, Any]:
        """Rejection payload."""
        return {"error": dict(self.error), self.fallback_key: self.fallback}


def _format_stack(exc: BaseException) -> str | None:
    if exc.__traceback__ is None:
        return None
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
