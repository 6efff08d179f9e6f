"""
Service layer - resilience patterns for calls to FiveM servers.

Provides:
- TtlCache: In-memory cache with per-entry expiry
- CircuitBreaker: Fails fast after repeated failures
- fetch_with_retry: Bounded exponential-backoff retry
- HttpFetcher: JSON GET with timeout
- JoinCodeResolver: cfx.re/join link resolution
"""

from fivem_watch.services.errors import (
    FivemApiError,
    ConfigurationError,
    TransientNetworkError,
    RequestTimeoutError,
    HttpStatusError,
    CircuitOpenError,
    ResolutionError,
    QueryRejectedError,
)
from fivem_watch.services.cache import TtlCache, CacheEntry, CacheStats
from fivem_watch.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from fivem_watch.services.retry import RetryConfig, backoff_delay_ms, fetch_with_retry
from fivem_watch.services.http import HttpFetcher
from fivem_watch.services.resolver import (
    Endpoint,
    JoinCodeResolver,
    extract_code,
    get_resolver,
    is_join_link,
    resolve_join_link,
    set_resolver,
)

__all__ = [
    # Errors
    "FivemApiError",
    "ConfigurationError",
    "TransientNetworkError",
    "RequestTimeoutError",
    "HttpStatusError",
    "CircuitOpenError",
    "ResolutionError",
    "QueryRejectedError",
    # Cache
    "TtlCache",
    "CacheEntry",
    "CacheStats",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    # Retry
    "RetryConfig",
    "backoff_delay_ms",
    "fetch_with_retry",
    # HTTP
    "HttpFetcher",
    # Resolver
    "Endpoint",
    "JoinCodeResolver",
    "extract_code",
    "get_resolver",
    "is_join_link",
    "resolve_join_link",
    "set_resolver",
]
