"""
Client configuration.
"""

from typing import Any, Mapping

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic_core import PydanticCustomError

from fivem_watch.services.circuit_breaker import CircuitBreakerConfig
from fivem_watch.services.errors import ConfigurationError
from fivem_watch.services.resolver import DEFAULT_PORT, is_join_link
from fivem_watch.services.retry import RetryConfig

DEFAULT_INTERVAL_MS = 2500

# Field name -> error code for ConfigurationError
_ERROR_CODES = {
    "address": "INVALID_ADDRESS",
    "port": "INVALID_PORT",
    "use_structure": "INVALID_USE_STRUCTURE",
    "interval": "INVALID_INTERVAL",
    "cache_ttl_ms": "INVALID_CACHE_TTL",
    "retry": "INVALID_RETRY",
    "circuit_breaker": "INVALID_CIRCUIT_BREAKER",
}


class ClientOptions(BaseModel):
    """
    Options for a single-server client.

    ``retry`` and ``circuit_breaker`` accept False/None (disabled), True
    (defaults), a mapping of overrides or a config instance.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    address: StrictStr | None = Field(default=None, validate_default=True)
    port: StrictInt | None = Field(default=None, validate_default=True)
    use_structure: StrictBool = False
    interval: StrictInt | StrictFloat = DEFAULT_INTERVAL_MS
    cache_ttl_ms: StrictInt = Field(default=0, ge=0)
    retry: RetryConfig | None = None
    circuit_breaker: CircuitBreakerConfig | None = None

    @field_validator("address")
    @classmethod
    def _require_address(cls, value: str | None) -> str:
        if value is None or not value.strip():
            raise PydanticCustomError("no_address", "No address was provided.")
        return value.strip()

    @field_validator("port")
    @classmethod
    def _default_port(cls, value: int | None, info: ValidationInfo) -> int:
        address = info.data.get("address")
        join_link = isinstance(address, str) and is_join_link(address)
        if value is None:
            return 0 if join_link else DEFAULT_PORT
        if not join_link and value <= 0:
            raise ValueError("The port option must be a positive number when using IP/hostname.")
        return value

    @field_validator("interval")
    @classmethod
    def _positive_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("The interval option must be a positive number.")
        return value

    @field_validator("retry", "circuit_breaker", mode="before")
    @classmethod
    def _toggle(cls, value: Any) -> Any:
        if value is None or value is False:
            return None
        if value is True:
            return {}
        return value

    @property
    def is_join_link(self) -> bool:
        return is_join_link(self.address or "")


def build_options(
    options: "ClientOptions | Mapping[str, Any] | None" = None, **overrides: Any
) -> ClientOptions:
    """
    Validate options from a mapping and/or keyword arguments.

    Raises:
        ConfigurationError: With the code of the first invalid field
    """
    if isinstance(options, ClientOptions):
        if not overrides:
            return options
        options = options.model_dump()

    data = dict(options or {})
    data.update(overrides)

    try:
        return ClientOptions.model_validate(data)
    except ValidationError as e:
        raise _to_configuration_error(e) from e


def _to_configuration_error(error: ValidationError) -> ConfigurationError:
    first = error.errors()[0]
    field = str(first["loc"][0]) if first["loc"] else ""
    if first["type"] in ("no_address", "missing") and field == "address":
        code = "NO_ADDRESS"
    else:
        code = _ERROR_CODES.get(field, "INVALID_OPTION")
    return ConfigurationError(f"{field or 'options'}: {first['msg']}", code=code)
