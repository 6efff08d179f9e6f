import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    # Default server for the example CLI
    fivem_address: str = Field(default="127.0.0.1", alias="FIVEM_ADDRESS")
    fivem_port: int = Field(default=30120, alias="FIVEM_PORT")

    # HTTP Configuration
    request_timeout_ms: int = Field(default=5000, alias="FIVEM_REQUEST_TIMEOUT_MS")

    # cfx.re join-link resolution
    cfx_api_base: str = Field(
        default="https://servers-frontend.fivem.net/api/servers/single",
        alias="FIVEM_CFX_API_BASE",
    )
    resolve_timeout_ms: int = Field(default=10000, alias="FIVEM_RESOLVE_TIMEOUT_MS")
    resolve_cache_ttl_ms: int = Field(
        default=5 * 60 * 1000, alias="FIVEM_RESOLVE_CACHE_TTL_MS"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="FIVEM_LOG_LEVEL")


global_settings = Settings(**os.environ)
