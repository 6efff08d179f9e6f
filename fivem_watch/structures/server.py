"""
ServerInfo - structured view of ``info.json``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ServerInfo(BaseModel):
    """Server configuration variables and active resources."""

    model_config = ConfigDict(extra="allow", frozen=True)

    vars: dict[str, Any] = Field(default_factory=dict)
    resources: list[str] = Field(default_factory=list)

    @property
    def max_clients(self) -> int:
        return max_clients_from(self.vars)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary."""
        data: dict[str, Any] = {
            "vars": dict(self.vars),
            "resources": list(self.resources),
        }
        data.update(self.model_extra or {})
        return data


def max_clients_from(server_vars: Any) -> int:
    """``sv_maxClients`` as an int; 0 when missing or not numeric."""
    if not isinstance(server_vars, dict):
        return 0
    try:
        return int(server_vars.get("sv_maxClients") or 0)
    except (TypeError, ValueError):
        return 0
