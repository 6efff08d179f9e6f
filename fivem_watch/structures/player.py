"""
Player - structured view of one entry of ``players.json``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


def parse_identifiers(raw: list[Any]) -> dict[str, str]:
    """
    Turn ``["steam:1100...", "license:abc"]`` into ``{"steam": ..., "license": ...}``.

    Entries without a ``:`` separator, or with an empty type or value, are
    dropped. Only the first ``:`` splits, so values may contain colons.
    """
    identifiers: dict[str, str] = {}
    for identifier in raw:
        if not isinstance(identifier, str):
            continue
        id_type, sep, id_value = identifier.partition(":")
        if not sep or not id_type or not id_value:
            continue
        identifiers[id_type] = id_value
    return identifiers


class Player(BaseModel):
    """A connected player. Unknown fields from the server are kept as extras."""

    model_config = ConfigDict(extra="allow", frozen=True)

    name: str | None = None
    id: int | None = None
    identifiers: dict[str, str] | None = None
    # passed through as sent, servers disagree on their types
    ping: Any = None
    endpoint: Any = None

    @field_validator("identifiers", mode="before")
    @classmethod
    def _parse_identifiers(cls, value: Any) -> Any:
        if isinstance(value, list):
            return parse_identifiers(value)
        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Dict-style field access, so raw and structured players read alike."""
        return self.to_dict().get(key, default)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary."""
        data: dict[str, Any] = {
            "name": self.name,
            "id": self.id,
            "identifiers": dict(self.identifiers) if self.identifiers is not None else None,
            "ping": self.ping,
            "endpoint": self.endpoint,
        }
        data.update(self.model_extra or {})
        return data

    def __str__(self) -> str:
        return self.name or "Unknown"
