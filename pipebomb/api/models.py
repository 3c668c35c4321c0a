"""Small value types returned by the V1 endpoints."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ServiceInfo:
    """
    A music service the server can search and stream from.

    Attributes:
        name: Display name, e.g. "Youtube Music".
        prefix: Prefix the service uses in track IDs.
    """
    name: str
    prefix: str

    @classmethod
    def from_json(cls, json: Any) -> "ServiceInfo | None":
        if not isinstance(json, dict):
            return None
        if not isinstance(json.get("name"), str) or not isinstance(json.get("prefix"), str):
            return None
        return cls(name=json["name"], prefix=json["prefix"])


# Search response markers
FOUND_OBJECT = "foundObject"
SEARCH_RESULTS = "searchResults"
