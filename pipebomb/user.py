"""User accounts as exposed by the server."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class User:
    """
    A user account.

    Attributes:
        user_id: Server-side user ID (composite when the context includes
                 addresses in IDs).
        username: Display name.
    """
    user_id: str
    username: str

    @classmethod
    def from_json(cls, context, json: Any) -> "User | None":
        """Build a User from {userID: str, username: str}, or None."""
        if not isinstance(json, dict):
            return None
        user_id = json.get("userID")
        username = json.get("username")
        if not isinstance(user_id, str) or not isinstance(username, str):
            return None
        return cls(user_id=context.qualify_id(user_id), username=username)
