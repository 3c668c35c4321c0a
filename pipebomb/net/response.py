"""
Normalized server response.

Every server reply, transport failure and malformed payload is turned into a
Response so callers only ever deal with one shape:

    {statusCode: int, statusMessage: str, response: any}
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Response:
    """
    One normalized reply.

    Attributes:
        status_code: HTTP-style status (200, 404, ...) or, for a transport
                     failure, the OS error number.
        status_message: Reason phrase, or the symbolic OS error code
                        (e.g. "ECONNREFUSED") for a transport failure.
        response: Decoded body. For a malformed envelope this is the raw
                  payload; for a transport failure it is the cause.
    """
    status_code: int
    status_message: str
    response: Any = None

    @property
    def ok(self) -> bool:
        """True for any 2xx status."""
        return 200 <= self.status_code < 300

    @classmethod
    def no_content(cls) -> "Response":
        """The fixed result for an HTTP 204 reply."""
        return cls(204, "No Content", None)

    @classmethod
    def from_envelope(cls, data: Any) -> "Response":
        """
        Decode a server envelope.

        A payload missing any envelope field, or with fields of the wrong
        type, is coerced to a synthetic 500 carrying the raw payload so the
        caller still receives a well-formed Response.
        """
        if (
            isinstance(data, dict)
            and isinstance(data.get("statusCode"), int)
            and not isinstance(data.get("statusCode"), bool)
            and isinstance(data.get("statusMessage"), str)
            and "response" in data
        ):
            return cls(data["statusCode"], data["statusMessage"], data["response"])
        return cls(500, "Internal Server Error", data)

    @staticmethod
    def has_envelope(data: Any) -> bool:
        """True if data at least claims to be an envelope (has a statusCode)."""
        return isinstance(data, dict) and data.get("statusCode") is not None
