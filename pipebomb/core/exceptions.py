"""
Exception classes for pipebomb.

This module defines all custom exceptions used throughout the client.
Each exception is designed to provide a clear error message and to
distinguish between the different failure modes a caller can react to.

Exception Hierarchy:
    PipeBombError (base)
        ConfigError - Configuration file or option issues
        ResponseError - Server answered with a non-success status
            InvalidResponseError - Success status but unusable payload
        CollectionDeletedError - Operation on a deleted playlist
        FederationError - Peer server issues
            ServerOfflineError - Peer could not be reached
            AuthenticationError - Login handshake refused

Transport failures (DNS, refused connections, timeouts) are NOT raised as
exceptions. They are folded into a Response by the request layer, so a
caller always holds a well-formed Response and branches on its status code.
"""

from typing import Any


class PipeBombError(Exception):
    """
    Base exception for all pipebomb errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch every client error with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g. IDs, hosts).

    Example:
        try:
            playlist = await client.v1.get_playlist("7")
        except PipeBombError as e:
            logger.error(f"Lookup failed: {e.message}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional context about
                     the error. Common keys include 'collection_id',
                     'track_id', 'host' and 'status_code'.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(PipeBombError):
    """
    Raised when there's an issue with the configuration.

    Common causes:
        - config file not found or not valid YAML
        - an option override has the wrong type (e.g. a string cache time)
        - a numeric option is negative or zero where a positive value is needed

    Example:
        raise ConfigError(
            "'trackCacheTime' must be a positive number",
            details={'field': 'trackCacheTime', 'value': -1}
        )
    """
    pass


class ResponseError(PipeBombError):
    """
    Raised when the server answers with a status the operation did not expect.

    The normalized Response is kept on the exception so callers can branch on
    the status code exactly as they would on a raw reply.

    Attributes:
        response: The Response that caused the failure.
        status_code: Shortcut for response.status_code.

    Example:
        try:
            await playlist.add_tracks(track)
        except ResponseError as e:
            if e.status_code == 403:
                print("Not your playlist")
    """

    def __init__(self, response: Any, message: str | None = None, details: dict | None = None) -> None:
        status_code = getattr(response, "status_code", None)
        status_message = getattr(response, "status_message", "")
        if message is None:
            message = f"Server returned {status_code} {status_message}".rstrip()
        merged = {"status_code": status_code}
        merged.update(details or {})
        super().__init__(message, merged)
        self.response = response
        self.status_code = status_code


class InvalidResponseError(ResponseError):
    """
    Raised when a success response carries a payload that fails validation.

    List endpoints skip invalid items silently; this error is only used where
    a single entity was requested and nothing usable came back.
    """
    pass


class CollectionDeletedError(PipeBombError):
    """
    Raised when operating on a playlist that has already been deleted.

    This is raised before any network call is made: a deleted playlist
    instance is permanently inert.
    """

    def __init__(self, collection_id: str) -> None:
        super().__init__(
            f"Collection is deleted: {collection_id}",
            details={"collection_id": collection_id}
        )
        self.collection_id = collection_id


class FederationError(PipeBombError):
    """Base class for failures talking to a federated peer server."""
    pass


class ServerOfflineError(FederationError):
    """
    Raised when an identifier belongs to a peer that could not be reached.

    This means "the object may well exist, but its server is not online".
    It must not be confused with a 404 for the object itself.

    Attributes:
        host: Address of the peer that failed the identification probe.
    """

    def __init__(self, host: str) -> None:
        super().__init__(
            f"Server is not online: {host}",
            details={"host": host}
        )
        self.host = host


class AuthenticationError(FederationError):
    """
    Raised when the login handshake is refused by a server.

    Attributes:
        username: The account name that failed to authenticate.
    """

    def __init__(self, message: str, username: str, details: dict | None = None) -> None:
        merged = {"username": username}
        merged.update(details or {})
        super().__init__(message, merged)
        self.username = username
