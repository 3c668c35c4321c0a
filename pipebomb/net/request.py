"""
A single HTTP call against a pipebomb server.

Request wraps exactly one aiohttp call and always produces a Response:
    - 204 replies become Response(204, "No Content", None)
    - enveloped replies (any status) are decoded from the envelope
    - non-enveloped error replies keep their HTTP status and reason
    - transport failures become Response(errno, errcode, cause)

Nothing is retried here; the callers decide what a failure means.
"""

import asyncio
import errno
import json
from typing import Any

import aiohttp

from pipebomb.core.logger import get_logger
from pipebomb.net.response import Response


logger = get_logger(__name__)

# Verbs that carry no request body
_BODYLESS_METHODS = ("get", "delete", "head", "options")


class Request:
    """
    One HTTP call.

    Attributes:
        method: Lower-case HTTP verb.
        url: Absolute URL.
        authorization: Value of the Authorization header ("" if anonymous).
        body: JSON body for verbs that carry one.
        timeout: Optional total timeout in seconds for this call only.

    Example:
        request = Request(session, "get", "https://host/v1/playlists/7", token)
        response = await request.send()
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        authorization: str | None = None,
        body: Any = None,
        timeout: float | None = None
    ) -> None:
        self.session = session
        self.method = method.lower()
        self.url = url
        self.authorization = authorization or ""
        self.body = body if body is not None else {}
        self.timeout = timeout

    async def send(self) -> Response:
        """
        Perform the call and normalize the outcome.

        Returns:
            Response: Never raises for network or protocol problems.
        """
        kwargs: dict[str, Any] = {"headers": {"Authorization": self.authorization}}
        if self.method not in _BODYLESS_METHODS:
            kwargs["json"] = self.body
        if self.timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with self.session.request(self.method, self.url, **kwargs) as reply:
                if reply.status == 204:
                    return Response.no_content()
                raw = await reply.read()
                return self._decode(reply.status, reply.reason or "", raw)
        except asyncio.TimeoutError as e:
            logger.debug(f"{self.method.upper()} {self.url} timed out")
            return Response(errno.ETIMEDOUT, "ETIMEDOUT", e)
        except (aiohttp.ClientError, OSError) as e:
            logger.debug(f"{self.method.upper()} {self.url} failed: {e}")
            return self._transport_failure(e)

    @staticmethod
    def _decode(status: int, reason: str, raw: bytes) -> Response:
        # Undecodable bytes are treated like any other non-JSON body
        text = raw.decode("utf-8", errors="replace")
        try:
            data = json.loads(raw.decode("utf-8")) if raw else None
        except ValueError:
            data = text

        if 200 <= status < 300:
            return Response.from_envelope(data)
        if Response.has_envelope(data):
            return Response.from_envelope(data)
        return Response(status, reason, data)

    @staticmethod
    def _transport_failure(error: BaseException) -> Response:
        code = getattr(error, "errno", None)
        if not isinstance(code, int):
            os_error = getattr(error, "os_error", None)
            code = getattr(os_error, "errno", None)
        if not isinstance(code, int):
            return Response(-1, type(error).__name__, error)
        return Response(code, errno.errorcode.get(code, type(error).__name__), error)
