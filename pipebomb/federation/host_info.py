"""
Federation identification probe.

A host is accepted as a peer only if GET /v1/identify answers with a
success envelope that marks itself as a pipebomb server or exposes a
name. HTTPS is always tried first; plain HTTP is only tried when HTTPS
could not be reached at all. An HTTPS server that answers but is not a
pipebomb server rejects the host outright.
"""

import asyncio
import json
from dataclasses import dataclass

import aiohttp

from pipebomb.core.logger import get_logger


logger = get_logger(__name__)

IDENTIFY_PATH = "v1/identify"
DEFAULT_PROBE_TIMEOUT = 3.0


@dataclass(frozen=True)
class HostInfo:
    """
    A confirmed peer.

    Attributes:
        address: Host (and optional port) without scheme, e.g. "music.example.org".
        name: Display name the server reported.
        https: Whether the server answered over HTTPS.
    """
    address: str
    name: str
    https: bool

    @property
    def url(self) -> str:
        return f"http{'s' if self.https else ''}://{self.address}"


class ProbeConnectionError(Exception):
    """The identification request did not get a reply."""


class ProbeRejectedError(Exception):
    """A server replied, but not as a pipebomb server."""


def strip_scheme(server_url: str) -> str:
    """Remove a leading http:// or https:// and any trailing slashes."""
    lowered = server_url.lower()
    if lowered.startswith("http://"):
        server_url = server_url[7:]
    elif lowered.startswith("https://"):
        server_url = server_url[8:]
    return server_url.rstrip("/")


def parse_identity(data: object) -> str | None:
    """
    Extract the server name from an identify payload.

    Returns:
        The server name, or None if the payload does not identify a
        pipebomb server.
    """
    if not isinstance(data, dict) or data.get("statusCode") != 200:
        return None
    body = data.get("response")
    if not isinstance(body, dict):
        return None
    name = body.get("name")
    if body.get("pipeBombServer") is True or isinstance(name, str):
        return name if isinstance(name, str) else ""
    return None


async def _identify(session: aiohttp.ClientSession, base_url: str) -> str:
    try:
        async with session.get(f"{base_url}/{IDENTIFY_PATH}") as reply:
            raw = await reply.read()
    except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
        raise ProbeConnectionError(str(e)) from e

    try:
        data = json.loads(raw.decode("utf-8"))
    except ValueError as e:
        raise ProbeRejectedError("identify reply is not JSON") from e

    name = parse_identity(data)
    if name is None:
        raise ProbeRejectedError("not a pipebomb server")
    return name


async def check_host(server_url: str, timeout: float = DEFAULT_PROBE_TIMEOUT) -> HostInfo | None:
    """
    Probe a host to see whether it runs a pipebomb server.

    Args:
        server_url: Host address, with or without scheme.
        timeout: Bound in seconds for each of the two probe attempts.

    Returns:
        HostInfo for a confirmed server, None if the host is unreachable over
        both protocols or is not a pipebomb server.
    """
    address = strip_scheme(server_url)
    client_timeout = aiohttp.ClientTimeout(total=timeout)

    async with aiohttp.ClientSession(timeout=client_timeout) as session:
        try:
            name = await _identify(session, f"https://{address}")
            return HostInfo(address=address, name=name or address, https=True)
        except ProbeRejectedError as e:
            logger.info(f"Rejected {address}: {e}")
            return None
        except ProbeConnectionError:
            logger.debug(f"{address} not reachable over HTTPS, trying HTTP")

        try:
            name = await _identify(session, f"http://{address}")
            return HostInfo(address=address, name=name or address, https=False)
        except ProbeRejectedError as e:
            logger.info(f"Rejected {address}: {e}")
        except ProbeConnectionError:
            logger.info(f"{address} is not reachable")
    return None
