"""Reachability and latency information about a known server."""

import asyncio
import json
import time

import aiohttp

from pipebomb.federation.host_info import IDENTIFY_PATH, HostInfo, parse_identity, strip_scheme


class ServerInfo:
    """
    A server as seen from this client.

    Attributes:
        address: Host without scheme.
        name: Display name reported by the server.
        uptime: Seconds the server reported being up (0 if unknown).
        status: "secure", "insecure" or "offline".
    """

    LATENCY_SAMPLES = 5

    def __init__(self, address: str, name: str, https: bool, uptime: float = 0) -> None:
        self.address = strip_scheme(address)
        self.name = name
        self.uptime = uptime
        self.status = "secure" if https else "insecure"
        self._https = https

    @classmethod
    def from_host_info(cls, info: HostInfo, uptime: float = 0) -> "ServerInfo":
        return cls(info.address, info.name, info.https, uptime)

    def get_url(self) -> str:
        return f"http{'s' if self._https else ''}://{self.address}"

    def get_status(self) -> str:
        return self.status

    async def get_latency(self, timeout: float = 3.0, samples: int = LATENCY_SAMPLES) -> int | None:
        """
        Measure the mean identify round trip.

        Every sample must succeed and identify a pipebomb server; a single
        failure marks the server offline and returns None.

        Args:
            timeout: Bound in seconds for each sample.
            samples: Number of sequential requests to average.

        Returns:
            Mean latency in whole milliseconds, or None.
        """
        url = f"{self.get_url()}/{IDENTIFY_PATH}"
        total = 0.0
        client_timeout = aiohttp.ClientTimeout(total=timeout)
        try:
            async with aiohttp.ClientSession(timeout=client_timeout) as session:
                for _ in range(samples):
                    start = time.perf_counter()
                    async with session.get(url) as reply:
                        data = json.loads(await reply.text())
                    if parse_identity(data) is None:
                        raise ValueError("not a pipebomb server")
                    total += time.perf_counter() - start
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError, ValueError):
            self.status = "offline"
            return None
        return round(total * 1000 / samples)
