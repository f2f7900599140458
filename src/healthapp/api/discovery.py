"""Locate the HealthApp backend on the local network.

The backend is usually run on a developer machine on the same LAN, so its
address is not known in advance.  :class:`NetworkDiscovery` pings a list
of candidate hosts for a health endpoint and picks the first that answers:

1. hosts configured by the user (``discovery_hosts`` setting),
2. the last host that worked (remembered in the credential store),
3. this machine's own LAN address,
4. a handful of common router/loopback addresses.

Nothing here raises on network trouble: with no reachable candidate the
client falls back to ``localhost``.
"""

from __future__ import annotations

import asyncio
import socket
from typing import Iterable

import httpx
from loguru import logger

from ..storage.credentials import LAST_KNOWN_HOST_KEY, CredentialStore
from .endpoints import HEALTH_PATHS

DEFAULT_PORT = 5000
FALLBACK_HOST = "localhost"
PING_TIMEOUT = 5.0
CONNECTION_CHECK_TIMEOUT = 2.0
COMMON_HOSTS = ("192.168.0.1", "192.168.1.1", "10.0.0.1", "127.0.0.1", "localhost")


def local_ip_address() -> str | None:
    """Best-effort LAN address of this machine (``None`` for loopback/unknown)."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            # No packet is sent for a UDP connect; it only selects a route.
            sock.connect(("10.255.255.255", 1))
            ip = sock.getsockname()[0]
    except OSError:
        return None
    if not ip or ip.startswith("127."):
        return None
    return ip


class NetworkDiscovery:
    def __init__(
        self,
        store: CredentialStore | None = None,
        hosts: Iterable[str] = (),
        port: int = DEFAULT_PORT,
        ping_timeout: float = PING_TIMEOUT,
        include_local: bool = True,
        include_common: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.store = store
        self.hosts = list(hosts)
        self.port = port
        self.ping_timeout = ping_timeout
        self.include_local = include_local
        self.include_common = include_common
        self._transport = transport

    def url_for(self, host: str) -> str:
        return f"http://{host}:{self.port}"

    def candidate_hosts(self) -> list[str]:
        """Hosts to ping, most likely first, without duplicates."""
        candidates: list[str] = list(self.hosts)
        if self.store is not None:
            last_known = self.store.get(LAST_KNOWN_HOST_KEY)
            if last_known:
                candidates.append(last_known)
        if self.include_local:
            local = local_ip_address()
            if local:
                candidates.append(local)
        if self.include_common:
            candidates.extend(COMMON_HOSTS)
        return list(dict.fromkeys(h for h in candidates if h))

    async def ping(self, host: str) -> bool:
        """Return ``True`` if *host* answers a health check with status < 500."""
        base = self.url_for(host)
        async with httpx.AsyncClient(
            timeout=self.ping_timeout, transport=self._transport
        ) as http:
            for path in HEALTH_PATHS:
                try:
                    resp = await http.get(f"{base}{path}")
                except httpx.HTTPError as exc:
                    logger.debug(f"Ping {base}{path} failed: {exc}")
                    continue
                if resp.status_code < 500:
                    logger.debug(f"Ping {base}{path} -> {resp.status_code}")
                    return True
        return False

    async def discover_host(self) -> str:
        """Ping every candidate concurrently and return the first reachable one."""
        candidates = self.candidate_hosts()
        logger.debug(f"Probing backend candidates: {candidates}")
        results = await asyncio.gather(*(self.ping(host) for host in candidates))
        for host, reachable in zip(candidates, results):
            if reachable:
                logger.info(f"Backend found at {host}")
                if self.store is not None:
                    self.store.set(LAST_KNOWN_HOST_KEY, host)
                return host
        logger.warning(f"No backend answered; falling back to {FALLBACK_HOST}")
        return FALLBACK_HOST

    async def resolve_base_url(self) -> str:
        return self.url_for(await self.discover_host())

    async def check_connection(
        self, base_url: str, timeout: float = CONNECTION_CHECK_TIMEOUT
    ) -> bool:
        """Return ``True`` if ``base_url/health`` answers 200 within *timeout*."""
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as http:
            try:
                resp = await http.get(f"{base_url.rstrip('/')}{HEALTH_PATHS[0]}")
            except httpx.HTTPError as exc:
                logger.warning(f"API connection check failed: {exc}")
                return False
        return resp.status_code == 200
