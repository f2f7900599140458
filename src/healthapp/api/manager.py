"""Application-lifetime owner of the shared :class:`ApiClient`.

One :class:`ApiManager` is created at the composition root (the CLI, a
script, a test) and handed to whatever needs the API.  The client is
built on first use -- which may involve discovering the backend on the
local network -- and then reused until :meth:`ApiManager.reset`.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from loguru import logger

from ..storage.config import AppSettings
from ..storage.credentials import CredentialStore, FileCredentialStore
from .client import ApiClient
from .discovery import NetworkDiscovery


class ApiManager:
    """Builds the API client lazily and hands out the same instance.

    Parameters
    ----------
    store:
        Credential store shared by the client and discovery.  Defaults to
        the on-disk :class:`FileCredentialStore`.
    settings:
        Settings dict (see :data:`healthapp.storage.config.DEFAULT_SETTINGS`).
        Defaults to :meth:`AppSettings.effective`.
    discovery:
        Used to find the backend when ``settings["api_url"]`` is empty.
    transport:
        Optional httpx transport passed to the client (tests use
        :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        store: CredentialStore | None = None,
        settings: dict[str, Any] | None = None,
        discovery: NetworkDiscovery | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.store = store if store is not None else FileCredentialStore()
        self.settings = settings if settings is not None else AppSettings.effective()
        self.discovery = discovery or NetworkDiscovery(
            store=self.store,
            hosts=self.settings.get("discovery_hosts") or (),
        )
        self._transport = transport
        self._client: ApiClient | None = None
        self._lock = asyncio.Lock()

    async def resolve_base_url(self) -> str:
        configured = (self.settings.get("api_url") or "").strip()
        if configured:
            return configured
        return await self.discovery.resolve_base_url()

    async def get_client(self) -> ApiClient:
        """Return the shared client, building it on first call."""
        if self._client is not None:
            return self._client
        async with self._lock:
            if self._client is None:
                base_url = await self.resolve_base_url()
                self._client = ApiClient(
                    base_url,
                    self.store,
                    timeout_ms=int(self.settings.get("timeout_ms", 10_000)),
                    refresh_policy=self.settings.get("refresh_policy", "keep_previous"),
                    coalesce_refresh=bool(self.settings.get("coalesce_refresh", True)),
                    transport=self._transport,
                )
                logger.info(f"Using API at {base_url}")
        return self._client

    async def reset(self) -> None:
        """Close and forget the client; the next :meth:`get_client` rebuilds it."""
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()
            logger.debug("API client reset")

    async def __aenter__(self) -> ApiManager:
        return self

    async def __aexit__(self, *args) -> None:
        await self.reset()
