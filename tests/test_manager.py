"""Tests for ApiManager -- lazy construction, reuse and reset."""
import asyncio

import httpx

from conftest import BASE_URL, respond
from healthapp.api.client import RefreshTokenPolicy
from healthapp.api.manager import ApiManager
from healthapp.storage.config import DEFAULT_SETTINGS


class StubDiscovery:
    """Stands in for NetworkDiscovery; counts lookups."""

    def __init__(self, url="http://10.0.0.7:5000"):
        self.url = url
        self.calls = 0

    async def resolve_base_url(self):
        self.calls += 1
        await asyncio.sleep(0)
        return self.url


def settings(**overrides):
    values = dict(DEFAULT_SETTINGS)
    values.update(overrides)
    return values


# =========================================================================
# get_client
# =========================================================================


class TestGetClient:
    def test_same_instance(self, store):
        manager = ApiManager(store=store, settings=settings(api_url=BASE_URL))

        async def scenario():
            async with manager:
                first = await manager.get_client()
                second = await manager.get_client()
                return first, second

        first, second = asyncio.run(scenario())
        assert first is second
        assert first.base_url == BASE_URL
        assert first.store is store

    def test_concurrent_first_use_builds_one_client(self, store):
        discovery = StubDiscovery()
        manager = ApiManager(store=store, settings=settings(), discovery=discovery)

        async def scenario():
            async with manager:
                return await asyncio.gather(*(manager.get_client() for _ in range(5)))

        clients = asyncio.run(scenario())
        assert all(c is clients[0] for c in clients)
        assert discovery.calls == 1

    def test_configured_url_skips_discovery(self, store):
        discovery = StubDiscovery()
        manager = ApiManager(
            store=store, settings=settings(api_url=" http://api.example:8080 "), discovery=discovery
        )

        async def scenario():
            async with manager:
                return (await manager.get_client()).base_url

        assert asyncio.run(scenario()) == "http://api.example:8080"
        assert discovery.calls == 0

    def test_empty_url_uses_discovery(self, store):
        manager = ApiManager(store=store, settings=settings(), discovery=StubDiscovery())

        async def scenario():
            async with manager:
                return (await manager.get_client()).base_url

        assert asyncio.run(scenario()) == "http://10.0.0.7:5000"

    def test_settings_propagate(self, store):
        manager = ApiManager(
            store=store,
            settings=settings(
                api_url=BASE_URL,
                timeout_ms=2500,
                refresh_policy="require_rotation",
                coalesce_refresh=False,
            ),
        )

        async def scenario():
            async with manager:
                client = await manager.get_client()
                return client, client._http.timeout.read

        client, read_timeout = asyncio.run(scenario())
        assert read_timeout == 2.5
        assert client.refresh_policy is RefreshTokenPolicy.REQUIRE_ROTATION
        assert client.coalesce_refresh is False

    def test_transport_used(self, backend, store):
        backend.route("GET", "/api/users/doctors", respond(200, []))
        manager = ApiManager(
            store=store,
            settings=settings(api_url=BASE_URL),
            transport=httpx.MockTransport(backend),
        )

        async def scenario():
            async with manager:
                client = await manager.get_client()
                return await client.get("/api/users/doctors")

        assert asyncio.run(scenario()).status_code == 200
        assert len(backend.requests) == 1


# =========================================================================
# reset
# =========================================================================


class TestReset:
    def test_reset_closes_and_rebuilds(self, store):
        manager = ApiManager(store=store, settings=settings(api_url=BASE_URL))

        async def scenario():
            first = await manager.get_client()
            await manager.reset()
            second = await manager.get_client()
            await manager.reset()
            return first, second

        first, second = asyncio.run(scenario())
        assert first is not second
        assert first.is_closed
        assert second.is_closed

    def test_reset_without_client(self, store):
        manager = ApiManager(store=store, settings=settings(api_url=BASE_URL))
        asyncio.run(manager.reset())

    def test_context_exit_resets(self, store):
        manager = ApiManager(store=store, settings=settings(api_url=BASE_URL))

        async def scenario():
            async with manager:
                return await manager.get_client()

        client = asyncio.run(scenario())
        assert client.is_closed
