"""Tests for backend discovery on the local network."""
import asyncio
from unittest.mock import patch

import httpx

from healthapp.api.discovery import COMMON_HOSTS, FALLBACK_HOST, NetworkDiscovery
from healthapp.storage.credentials import LAST_KNOWN_HOST_KEY, MemoryCredentialStore


def lan(status_by_host):
    """Transport answering per host; unknown hosts refuse the connection."""
    seen = []

    def handler(request):
        seen.append((request.url.host, request.url.path))
        status = status_by_host.get(request.url.host)
        if status is None:
            raise httpx.ConnectError("refused", request=request)
        if isinstance(status, dict):
            status = status.get(request.url.path, 404)
        return httpx.Response(status, json={"status": "ok"})

    return httpx.MockTransport(handler), seen


def discovery(transport, **kwargs):
    kwargs.setdefault("include_local", False)
    kwargs.setdefault("include_common", False)
    return NetworkDiscovery(transport=transport, **kwargs)


# =========================================================================
# Candidates
# =========================================================================


class TestCandidateHosts:
    def test_order_and_dedup(self):
        store = MemoryCredentialStore({LAST_KNOWN_HOST_KEY: "192.168.0.103"})
        finder = NetworkDiscovery(store=store, hosts=["192.168.0.103", "myhost"])
        with patch("healthapp.api.discovery.local_ip_address", return_value="192.168.0.50"):
            hosts = finder.candidate_hosts()
        assert hosts[:3] == ["192.168.0.103", "myhost", "192.168.0.50"]
        assert hosts[3:] == list(COMMON_HOSTS)

    def test_last_known_before_local(self):
        store = MemoryCredentialStore({LAST_KNOWN_HOST_KEY: "10.1.1.1"})
        finder = NetworkDiscovery(store=store, include_common=False)
        with patch("healthapp.api.discovery.local_ip_address", return_value="10.1.1.2"):
            assert finder.candidate_hosts() == ["10.1.1.1", "10.1.1.2"]

    def test_url_for(self):
        assert NetworkDiscovery(port=8080).url_for("h") == "http://h:8080"
        assert NetworkDiscovery().url_for("h") == "http://h:5000"


# =========================================================================
# Probing
# =========================================================================


class TestPing:
    def test_reachable(self):
        transport, _ = lan({"a": 200})
        assert asyncio.run(discovery(transport).ping("a")) is True

    def test_client_error_counts_as_reachable(self):
        transport, _ = lan({"a": 404})
        assert asyncio.run(discovery(transport).ping("a")) is True

    def test_server_error_tries_next_path(self):
        transport, seen = lan({"a": {"/health": 503, "/api/health": 200}})
        assert asyncio.run(discovery(transport).ping("a")) is True
        assert seen == [("a", "/health"), ("a", "/api/health")]

    def test_unreachable(self):
        transport, seen = lan({})
        assert asyncio.run(discovery(transport).ping("a")) is False
        assert len(seen) == 2


class TestDiscoverHost:
    def test_first_reachable_in_candidate_order(self):
        store = MemoryCredentialStore()
        transport, _ = lan({"b": 200, "c": 200})
        finder = discovery(transport, store=store, hosts=["a", "b", "c"])

        assert asyncio.run(finder.discover_host()) == "b"
        assert store.get(LAST_KNOWN_HOST_KEY) == "b"

    def test_fallback_to_localhost(self):
        store = MemoryCredentialStore()
        transport, _ = lan({})
        finder = discovery(transport, store=store, hosts=["a", "b"])

        assert asyncio.run(finder.discover_host()) == FALLBACK_HOST
        assert store.get(LAST_KNOWN_HOST_KEY) is None

    def test_resolve_base_url(self):
        transport, _ = lan({"b": 200})
        finder = discovery(transport, hosts=["a", "b"], port=5001)
        assert asyncio.run(finder.resolve_base_url()) == "http://b:5001"


class TestCheckConnection:
    def test_ok(self):
        transport, seen = lan({"api": 200})
        assert asyncio.run(discovery(transport).check_connection("http://api:5000/")) is True
        assert seen == [("api", "/health")]

    def test_non_200(self):
        transport, _ = lan({"api": 204})
        assert asyncio.run(discovery(transport).check_connection("http://api:5000")) is False

    def test_unreachable(self):
        transport, _ = lan({})
        assert asyncio.run(discovery(transport).check_connection("http://api:5000")) is False
