"""Shared fixtures: an in-memory credential store and a fake backend."""
import json

import httpx
import pytest

from healthapp.api.client import ApiClient
from healthapp.storage.credentials import MemoryCredentialStore

BASE_URL = "http://backend.test:5000"


def respond(status=200, body=None):
    """Route handler returning a fresh JSON response on every call."""
    def handler(request):
        return httpx.Response(status, json=body if body is not None else {})
    return handler


class FakeBackend:
    """Callable for :class:`httpx.MockTransport` that routes by method + path.

    Handlers may be sync or async; every request is recorded.
    """

    def __init__(self):
        self.requests = []
        self.routes = {}

    def route(self, method, path, handler):
        self.routes[(method, path)] = handler

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def __call__(self, request):
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "Not found"})
        return handler(request)


def body_of(request):
    return json.loads(request.content) if request.content else None


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def store():
    return MemoryCredentialStore()


@pytest.fixture
def make_client(backend, store):
    """Factory building an :class:`ApiClient` wired to the fake backend."""
    def factory(**kwargs):
        return ApiClient(BASE_URL, store, transport=httpx.MockTransport(backend), **kwargs)
    return factory
