"""Authenticated async HTTP client for the HealthApp API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

import httpx
from loguru import logger

from ..models.user import RefreshResponse
from ..storage.credentials import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    CredentialStore,
    clear_credentials,
)
from .endpoints import AUTH_REFRESH_TOKEN

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}
DEFAULT_TIMEOUT_MS = 10_000


class SessionExpiredError(Exception):
    """Raised when a rejected access token could not be refreshed.

    Stored credentials are already cleared when this propagates; the
    caller should send the user back through login.  ``__cause__`` holds
    the failure of the refresh call itself.
    """


class RefreshTokenPolicy(str, Enum):
    """What to do when the refresh endpoint does not return a new refresh token."""

    KEEP_PREVIOUS = "keep_previous"
    REQUIRE_ROTATION = "require_rotation"


@dataclass
class PendingRequest:
    """An outgoing request and its place in the refresh-and-retry cycle."""

    request: httpx.Request
    authenticated: bool = True
    retried: bool = False
    # Access token the request actually carried, if any.
    sent_token: str | None = None


def _retrieve_exception(task: asyncio.Future) -> None:
    # Marks a failed refresh as handled even if every waiter was cancelled.
    if not task.cancelled():
        task.exception()


class ApiClient:
    """HTTP client that keeps requests authenticated.

    Every request marked ``authenticated`` gets the current access token
    from *store* as a bearer header.  When the server answers 401 the
    client exchanges the stored refresh token for a new access token and
    resends the request once; the caller only ever sees the retried
    response.  If the refresh fails the stored credentials are cleared
    and :class:`SessionExpiredError` is raised.

    Non-2xx responses raise :class:`httpx.HTTPStatusError`.

    Example::

        async with ApiClient("http://192.168.0.103:5000", store) as client:
            resp = await client.get("/api/patient/appointments")
    """

    def __init__(
        self,
        base_url: str,
        store: CredentialStore,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        refresh_policy: RefreshTokenPolicy | str = RefreshTokenPolicy.KEEP_PREVIOUS,
        coalesce_refresh: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.refresh_policy = RefreshTokenPolicy(refresh_policy)
        self.coalesce_refresh = coalesce_refresh
        self._store = store
        self._refresh_task: asyncio.Future[str] | None = None
        # Access token given up on by the last failed refresh, and why.
        self._expired_token: str | None = None
        self._expired_cause: BaseException | None = None
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=DEFAULT_HEADERS,
            timeout=timeout_ms / 1000,
            transport=transport,
        )
        logger.debug(f"API client created for {self.base_url}")

    # ------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def access_token(self) -> str | None:
        """Return the stored access token, or ``None``."""
        return self._store.get(ACCESS_TOKEN_KEY) or None

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def clear_credentials(self) -> None:
        """Forget every stored credential and the default bearer header."""
        clear_credentials(self._store)
        self._http.headers.pop("Authorization", None)

    def _attach_token(self, request: httpx.Request) -> str | None:
        token = self.access_token
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        elif "Authorization" in self._http.headers:
            # The store was emptied elsewhere; the default header is stale.
            stale = self._http.headers.pop("Authorization")
            if request.headers.get("Authorization") == stale:
                del request.headers["Authorization"]
        return token

    # ------------------------------------------------------------------
    # Request pipeline
    # ------------------------------------------------------------------

    async def request(
        self, method: str, path: str, *, authenticated: bool = True, **kwargs: Any
    ) -> httpx.Response:
        """Build a request against ``base_url + path`` and send it."""
        request = self._http.build_request(method, path, **kwargs)
        return await self.send(request, authenticated=authenticated)

    async def send(
        self, request: httpx.Request, *, authenticated: bool = True
    ) -> httpx.Response:
        """Send an already built request through the auth pipeline."""
        return await self._dispatch(PendingRequest(request, authenticated=authenticated))

    async def _dispatch(self, pending: PendingRequest) -> httpx.Response:
        request = pending.request
        if pending.authenticated:
            pending.sent_token = self._attach_token(request)
        else:
            request.headers.pop("Authorization", None)

        response = await self._http.send(request)
        logger.debug(f"{request.method} {request.url} -> {response.status_code}")

        if (
            response.status_code == 401
            and pending.authenticated
            and not pending.retried
        ):
            return await self._retry_with_fresh_token(pending, response)

        response.raise_for_status()
        return response

    async def _retry_with_fresh_token(
        self, pending: PendingRequest, response: httpx.Response
    ) -> httpx.Response:
        if self.coalesce_refresh and pending.sent_token is not None:
            # The 401 may answer a token that a refresh has already replaced
            # or given up on while this request was in flight.
            current = self.access_token
            if current and current != pending.sent_token:
                logger.debug("Access token already refreshed; resending without refresh")
                return await self._resend(pending, current)
            if current is None and pending.sent_token == self._expired_token:
                raise SessionExpiredError(
                    "Session expired and could not be renewed. Please log in again."
                ) from self._expired_cause

        refresh_token = self._store.get(REFRESH_TOKEN_KEY)
        if not refresh_token:
            logger.warning("Access token rejected and no refresh token is stored")
            self.clear_credentials()
            response.raise_for_status()

        access_token = await self._refresh_access_token(refresh_token)
        return await self._resend(pending, access_token)

    async def _resend(self, pending: PendingRequest, access_token: str) -> httpx.Response:
        original = pending.request
        retry = httpx.Request(
            original.method,
            original.url,
            headers=original.headers,
            stream=original.stream,
            extensions=original.extensions,
        )
        retry.headers["Authorization"] = f"Bearer {access_token}"
        logger.debug(f"Retrying {retry.method} {retry.url} with refreshed token")
        return await self._dispatch(replace(pending, request=retry, retried=True))

    # ------------------------------------------------------------------
    # Token refresh
    # ------------------------------------------------------------------

    async def _refresh_access_token(self, refresh_token: str) -> str:
        """Return a fresh access token, sharing one refresh between callers."""
        if not self.coalesce_refresh:
            return await self._perform_refresh(refresh_token)

        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.ensure_future(self._perform_refresh(refresh_token))
            task.add_done_callback(_retrieve_exception)
            self._refresh_task = task
        else:
            logger.debug("Joining token refresh already in flight")
        return await asyncio.shield(task)

    async def _perform_refresh(self, refresh_token: str) -> str:
        rejected_token = self.access_token
        request = self._http.build_request(
            "POST", AUTH_REFRESH_TOKEN, json={"refreshToken": refresh_token}
        )
        request.headers.pop("Authorization", None)
        try:
            response = await self._http.send(request)
            response.raise_for_status()
            tokens = RefreshResponse.model_validate(response.json())
            new_refresh_token = tokens.refreshToken
            if not new_refresh_token:
                if self.refresh_policy is RefreshTokenPolicy.REQUIRE_ROTATION:
                    raise ValueError("refresh response did not rotate the refresh token")
                new_refresh_token = refresh_token
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(f"Token refresh failed: {exc}")
            self.clear_credentials()
            self._expired_token = rejected_token
            self._expired_cause = exc
            raise SessionExpiredError(
                "Session expired and could not be renewed. Please log in again."
            ) from exc

        self._store.set(ACCESS_TOKEN_KEY, tokens.accessToken)
        self._store.set(REFRESH_TOKEN_KEY, new_refresh_token)
        self._expired_token = self._expired_cause = None
        self._http.headers["Authorization"] = f"Bearer {tokens.accessToken}"
        logger.debug("Access token refreshed successfully")
        return tokens.accessToken

    # ------------------------------------------------------------------
    # HTTP verbs (relative to base_url)
    # ------------------------------------------------------------------

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", path, **kwargs)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_closed(self) -> bool:
        return self._http.is_closed

    async def aclose(self) -> None:
        """Close the underlying transport and drop any pending refresh."""
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._refresh_task = None
        await self._http.aclose()

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
