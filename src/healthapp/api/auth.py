"""Account operations: login, registration, logout and password reset.

Successful login and registration persist the token pair and the user
record in the client's credential store, so later requests are
authenticated automatically.  Backend and network failures are turned
into :class:`AuthError` instances carrying a stable ``code`` and a message
fit to show to a user.  :class:`~healthapp.api.client.SessionExpiredError`
is never rewrapped.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from ..models.user import (
    AuthResponse,
    AuthState,
    LoginCredentials,
    PasswordResetResponse,
    RegisterCredentials,
    User,
)
from ..storage.credentials import (
    CredentialStore,
    load_credentials,
    load_user,
    save_credentials,
)
from .client import ApiClient
from .endpoints import (
    AUTH_CHANGE_PASSWORD,
    AUTH_CURRENT_USER,
    AUTH_FORGOT_PASSWORD,
    AUTH_LOGIN,
    AUTH_LOGOUT,
    AUTH_REGISTER,
    AUTH_RESET_PASSWORD,
    AUTH_VERIFY_TOKEN,
)
from .parsing import unwrap

NETWORK_ERROR_MESSAGE = (
    "Unable to connect to the server. Please check your internet connection and try again."
)
TIMEOUT_MESSAGE = "Request timed out. The server might be busy. Please try again."

# Backend error codes and the message shown when the body carries none.
KNOWN_CODES: dict[str, str] = {
    "INVALID_CREDENTIALS": "Invalid email or password",
    "LOGIN_ERROR": "Login failed. Please try again later.",
    "EMAIL_EXISTS": (
        "This email is already registered. Please use a different email or try logging in."
    ),
    "VALIDATION_ERROR": "Please check your input and try again.",
    "REGISTRATION_ERROR": "Registration failed. Please try again later.",
}

# Codes whose message is always ours, not the server's.
FIXED_MESSAGE_CODES = {"INVALID_CREDENTIALS", "LOGIN_ERROR", "EMAIL_EXISTS"}


class AuthError(Exception):
    """A failed account operation, with a user-facing message and a code."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        errors: list[Any] | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.errors = errors
        self.details = details

    def __repr__(self) -> str:
        return f"AuthError(code={self.code!r}, message={self.message!r})"


def _json_object(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def to_auth_error(exc: httpx.HTTPError, fallback: str, *, login: bool = False) -> AuthError:
    """Map an httpx failure onto an :class:`AuthError`.

    *login* makes a bare 401 mean "wrong email or password".
    """
    if isinstance(exc, httpx.TimeoutException):
        return AuthError(TIMEOUT_MESSAGE, "TIMEOUT")
    if not isinstance(exc, httpx.HTTPStatusError):
        return AuthError(NETWORK_ERROR_MESSAGE, "NETWORK_ERROR")

    status = exc.response.status_code
    body = _json_object(exc.response)
    code = body.get("code")
    message = body.get("message")
    errors = body.get("errors")

    if code in KNOWN_CODES:
        if code in FIXED_MESSAGE_CODES or not message:
            message = KNOWN_CODES[code]
        return AuthError(message, code, errors=errors, details=body.get("details"))
    if status == 400:
        return AuthError(
            message or "Invalid input. Please check your details and try again.",
            "INVALID_INPUT",
            errors=errors,
        )
    if status == 401 and login:
        return AuthError(KNOWN_CODES["INVALID_CREDENTIALS"], "INVALID_CREDENTIALS")
    if status == 500:
        return AuthError("Server error. Please try again later.", "SERVER_ERROR")
    return AuthError(message or fallback, code or "UNKNOWN_ERROR", errors=errors, details=body or None)


def _parse_auth_response(response: httpx.Response) -> AuthResponse:
    try:
        return AuthResponse.model_validate(response.json())
    except ValueError as exc:
        logger.error(f"Invalid auth response from server: {exc}")
        raise AuthError("Invalid response from server", "INVALID_RESPONSE") from exc


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


async def login(client: ApiClient, email: str, password: str) -> AuthResponse:
    """Log in and persist the returned credentials and user record."""
    payload = LoginCredentials(email=email, password=password)
    logger.debug(f"Attempting login for {email}")
    try:
        resp = await client.post(AUTH_LOGIN, json=payload.model_dump(), authenticated=False)
    except httpx.HTTPError as exc:
        raise to_auth_error(exc, "Login failed. Please try again.", login=True) from exc

    auth = _parse_auth_response(resp)
    save_credentials(client.store, auth.credentials, auth.user)
    logger.info(f"Logged in as {auth.user.email} ({auth.user.role})")
    return auth


async def register(client: ApiClient, credentials: RegisterCredentials) -> AuthResponse:
    """Create an account; the new user is logged in straight away."""
    logger.debug(f"Attempting registration for {credentials.email}")
    try:
        resp = await client.post(
            AUTH_REGISTER,
            json=credentials.model_dump(exclude_none=True),
            authenticated=False,
        )
    except httpx.HTTPError as exc:
        raise to_auth_error(exc, "Registration failed. Please try again.") from exc

    auth = _parse_auth_response(resp)
    save_credentials(client.store, auth.credentials, auth.user)
    logger.info(f"Registered {auth.user.email} ({auth.user.role})")
    return auth


async def logout(client: ApiClient) -> None:
    """Invalidate the session server side and forget it locally.

    Local credentials are cleared even when the server call fails; the
    failure is still raised.
    """
    if not client.is_authenticated:
        client.clear_credentials()
        return
    try:
        await client.post(AUTH_LOGOUT)
    except httpx.HTTPError as exc:
        raise to_auth_error(exc, "Logout failed") from exc
    finally:
        client.clear_credentials()
    logger.info("Logged out")


def restore_session(store: CredentialStore) -> AuthState:
    """Rebuild the auth state from whatever the store still holds."""
    user = load_user(store)
    credentials = load_credentials(store)
    return AuthState(user=user, isAuthenticated=credentials is not None and user is not None)


async def current_user(client: ApiClient) -> User:
    try:
        resp = await client.get(AUTH_CURRENT_USER)
    except httpx.HTTPError as exc:
        raise to_auth_error(exc, "Failed to get current user") from exc
    raw = unwrap(_json_object(resp), "user")
    try:
        return User.model_validate(raw)
    except ValidationError as exc:
        raise AuthError("Invalid response from server", "INVALID_RESPONSE") from exc


async def change_password(
    client: ApiClient, current_password: str, new_password: str
) -> PasswordResetResponse:
    """Change the logged-in user's password; the session stays valid."""
    try:
        resp = await client.put(
            AUTH_CHANGE_PASSWORD,
            json={"currentPassword": current_password, "newPassword": new_password},
        )
    except httpx.HTTPError as exc:
        raise to_auth_error(exc, "Password change failed") from exc
    logger.info("Password changed")
    return PasswordResetResponse.model_validate(_json_object(resp))


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


async def _password_call(
    client: ApiClient, path: str, payload: dict[str, str], fallback: str
) -> PasswordResetResponse:
    try:
        resp = await client.post(path, json=payload, authenticated=False)
    except httpx.HTTPError as exc:
        raise to_auth_error(exc, fallback) from exc
    return PasswordResetResponse.model_validate(_json_object(resp))


async def forgot_password(client: ApiClient, email: str) -> PasswordResetResponse:
    return await _password_call(
        client, AUTH_FORGOT_PASSWORD, {"email": email}, "Password reset request failed"
    )


async def reset_password(client: ApiClient, token: str, password: str) -> PasswordResetResponse:
    return await _password_call(
        client,
        AUTH_RESET_PASSWORD,
        {"token": token, "password": password},
        "Password reset failed",
    )


async def verify_reset_token(client: ApiClient, token: str) -> PasswordResetResponse:
    return await _password_call(
        client, AUTH_VERIFY_TOKEN, {"token": token}, "Token verification failed"
    )
