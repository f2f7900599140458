"""Tests for account operations and their error mapping."""
import asyncio
import json

import httpx
import pytest

from conftest import body_of, respond
from healthapp.api import auth
from healthapp.api.auth import AuthError
from healthapp.models.user import RegisterCredentials
from healthapp.storage.credentials import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    USER_DATA_KEY,
)

USER = {
    "id": 1,
    "email": "jane@example.com",
    "firstName": "Jane",
    "lastName": "Doe",
    "role": "patient",
}


def run(make_client, call):
    async def scenario():
        async with make_client() as client:
            return await call(client)

    return asyncio.run(scenario())


# =========================================================================
# Login / register
# =========================================================================


class TestLogin:
    def test_success_persists_session(self, backend, store, make_client):
        backend.route(
            "POST",
            "/api/auth/login",
            respond(200, {"user": USER, "accessToken": "a1", "refreshToken": "r1"}),
        )

        result = run(make_client, lambda c: auth.login(c, "jane@example.com", "pw"))

        assert result.user.full_name == "Jane Doe"
        assert store.get(ACCESS_TOKEN_KEY) == "a1"
        assert store.get(REFRESH_TOKEN_KEY) == "r1"
        assert json.loads(store.get(USER_DATA_KEY))["email"] == "jane@example.com"
        (sent,) = backend.calls("POST", "/api/auth/login")
        assert body_of(sent) == {"email": "jane@example.com", "password": "pw"}

    def test_legacy_token_field(self, backend, store, make_client):
        backend.route("POST", "/api/auth/login", respond(200, {"user": USER, "token": "legacy"}))
        run(make_client, lambda c: auth.login(c, "jane@example.com", "pw"))
        assert store.get(ACCESS_TOKEN_KEY) == "legacy"
        assert store.get(REFRESH_TOKEN_KEY) is None

    def test_invalid_credentials(self, backend, store, make_client):
        backend.route(
            "POST",
            "/api/auth/login",
            respond(401, {"code": "INVALID_CREDENTIALS", "message": "bad"}),
        )
        with pytest.raises(AuthError) as excinfo:
            run(make_client, lambda c: auth.login(c, "jane@example.com", "wrong"))
        assert excinfo.value.code == "INVALID_CREDENTIALS"
        assert excinfo.value.message == "Invalid email or password"
        assert store.get(ACCESS_TOKEN_KEY) is None

    def test_bare_401_means_invalid_credentials(self, backend, make_client):
        backend.route("POST", "/api/auth/login", respond(401, {}))
        with pytest.raises(AuthError) as excinfo:
            run(make_client, lambda c: auth.login(c, "jane@example.com", "wrong"))
        assert excinfo.value.code == "INVALID_CREDENTIALS"

    def test_malformed_response(self, backend, store, make_client):
        backend.route("POST", "/api/auth/login", respond(200, {"user": USER}))
        with pytest.raises(AuthError) as excinfo:
            run(make_client, lambda c: auth.login(c, "jane@example.com", "pw"))
        assert excinfo.value.code == "INVALID_RESPONSE"
        assert store.get(ACCESS_TOKEN_KEY) is None


class TestRegister:
    def test_success(self, backend, store, make_client):
        backend.route(
            "POST",
            "/api/auth/register",
            respond(201, {"user": USER, "accessToken": "a1", "refreshToken": "r1"}),
        )
        creds = RegisterCredentials(
            email="jane@example.com", password="pw", firstName="Jane", lastName="Doe"
        )

        result = run(make_client, lambda c: auth.register(c, creds))

        assert result.user.role == "patient"
        assert store.get(ACCESS_TOKEN_KEY) == "a1"
        (sent,) = backend.calls("POST", "/api/auth/register")
        assert body_of(sent) == {
            "email": "jane@example.com",
            "password": "pw",
            "firstName": "Jane",
            "lastName": "Doe",
            "role": "patient",
        }

    def test_email_exists(self, backend, make_client):
        backend.route(
            "POST", "/api/auth/register", respond(409, {"code": "EMAIL_EXISTS", "message": "dup"})
        )
        creds = RegisterCredentials(
            email="jane@example.com", password="pw", firstName="Jane", lastName="Doe"
        )
        with pytest.raises(AuthError) as excinfo:
            run(make_client, lambda c: auth.register(c, creds))
        assert excinfo.value.code == "EMAIL_EXISTS"
        assert "already registered" in excinfo.value.message


# =========================================================================
# Error mapping
# =========================================================================


def status_error(status, body=None):
    request = httpx.Request("POST", "http://api/api/auth/register")
    response = httpx.Response(status, json=body if body is not None else {}, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


class TestToAuthError:
    def test_timeout(self):
        exc = httpx.ReadTimeout("slow", request=httpx.Request("GET", "http://api/"))
        assert auth.to_auth_error(exc, "x").code == "TIMEOUT"

    def test_network(self):
        exc = httpx.ConnectError("refused", request=httpx.Request("GET", "http://api/"))
        err = auth.to_auth_error(exc, "x")
        assert err.code == "NETWORK_ERROR"
        assert err.message == auth.NETWORK_ERROR_MESSAGE

    def test_validation_error_keeps_server_message(self):
        err = auth.to_auth_error(
            status_error(422, {"code": "VALIDATION_ERROR", "message": "Email invalid", "errors": ["email"]}),
            "x",
        )
        assert (err.code, err.message, err.errors) == ("VALIDATION_ERROR", "Email invalid", ["email"])

    def test_known_code_without_message(self):
        err = auth.to_auth_error(status_error(500, {"code": "REGISTRATION_ERROR"}), "x")
        assert err.message == "Registration failed. Please try again later."

    def test_bad_request(self):
        err = auth.to_auth_error(status_error(400, {"errors": [{"field": "password"}]}), "x")
        assert err.code == "INVALID_INPUT"
        assert err.errors == [{"field": "password"}]

    def test_401_outside_login(self):
        err = auth.to_auth_error(status_error(401, {}), "Logout failed")
        assert (err.code, err.message) == ("UNKNOWN_ERROR", "Logout failed")

    def test_server_error(self):
        assert auth.to_auth_error(status_error(500, {}), "x").code == "SERVER_ERROR"

    def test_unknown_status_uses_server_message(self):
        err = auth.to_auth_error(status_error(418, {"message": "teapot", "code": "TEAPOT"}), "x")
        assert (err.code, err.message) == ("TEAPOT", "teapot")

    def test_non_json_body(self):
        request = httpx.Request("GET", "http://api/")
        response = httpx.Response(503, text="<html>down</html>", request=request)
        exc = httpx.HTTPStatusError("error", request=request, response=response)
        err = auth.to_auth_error(exc, "fallback")
        assert (err.code, err.message) == ("UNKNOWN_ERROR", "fallback")


# =========================================================================
# Logout / session
# =========================================================================


class TestLogout:
    def test_clears_after_server_call(self, backend, store, make_client):
        store.set(ACCESS_TOKEN_KEY, "a1")
        store.set(REFRESH_TOKEN_KEY, "r1")
        store.set(USER_DATA_KEY, json.dumps(USER))
        backend.route("POST", "/api/auth/logout", respond(200, {}))

        run(make_client, auth.logout)

        (sent,) = backend.calls("POST", "/api/auth/logout")
        assert sent.headers["Authorization"] == "Bearer a1"
        assert store.get(ACCESS_TOKEN_KEY) is None
        assert store.get(USER_DATA_KEY) is None

    def test_clears_even_when_server_fails(self, backend, store, make_client):
        store.set(ACCESS_TOKEN_KEY, "a1")
        backend.route("POST", "/api/auth/logout", respond(500, {}))

        with pytest.raises(AuthError):
            run(make_client, auth.logout)
        assert store.get(ACCESS_TOKEN_KEY) is None

    def test_not_logged_in_skips_server(self, backend, store, make_client):
        store.set(USER_DATA_KEY, json.dumps(USER))
        run(make_client, auth.logout)
        assert backend.requests == []
        assert store.get(USER_DATA_KEY) is None


class TestRestoreSession:
    def test_authenticated(self, store):
        store.set(ACCESS_TOKEN_KEY, "a1")
        store.set(USER_DATA_KEY, json.dumps(USER))
        state = auth.restore_session(store)
        assert state.isAuthenticated
        assert state.user.email == "jane@example.com"

    def test_token_without_user(self, store):
        store.set(ACCESS_TOKEN_KEY, "a1")
        assert auth.restore_session(store).isAuthenticated is False

    def test_empty(self, store):
        state = auth.restore_session(store)
        assert state.user is None
        assert state.isAuthenticated is False


class TestCurrentUser:
    def test_wrapped(self, backend, store, make_client):
        store.set(ACCESS_TOKEN_KEY, "a1")
        backend.route("GET", "/api/auth/current-user", respond(200, {"user": USER}))
        assert run(make_client, auth.current_user).id == 1

    def test_bare(self, backend, store, make_client):
        store.set(ACCESS_TOKEN_KEY, "a1")
        backend.route("GET", "/api/auth/current-user", respond(200, USER))
        assert run(make_client, auth.current_user).lastName == "Doe"

    def test_non_json_body(self, backend, store, make_client):
        store.set(ACCESS_TOKEN_KEY, "a1")
        backend.route(
            "GET", "/api/auth/current-user", lambda request: httpx.Response(200, text="<html>ok</html>")
        )
        with pytest.raises(AuthError) as excinfo:
            run(make_client, auth.current_user)
        assert excinfo.value.code == "INVALID_RESPONSE"


class TestChangePassword:
    def test_success(self, backend, store, make_client):
        store.set(ACCESS_TOKEN_KEY, "a1")
        backend.route(
            "PUT", "/api/auth/change-password", respond(200, {"message": "Password updated", "success": True})
        )
        result = run(make_client, lambda c: auth.change_password(c, "old-pw", "new-pw"))
        assert result.success
        (sent,) = backend.calls("PUT", "/api/auth/change-password")
        assert sent.headers["Authorization"] == "Bearer a1"
        assert body_of(sent) == {"currentPassword": "old-pw", "newPassword": "new-pw"}
        assert store.get(ACCESS_TOKEN_KEY) == "a1"

    def test_rejected(self, backend, store, make_client):
        store.set(ACCESS_TOKEN_KEY, "a1")
        backend.route(
            "PUT", "/api/auth/change-password", respond(400, {"message": "Current password is incorrect"})
        )
        with pytest.raises(AuthError) as excinfo:
            run(make_client, lambda c: auth.change_password(c, "wrong", "new-pw"))
        assert excinfo.value.code == "INVALID_INPUT"
        assert excinfo.value.message == "Current password is incorrect"


# =========================================================================
# Password reset
# =========================================================================


class TestPasswordReset:
    def test_forgot_password(self, backend, store, make_client):
        store.set(ACCESS_TOKEN_KEY, "a1")
        backend.route(
            "POST",
            "/api/auth/forgot-password",
            respond(200, {"success": True, "message": "Email sent"}),
        )
        result = run(make_client, lambda c: auth.forgot_password(c, "jane@example.com"))
        assert result.success
        (sent,) = backend.calls("POST", "/api/auth/forgot-password")
        assert "Authorization" not in sent.headers
        assert body_of(sent) == {"email": "jane@example.com"}

    def test_reset_password(self, backend, make_client):
        backend.route("POST", "/api/auth/reset-password", respond(200, {"success": True}))
        result = run(make_client, lambda c: auth.reset_password(c, "tok", "new-pw"))
        assert result.success
        (sent,) = backend.calls("POST", "/api/auth/reset-password")
        assert body_of(sent) == {"token": "tok", "password": "new-pw"}

    def test_verify_token_failure(self, backend, make_client):
        backend.route("POST", "/api/auth/verify-token", respond(400, {"message": "Token expired"}))
        with pytest.raises(AuthError) as excinfo:
            run(make_client, lambda c: auth.verify_reset_token(c, "tok"))
        assert excinfo.value.code == "INVALID_INPUT"
        assert excinfo.value.message == "Token expired"
