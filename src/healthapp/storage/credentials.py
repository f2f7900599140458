"""Persistent key/value storage for credentials.

The client only needs three operations from a store: ``get``, ``set``
and ``remove`` by key.  :class:`FileCredentialStore` keeps every key in a
single JSON file in the platform config directory;
:class:`MemoryCredentialStore` is for tests and short-lived scripts.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

from loguru import logger

from ..models.user import Credentials, User
from .paths import CREDENTIALS_FILE, atomic_write, ensure_parents

ACCESS_TOKEN_KEY = "@auth_token"
REFRESH_TOKEN_KEY = "@refresh_token"
USER_DATA_KEY = "@user_data"
LAST_KNOWN_HOST_KEY = "@last_known_ip"

CREDENTIAL_KEYS = (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_DATA_KEY)


class CredentialStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryCredentialStore:
    """In-process store; nothing survives the interpreter."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class FileCredentialStore:
    """JSON-file backed store.

    The file is read once on first access and rewritten atomically after
    every mutation.  An unreadable file is logged and treated as empty.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or CREDENTIALS_FILE
        self._data: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._data is not None:
            return self._data
        self._data = {}
        if self.path.exists():
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
                if isinstance(raw, dict):
                    self._data = {str(k): str(v) for k, v in raw.items()}
                else:
                    logger.warning(f"Ignoring malformed credential file {self.path}")
            except (OSError, ValueError) as exc:
                logger.warning(f"Failed to load credentials from {self.path}: {exc}")
        return self._data

    def _flush(self) -> None:
        ensure_parents(self.path)
        atomic_write(self.path, json.dumps(self._load(), indent=2))

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        self._load()[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._flush()


# ---------------------------------------------------------------------------
# Credential helpers
# ---------------------------------------------------------------------------


def save_credentials(
    store: CredentialStore, credentials: Credentials, user: User | None = None
) -> None:
    """Persist a token pair (and optionally the user record).

    A missing refresh token removes any previously stored one rather than
    writing an empty string.
    """
    store.set(ACCESS_TOKEN_KEY, credentials.accessToken)
    if credentials.refreshToken:
        store.set(REFRESH_TOKEN_KEY, credentials.refreshToken)
    else:
        store.remove(REFRESH_TOKEN_KEY)
    if user is not None:
        store.set(USER_DATA_KEY, user.model_dump_json())


def load_credentials(store: CredentialStore) -> Credentials | None:
    """Return the stored token pair, or ``None`` without an access token."""
    access_token = store.get(ACCESS_TOKEN_KEY)
    if not access_token:
        return None
    return Credentials(
        accessToken=access_token, refreshToken=store.get(REFRESH_TOKEN_KEY) or None
    )


def load_user(store: CredentialStore) -> User | None:
    """Return the cached user record, or ``None`` if missing or corrupt."""
    raw = store.get(USER_DATA_KEY)
    if not raw:
        return None
    try:
        return User.model_validate_json(raw)
    except ValueError as exc:
        logger.warning(f"Discarding unreadable cached user record: {exc}")
        return None


def clear_credentials(store: CredentialStore) -> None:
    """Remove the access token, refresh token and cached user record."""
    for key in CREDENTIAL_KEYS:
        store.remove(key)
    logger.debug("Stored credentials cleared")
