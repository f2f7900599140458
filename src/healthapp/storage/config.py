"""Application settings persisted as JSON in the config directory.

Settings are a flat dict merged over :data:`DEFAULT_SETTINGS`, so a file
written by an older version (or a corrupt one) still yields every key.
"""

from __future__ import annotations

import json
import os
from typing import Any

from loguru import logger

from .paths import SETTINGS_FILE, atomic_write, ensure_parents

API_URL_ENV = "HEALTHAPP_API_URL"

DEFAULT_SETTINGS: dict[str, Any] = {
    # Base URL of the backend; empty means "discover it on the network".
    "api_url": "",
    "timeout_ms": 10_000,
    "refresh_policy": "keep_previous",
    "coalesce_refresh": True,
    "discovery_hosts": [],
    "message_poll_interval": 5.0,
    "debug": False,
}


class AppSettings:
    """Class-level accessors over the settings file."""

    @staticmethod
    def load() -> dict[str, Any]:
        """Return the saved settings merged over the defaults."""
        settings = dict(DEFAULT_SETTINGS)
        if SETTINGS_FILE.exists():
            try:
                saved = json.loads(SETTINGS_FILE.read_text(encoding="utf-8"))
                if isinstance(saved, dict):
                    settings.update(saved)
            except (OSError, ValueError) as exc:
                logger.warning(f"Failed to load settings from {SETTINGS_FILE}: {exc}")
        return settings

    @staticmethod
    def save(settings: dict[str, Any]) -> None:
        ensure_parents(SETTINGS_FILE)
        atomic_write(SETTINGS_FILE, json.dumps(settings, indent=2))
        logger.debug(f"Settings saved to {SETTINGS_FILE}")

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        return cls.load().get(key, default)

    @classmethod
    def set(cls, key: str, value: Any) -> None:
        settings = cls.load()
        settings[key] = value
        cls.save(settings)

    @classmethod
    def effective(cls) -> dict[str, Any]:
        """Settings with environment overrides applied (not persisted)."""
        settings = cls.load()
        env_url = os.environ.get(API_URL_ENV)
        if env_url:
            settings["api_url"] = env_url
        return settings
