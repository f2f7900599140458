"""Profile and directory operations."""

from __future__ import annotations

from typing import Any

from ..models.user import User
from .client import ApiClient
from .endpoints import (
    PATIENT_HEALTH_SUMMARY,
    USERS_DOCTORS,
    USERS_PATIENTS,
    USERS_PROFILE,
)
from .parsing import parse_items, unwrap


async def get_profile(client: ApiClient) -> User:
    resp = await client.get(USERS_PROFILE)
    return User.model_validate(unwrap(resp.json(), "user"))


async def update_profile(client: ApiClient, updates: dict[str, Any]) -> User:
    """Apply partial *updates* to the logged-in user's profile."""
    resp = await client.put(USERS_PROFILE, json=updates)
    return User.model_validate(unwrap(resp.json(), "user"))


async def list_doctors(client: ApiClient) -> list[User]:
    resp = await client.get(USERS_DOCTORS)
    return parse_items(resp.json(), "doctors", User)


async def list_patients(client: ApiClient) -> list[User]:
    resp = await client.get(USERS_PATIENTS)
    return parse_items(resp.json(), "patients", User)


async def get_health_summary(client: ApiClient) -> dict[str, Any]:
    """Return the patient dashboard summary as the raw JSON object."""
    resp = await client.get(PATIENT_HEALTH_SUMMARY)
    return resp.json()
