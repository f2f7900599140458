"""Account management for admin users.

Doctors, patients and generic user accounts are managed through the same
set of calls, addressed by *kind*: ``"doctors"``, ``"patients"`` or
``"users"``.
"""

from __future__ import annotations

from loguru import logger

from ..models.user import User
from .client import ApiClient
from .endpoints import ADMIN
from .parsing import parse_items

ACCOUNT_KINDS = ("doctors", "patients", "users")


def _account_path(kind: str, account_id: int | str | None = None) -> str:
    if kind not in ACCOUNT_KINDS:
        raise ValueError(f"Unknown account kind {kind!r}; expected one of {ACCOUNT_KINDS}")
    path = f"{ADMIN}/{kind}"
    return path if account_id is None else f"{path}/{account_id}"


async def list_accounts(client: ApiClient, kind: str) -> list[User]:
    resp = await client.get(_account_path(kind))
    return parse_items(resp.json(), kind, User)


async def list_doctors(client: ApiClient) -> list[User]:
    return await list_accounts(client, "doctors")


async def list_patients(client: ApiClient) -> list[User]:
    return await list_accounts(client, "patients")


async def block_account(client: ApiClient, kind: str, account_id: int | str) -> None:
    """Prevent an account from logging in."""
    await client.post(f"{_account_path(kind, account_id)}/block")
    logger.info(f"Blocked {kind} account {account_id}")


async def unblock_account(client: ApiClient, kind: str, account_id: int | str) -> None:
    await client.post(f"{_account_path(kind, account_id)}/unblock")
    logger.info(f"Unblocked {kind} account {account_id}")


async def delete_account(client: ApiClient, kind: str, account_id: int | str) -> None:
    """Permanently remove an account."""
    await client.delete(_account_path(kind, account_id))
    logger.info(f"Deleted {kind} account {account_id}")
