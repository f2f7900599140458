"""Patient/doctor messaging.

Messaging is plain request/response: there is no push channel, so new
messages are picked up by polling (:func:`poll_messages`).
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Iterable

import httpx
from loguru import logger

from ..models.message import Conversation, Message
from .client import ApiClient
from .endpoints import MESSAGES, MESSAGES_CONVERSATIONS
from .parsing import parse_items, unwrap

DEFAULT_POLL_INTERVAL = 5.0


async def list_conversations(client: ApiClient) -> list[Conversation]:
    resp = await client.get(MESSAGES_CONVERSATIONS)
    return parse_items(resp.json(), "conversations", Conversation)


async def get_conversation_with_doctor(
    client: ApiClient, doctor_id: int | str
) -> Conversation:
    """Return the conversation with a doctor, created on first contact."""
    resp = await client.get(f"{MESSAGES}/doctor/{doctor_id}")
    return Conversation.model_validate(unwrap(resp.json(), "conversation"))


async def get_messages(client: ApiClient, conversation_id: int | str) -> list[Message]:
    """Fetch the messages of a conversation, oldest first."""
    resp = await client.get(f"{MESSAGES}/{conversation_id}")
    return parse_items(resp.json(), "messages", Message)


async def send_message(
    client: ApiClient, recipient_id: int | str, content: str
) -> Message:
    resp = await client.post(MESSAGES, json={"recipientId": recipient_id, "content": content})
    return Message.model_validate(unwrap(resp.json(), "message"))


async def mark_conversation_read(client: ApiClient, conversation_id: int | str) -> None:
    await client.put(f"{MESSAGES_CONVERSATIONS}/{conversation_id}/read")


async def poll_messages(
    client: ApiClient,
    conversation_id: int | str,
    interval: float = DEFAULT_POLL_INTERVAL,
    seen: Iterable[int | str] = (),
    max_polls: int | None = None,
) -> AsyncIterator[Message]:
    """Yield messages of a conversation as they appear.

    Every *interval* seconds the conversation is fetched again and any
    message whose id is not in *seen* (or was not yielded before) is
    yielded.  Network hiccups are logged and retried on the next tick;
    HTTP errors and :class:`~healthapp.api.client.SessionExpiredError`
    end the iteration.  *max_polls* bounds the number of fetches.
    """
    seen_ids = set(seen)
    polls = 0
    while True:
        try:
            messages = await get_messages(client, conversation_id)
        except httpx.TransportError as exc:
            logger.warning(f"Polling conversation {conversation_id} failed: {exc}")
            messages = []
        for message in messages:
            if message.id not in seen_ids:
                seen_ids.add(message.id)
                yield message
        polls += 1
        if max_polls is not None and polls >= max_polls:
            return
        await asyncio.sleep(interval)
