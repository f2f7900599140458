"""Pydantic v2 models for conversations and messages."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Participant(BaseModel):
    """The other party of a conversation."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int | str
    firstName: str | None = None
    lastName: str | None = None
    role: str | None = None
    avatar: str | None = None

    @property
    def display_name(self) -> str:
        return " ".join(p for p in (self.firstName, self.lastName) if p) or str(self.id)


class Message(BaseModel):
    """A single chat message.

    The backend has used both ``timestamp`` and ``createdAt`` for the send
    time; both land in :attr:`createdAt`.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int | str
    content: str = ""
    senderId: int | str | None = None
    recipientId: int | str | None = None
    chatId: int | str | None = Field(
        default=None, validation_alias=AliasChoices("chatId", "conversationId")
    )
    type: str | None = None
    status: str | None = None
    createdAt: str | None = Field(
        default=None, validation_alias=AliasChoices("createdAt", "timestamp")
    )
    readAt: str | None = None


class Conversation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int | str
    participant: Participant | None = None
    lastMessage: Message | None = None
    unreadCount: int = 0
    updatedAt: str | None = None
