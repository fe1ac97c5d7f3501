"""
Data models for chat messages and conversation bookkeeping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class MessageRole(StrEnum):
    """
    Author of a chat message, as understood by the chat-completion API.

    Example:
        >>> MessageRole.from_value("assistant")
        <MessageRole.ASSISTANT: 'assistant'>
    """

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"

    @classmethod
    def from_value(cls, value: str) -> MessageRole:
        """
        Look up a role by its wire value.

        Raises:
            ValueError: If ``value`` is not a known role.
        """
        for role in cls:
            if role.value == value:
                return role
        raise ValueError(f"Unknown message role: {value}")


@dataclass(frozen=True)
class Message:
    """
    One message of a conversation.

    Attributes:
        role: Who wrote the message.
        content: Message text.
        timestamp: When the message was added.
        tokens: Tokens consumed by the completion that produced it, if known.
        cost: Cost of that completion, if known.
    """

    role: MessageRole
    content: str
    timestamp: datetime = field(default_factory=datetime.now)
    tokens: int | None = None
    cost: float | None = None

    def to_api_format(self) -> dict[str, str]:
        """Wire shape expected by ``chat_completion``: role and content only."""
        return {"role": self.role.value, "content": self.content}


@dataclass
class ConversationMetadata:
    """
    Summary of a conversation, updated as messages are added.

    Attributes:
        id: Conversation identifier (ULID string).
        title: Human-readable title.
        created_at: Creation time.
        updated_at: Time of the last change.
        model: Model the conversation talks to, if pinned.
        total_tokens: Sum of the tokens recorded on its messages.
        total_cost: Sum of the costs recorded on its messages.
        message_count: Number of messages.
    """

    id: str
    title: str
    created_at: datetime
    updated_at: datetime
    model: str | None = None
    total_tokens: int = 0
    total_cost: float = 0.0
    message_count: int = 0
