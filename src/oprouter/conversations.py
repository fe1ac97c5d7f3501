"""
In-memory conversation history.

A ``Conversation`` keeps the ordered messages exchanged with a model plus a
``ConversationMetadata`` summary (message count, token and cost totals). A
``ConversationManager`` keeps several of them and tracks the current one.

Conversations live only in memory; nothing is written to disk.

Example:
    >>> from oprouter import ConversationManager, OpenRouterClient
    >>> manager = ConversationManager()
    >>> conversation = manager.create_conversation(title="Trip planning")
    >>> with OpenRouterClient() as client:
    ...     response = client.chat(conversation, "Suggest three cities in Portugal")
    >>> print(conversation.export_to_text())
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from ulid import ULID

from oprouter._models import ConversationMetadata, Message, MessageRole

logger = logging.getLogger(__name__)

# Rough size of a token, in characters.
CHARS_PER_TOKEN = 4


class Conversation:
    """
    Ordered list of messages with running metadata.

    Args:
        conversation_id: Identifier to reuse. A new ULID is generated when None.
        title: Title. Defaults to ``"Conversation YYYY-MM-DD HH:MM"``.
        model: Model of the conversation. Defaults to the configured default model.
    """

    def __init__(
        self,
        conversation_id: str | None = None,
        title: str | None = None,
        model: str | None = None,
    ):
        if model is None:
            from oprouter._config import OPROUTER
            model = OPROUTER.config.api.default_model

        now = datetime.now()
        self.id = conversation_id or str(ULID())
        self._model = model
        self._title = title or f"Conversation {now.strftime('%Y-%m-%d %H:%M')}"
        self._messages: list[Message] = []
        self._lock = threading.RLock()
        self.metadata = ConversationMetadata(
            id=self.id,
            title=self._title,
            created_at=now,
            updated_at=now,
            model=model,
        )
        logger.info(f"Initialized conversation: {self.id}")

    @property
    def model(self) -> str:
        return self._model

    @model.setter
    def model(self, value: str) -> None:
        assert value, "model cannot be empty."
        with self._lock:
            self._model = value
            self.metadata.model = value
            self._update_metadata()

    @property
    def title(self) -> str:
        return self._title

    @title.setter
    def title(self, value: str) -> None:
        assert value, "title cannot be empty."
        with self._lock:
            self._title = value
            self.metadata.title = value
            self._update_metadata()
        logger.info(f"Updated conversation title to: {value}")

    @property
    def messages(self) -> list[Message]:
        """Copy of the messages, oldest first."""
        with self._lock:
            return list(self._messages)

    def add_message(
        self,
        role: MessageRole | str,
        content: str,
        tokens: int | None = None,
        cost: float | None = None,
    ) -> Message:
        """
        Append a message and update the metadata totals.

        Args:
            role: Message role, or its wire value ("user", "assistant", "system").
            content: Message text.
            tokens: Tokens to add to the running total, if known.
            cost: Cost to add to the running total, if known.

        Raises:
            ValueError: If ``role`` is not a known role.
        """
        if not isinstance(role, MessageRole):
            role = MessageRole.from_value(role)

        message = Message(role=role, content=content, timestamp=datetime.now(), tokens=tokens, cost=cost)
        with self._lock:
            self._messages.append(message)
            self._update_metadata(tokens, cost)

        logger.debug(f"Added {role} message with {len(content)} characters")
        return message

    def get_messages_for_api(self, limit: int | None = None) -> list[dict[str, str]]:
        """
        Messages in wire format, oldest first.

        Args:
            limit: When positive, only the last ``limit`` messages are returned.
        """
        with self._lock:
            selected = self._messages
            if limit is not None and 0 < limit < len(selected):
                selected = selected[-limit:]
            return [message.to_api_format() for message in selected]

    def get_context_window(self, max_tokens: int) -> list[dict[str, str]]:
        """
        Most recent messages whose estimated size fits in ``max_tokens``.

        Walks from the newest message backwards, estimating each message at
        ``len(content) // 4`` tokens, and stops at the first message that
        would overflow the budget. The result is in chronological order.
        """
        window: list[dict[str, str]] = []
        used = 0
        with self._lock:
            for message in reversed(self._messages):
                estimated = len(message.content) // CHARS_PER_TOKEN
                if used + estimated > max_tokens:
                    break
                window.append(message.to_api_format())
                used += estimated

        window.reverse()
        return window

    def export_to_text(self) -> str:
        """Plain-text transcript with a summary header."""
        with self._lock:
            meta = self.metadata
            lines = [
                f"Conversation: {self._title}\n",
                f"ID: {self.id}\n",
                f"Model: {self.model}\n",
                f"Created: {meta.created_at.strftime('%Y-%m-%d %H:%M:%S')}\n",
                f"Messages: {meta.message_count}\n",
                f"Total Tokens: {meta.total_tokens}\n",
                f"Total Cost: ${meta.total_cost:.4f}\n",
                "=" * 50 + "\n\n",
            ]
            for message in self._messages:
                lines.append(f"[{message.timestamp.strftime('%H:%M:%S')}] {message.role.value.upper()}:\n")
                lines.append(f"{message.content}\n\n")

        return "".join(lines)

    def clear(self) -> None:
        """Remove every message. Token and cost totals are kept."""
        with self._lock:
            self._messages.clear()
            self._update_metadata()
        logger.info("Cleared conversation messages")

    def _update_metadata(self, tokens: int | None = None, cost: float | None = None) -> None:
        self.metadata.updated_at = datetime.now()
        self.metadata.message_count = len(self._messages)
        if tokens is not None:
            self.metadata.total_tokens += tokens
        if cost is not None:
            self.metadata.total_cost += cost

    def __len__(self) -> int:
        return len(self._messages)

    def __repr__(self) -> str:
        return f"Conversation(id={self.id!r}, title={self._title!r}, messages={len(self._messages)})"


class ConversationManager:
    """
    Thread-safe in-memory registry of conversations.

    The most recently created or loaded conversation becomes the
    ``current_conversation``; deleting it clears the pointer.

    Example:
        >>> manager = ConversationManager()
        >>> conversation = manager.create_conversation()
        >>> manager.current_conversation is conversation
        True
        >>> [meta.title for meta in manager.list_conversations()]
    """

    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}
        self._current: Conversation | None = None
        self._lock = threading.Lock()

    @property
    def current_conversation(self) -> Conversation | None:
        return self._current

    @current_conversation.setter
    def current_conversation(self, conversation: Conversation | None) -> None:
        """Switch the current conversation, registering it if it is new."""
        with self._lock:
            if conversation is not None:
                self._conversations.setdefault(conversation.id, conversation)
            self._current = conversation

    def create_conversation(self, title: str | None = None, model: str | None = None) -> Conversation:
        conversation = Conversation(title=title, model=model)
        with self._lock:
            self._conversations[conversation.id] = conversation
            self._current = conversation
        return conversation

    def load_conversation(self, conversation_id: str) -> Conversation | None:
        """Make the conversation current and return it, or None if unknown."""
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is not None:
                self._current = conversation
        if conversation is None:
            logger.warning(f"Conversation not found: {conversation_id}")
        return conversation

    def list_conversations(self) -> list[ConversationMetadata]:
        """Metadata of every conversation, most recently updated first."""
        with self._lock:
            metadata = [conversation.metadata for conversation in self._conversations.values()]
        return sorted(metadata, key=lambda meta: meta.updated_at, reverse=True)

    def delete_conversation(self, conversation_id: str) -> bool:
        """
        Forget a conversation.

        Returns:
            True if it existed, False otherwise.
        """
        with self._lock:
            conversation = self._conversations.pop(conversation_id, None)
            if conversation is None:
                logger.warning(f"Conversation not found: {conversation_id}")
                return False
            if self._current is conversation:
                self._current = None

        logger.info(f"Deleted conversation: {conversation_id}")
        return True
