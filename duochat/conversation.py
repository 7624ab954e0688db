"""Append-only conversation log and message id generation."""

import itertools
import uuid
from collections.abc import Iterator

from duochat.models import USER, Message


class MessageIdFactory:
    """Ids of the form '<prefix><seq>-<hex>'; seq grows with each id issued."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)

    def __call__(self, prefix: str = "") -> str:
        return f"{prefix}{next(self._counter):06d}-{uuid.uuid4().hex[:9]}"


class ConversationLog:
    """Ordered messages of one client session. Never persisted, never edited."""

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._ids: set[str] = set()

    def append(self, message: Message) -> None:
        if message.id in self._ids:
            raise ValueError(f"Duplicate message id: {message.id}")
        self._ids.add(message.id)
        self._messages.append(message)

    def snapshot(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def for_backend(self, backend: str) -> list[Message]:
        """All user messages plus assistant messages tagged with backend, in log order."""
        return [m for m in self._messages if m.role == USER or m.backend == backend]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))
