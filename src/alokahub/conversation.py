"""Append-only conversation history and pending attachment containers."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
import json

from .exceptions import StorageFormatError
from .messages import Attachment, Message


class Conversation:
    """Ordered role-tagged messages; only appends and a full clear mutate it."""

    def __init__(self, messages: list[Message] | None = None) -> None:
        self._messages: list[Message] = list(messages or [])

    @property
    def messages(self) -> tuple[Message, ...]:
        """Return an immutable snapshot of the history."""
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def append(self, message: Message) -> None:
        self._messages.append(message)

    def clear(self) -> None:
        self._messages = []

    def to_json(self) -> str:
        """Serialize history as a JSON array of OpenAI-style messages."""
        return json.dumps(
            [message.to_dict() for message in self._messages],
            ensure_ascii=False,
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, raw: str) -> Conversation:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageFormatError(f"Conversation is not valid JSON: {exc}") from exc
        if not isinstance(payload, list):
            raise StorageFormatError("Conversation payload must be a JSON array.")
        return cls([Message.from_dict(item) for item in payload])


@dataclass
class PendingAttachments:
    """Attachments awaiting the next send."""

    items: list[Attachment] = field(default_factory=list)

    def add(self, attachment: Attachment) -> None:
        self.items.append(attachment)

    def remove(self, index: int) -> Attachment:
        """Remove and return the attachment at ``index``."""
        if not 0 <= index < len(self.items):
            raise IndexError(f"No pending attachment at position {index}.")
        return self.items.pop(index)

    def take(self) -> list[Attachment]:
        """Return all pending attachments and leave the list empty."""
        taken = list(self.items)
        self.items.clear()
        return taken

    def has_any(self) -> bool:
        return bool(self.items)

    def __len__(self) -> int:
        return len(self.items)
