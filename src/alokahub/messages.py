"""Immutable message, content-part and attachment types plus their wire form."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from .exceptions import StorageFormatError

Role = Literal["system", "user", "assistant"]
VALID_ROLES: frozenset[str] = frozenset({"system", "user", "assistant"})

HISTORY_IMAGE_PLACEHOLDER = "[Image attachment omitted from history]"


@dataclass(frozen=True)
class TextPart:
    """A text unit of a multimodal message."""

    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ImagePart:
    """An image unit of a multimodal message; ``url`` is a base64 data URL."""

    url: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "image_url", "image_url": {"url": self.url}}


ContentPart = TextPart | ImagePart


def content_part_from_dict(raw: Any) -> ContentPart:
    """Decode one OpenAI-style content part."""
    if not isinstance(raw, dict):
        raise StorageFormatError("Content part must be an object.")
    part_type = raw.get("type")
    if part_type == "text":
        text = raw.get("text")
        if not isinstance(text, str):
            raise StorageFormatError("Text part is missing its text.")
        return TextPart(text)
    if part_type == "image_url":
        image = raw.get("image_url")
        url = image.get("url") if isinstance(image, dict) else None
        if not isinstance(url, str):
            raise StorageFormatError("Image part is missing its url.")
        return ImagePart(url)
    raise StorageFormatError(f"Unsupported content part type {part_type!r}.")


@dataclass(frozen=True)
class Message:
    """A single role-tagged conversation turn."""

    role: Role
    content: str | tuple[ContentPart, ...]

    @classmethod
    def system(cls, text: str) -> Message:
        return cls("system", text)

    @classmethod
    def assistant(cls, text: str) -> Message:
        return cls("assistant", text)

    @classmethod
    def user(cls, parts: list[ContentPart] | tuple[ContentPart, ...]) -> Message:
        return cls("user", tuple(parts))

    @property
    def parts(self) -> tuple[ContentPart, ...]:
        """Content as parts; plain string content becomes one text part."""
        if isinstance(self.content, str):
            return (TextPart(self.content),)
        return self.content

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(p.text for p in self.content if isinstance(p, TextPart))

    @property
    def image_count(self) -> int:
        if isinstance(self.content, str):
            return 0
        return sum(1 for p in self.content if isinstance(p, ImagePart))

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.content, str):
            return {"role": self.role, "content": self.content}
        return {"role": self.role, "content": [p.to_dict() for p in self.content]}

    def without_images(self) -> Message:
        """Return a copy whose image parts are replaced by a text placeholder."""
        if isinstance(self.content, str) or not self.image_count:
            return self
        return Message(
            self.role,
            tuple(
                TextPart(HISTORY_IMAGE_PLACEHOLDER) if isinstance(p, ImagePart) else p
                for p in self.content
            ),
        )

    @classmethod
    def from_dict(cls, raw: Any) -> Message:
        if not isinstance(raw, dict):
            raise StorageFormatError("Message must be an object.")
        role = str(raw.get("role", "")).strip().lower()
        if role not in VALID_ROLES:
            raise StorageFormatError(f"Unsupported message role {role!r}.")
        content = raw.get("content", "")
        if isinstance(content, str):
            return cls(role, content)  # type: ignore[arg-type]
        if isinstance(content, list):
            return cls(
                role,  # type: ignore[arg-type]
                tuple(content_part_from_dict(item) for item in content),
            )
        raise StorageFormatError("Message content must be a string or a list.")


class AttachmentKind(str, Enum):
    """How an attachment is delivered to the model."""

    IMAGE = "image"
    TEXT = "text"


@dataclass(frozen=True)
class Attachment:
    """A pending file: a data URL for images, extracted text otherwise."""

    name: str
    kind: AttachmentKind
    payload: str
