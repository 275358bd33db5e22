"""Tests for message types, conversation history and pending attachments."""

from __future__ import annotations

import json
import unittest

from alokahub.conversation import Conversation, PendingAttachments
from alokahub.exceptions import StorageFormatError
from alokahub.messages import (
    HISTORY_IMAGE_PLACEHOLDER,
    Attachment,
    AttachmentKind,
    ImagePart,
    Message,
    TextPart,
)

PNG_URL = "data:image/png;base64,iVBORw0KGgo="


class MessageTests(unittest.TestCase):
    """Validate the OpenAI-style wire form of messages."""

    def test_user_parts_serialize_in_order(self) -> None:
        message = Message.user([TextPart("look"), ImagePart(PNG_URL)])
        self.assertEqual(
            message.to_dict(),
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "look"},
                    {"type": "image_url", "image_url": {"url": PNG_URL}},
                ],
            },
        )
        self.assertEqual(message.text, "look")
        self.assertEqual(message.image_count, 1)

    def test_plain_string_content_is_kept_as_string(self) -> None:
        message = Message.assistant("**hi**")
        self.assertEqual(message.to_dict(), {"role": "assistant", "content": "**hi**"})
        self.assertEqual(message.parts, (TextPart("**hi**"),))

    def test_without_images_replaces_image_parts(self) -> None:
        message = Message.user([TextPart("a"), ImagePart(PNG_URL)])
        stripped = message.without_images()
        self.assertEqual(stripped.parts, (TextPart("a"), TextPart(HISTORY_IMAGE_PLACEHOLDER)))
        self.assertEqual(message.image_count, 1)

    def test_from_dict_rejects_unknown_role_and_part(self) -> None:
        with self.assertRaises(StorageFormatError):
            Message.from_dict({"role": "tool", "content": "x"})
        with self.assertRaises(StorageFormatError):
            Message.from_dict({"role": "user", "content": [{"type": "audio"}]})
        with self.assertRaises(StorageFormatError):
            Message.from_dict({"role": "user", "content": 12})


class ConversationTests(unittest.TestCase):
    """Validate append-only history and its JSON snapshot."""

    def test_json_round_trip_reproduces_sequence(self) -> None:
        conversation = Conversation()
        conversation.append(Message.user([TextPart("Hello")]))
        conversation.append(Message.assistant("Hi there"))
        conversation.append(Message.user([TextPart("and this?"), ImagePart(PNG_URL)]))
        conversation.append(Message.assistant("**Error:** bad key"))

        restored = Conversation.from_json(conversation.to_json())
        self.assertEqual(restored.messages, conversation.messages)

    def test_from_json_accepts_legacy_string_content(self) -> None:
        raw = json.dumps([{"role": "user", "content": "hello"}])
        restored = Conversation.from_json(raw)
        self.assertEqual(restored.messages, (Message("user", "hello"),))

    def test_from_json_rejects_non_array(self) -> None:
        with self.assertRaises(StorageFormatError):
            Conversation.from_json('{"role": "user"}')
        with self.assertRaises(StorageFormatError):
            Conversation.from_json("not json")

    def test_clear_empties_history(self) -> None:
        conversation = Conversation([Message.user([TextPart("q")]), Message.assistant("a")])
        self.assertEqual([m.role for m in conversation], ["user", "assistant"])
        conversation.clear()
        self.assertEqual(len(conversation), 0)
        self.assertEqual(conversation.to_json(), "[]")


class PendingAttachmentsTests(unittest.TestCase):
    """Validate attachment lifecycle before send."""

    def test_take_empties_the_list(self) -> None:
        pending = PendingAttachments()
        image = Attachment("a.png", AttachmentKind.IMAGE, PNG_URL)
        doc = Attachment("b.txt", AttachmentKind.TEXT, "notes")
        pending.add(image)
        pending.add(doc)
        self.assertTrue(pending.has_any())

        self.assertEqual(pending.take(), [image, doc])
        self.assertFalse(pending.has_any())

    def test_remove_by_index(self) -> None:
        pending = PendingAttachments()
        pending.add(Attachment("a.txt", AttachmentKind.TEXT, "1"))
        pending.add(Attachment("b.txt", AttachmentKind.TEXT, "2"))
        removed = pending.remove(0)
        self.assertEqual(removed.name, "a.txt")
        self.assertEqual(len(pending), 1)
        with self.assertRaises(IndexError):
            pending.remove(5)


if __name__ == "__main__":
    unittest.main()
