"""Compose one multimodal turn, send it, and record the outcome."""

from __future__ import annotations

import logging

from .client import DEFAULT_MAX_TOKENS, ChatCompletionsClient
from .exceptions import RequestError, StorageError
from .messages import (
    Attachment,
    AttachmentKind,
    ContentPart,
    ImagePart,
    Message,
    TextPart,
)
from .session import ChatSession
from .state import RequestState, RequestStateManager

LOGGER = logging.getLogger(__name__)


def compose_user_message(user_text: str, attachments: list[Attachment]) -> Message:
    """Merge typed text and attachments into one user message.

    Document text goes first, each block prefixed by its file name, then
    the typed text; images follow as separate parts in attachment order.
    """
    images = [a for a in attachments if a.kind is AttachmentKind.IMAGE]
    documents = [a for a in attachments if a.kind is AttachmentKind.TEXT]

    combined_text = user_text
    if documents:
        context = "\n\n".join(f"[File: {doc.name}]\n{doc.payload}" for doc in documents)
        combined_text = f"{context}\n\nUser Message: {user_text}"

    parts: list[ContentPart] = []
    if combined_text:
        parts.append(TextPart(combined_text))
    parts.extend(ImagePart(image.payload) for image in images)
    return Message.user(parts)


def build_request_messages(
    system_prompt: str,
    history: tuple[Message, ...] | list[Message],
    user_message: Message,
    *,
    omit_history_images: bool = False,
) -> list[Message]:
    """Return ``[system, *history, user_message]`` for the outbound payload."""
    prior = [
        message.without_images() if omit_history_images else message
        for message in history
    ]
    return [Message.system(system_prompt), *prior, user_message]


def format_error(exc: BaseException) -> str:
    return f"**Error:** {exc}"


class TurnOrchestrator:
    """Send chat turns for a session, one request at a time."""

    def __init__(
        self,
        client: ChatCompletionsClient,
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        omit_history_images: bool = True,
        state: RequestStateManager | None = None,
    ) -> None:
        self.client = client
        self.max_tokens = max_tokens
        self.omit_history_images = omit_history_images
        self.state = state or RequestStateManager()

    async def send_turn(
        self,
        session: ChatSession,
        user_text: str,
        model: str | None = None,
    ) -> Message | None:
        """Send ``user_text`` plus pending attachments as the next turn.

        Returns the assistant message that was appended, or ``None`` when the
        call was rejected because there is nothing to send or a request is
        already in flight. Request failures are recorded as an assistant
        message starting with ``**Error:**`` and are never raised.
        """
        text = user_text.strip()
        if not text and not session.attachments.has_any():
            LOGGER.debug("chat.turn.empty", extra={"event": "chat.turn.empty"})
            return None

        entered = await self.state.transition_if(
            RequestState.IDLE, RequestState.AWAITING_RESPONSE
        )
        if not entered:
            LOGGER.info("chat.turn.busy", extra={"event": "chat.turn.busy"})
            return None

        try:
            history = session.conversation.messages
            user_message = compose_user_message(text, session.attachments.take())
            session.conversation.append(user_message)
            outbound = build_request_messages(
                session.settings.system_prompt,
                history,
                user_message,
                omit_history_images=self.omit_history_images,
            )

            try:
                content = await self.client.complete(
                    base_url=session.settings.endpoint_base,
                    api_key=session.settings.api_key,
                    model=model or session.model,
                    messages=outbound,
                    max_tokens=self.max_tokens,
                )
                reply = Message.assistant(content)
            except RequestError as exc:
                reply = Message.assistant(format_error(exc))
            except Exception as exc:  # noqa: BLE001 - the transcript shows every failure.
                LOGGER.exception(
                    "chat.turn.unexpected_error",
                    extra={"event": "chat.turn.unexpected_error"},
                )
                reply = Message.assistant(format_error(exc))

            session.conversation.append(reply)
            return reply
        finally:
            await self.state.transition_to(RequestState.IDLE)
            try:
                session.save_conversation()
            except StorageError:
                LOGGER.exception(
                    "chat.turn.persist_failed",
                    extra={"event": "chat.turn.persist_failed"},
                )
            LOGGER.info(
                "chat.turn.finished",
                extra={
                    "event": "chat.turn.finished",
                    "history_length": len(session.conversation),
                },
            )
