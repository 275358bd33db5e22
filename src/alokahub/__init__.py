"""Top-level package for alokahub-chat."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .app import ChatApp
    from .client import ChatCompletionsClient
    from .config import ensure_config_dir, load_config
    from .conversation import Conversation, PendingAttachments
    from .exceptions import (
        AlokaHubError,
        AttachmentError,
        ConfigValidationError,
        RequestError,
        StorageError,
        StorageFormatError,
    )
    from .ingest import FileIngestor
    from .messages import Attachment, AttachmentKind, ImagePart, Message, TextPart
    from .orchestrator import TurnOrchestrator
    from .session import ChatSession, Preferences, Settings
    from .state import RequestState, RequestStateManager
    from .storage import KeyValueStore

_EXPORTS: dict[str, str] = {
    "ChatApp": "app",
    "ChatCompletionsClient": "client",
    "ensure_config_dir": "config",
    "load_config": "config",
    "Conversation": "conversation",
    "PendingAttachments": "conversation",
    "AlokaHubError": "exceptions",
    "AttachmentError": "exceptions",
    "ConfigValidationError": "exceptions",
    "RequestError": "exceptions",
    "StorageError": "exceptions",
    "StorageFormatError": "exceptions",
    "FileIngestor": "ingest",
    "Attachment": "messages",
    "AttachmentKind": "messages",
    "ImagePart": "messages",
    "Message": "messages",
    "TextPart": "messages",
    "TurnOrchestrator": "orchestrator",
    "ChatSession": "session",
    "Preferences": "session",
    "Settings": "session",
    "RequestState": "state",
    "RequestStateManager": "state",
    "KeyValueStore": "storage",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> Any:
    """Lazily import symbols so optional parsers load only when used."""
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module

    module = import_module(f".{module_name}", __name__)
    return getattr(module, name)
