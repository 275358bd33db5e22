"""Explicitly owned chat session: settings, preferences, history, attachments."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from typing import Any

from . import storage as keys
from .conversation import Conversation, PendingAttachments
from .exceptions import StorageFormatError
from .messages import Attachment
from .storage import KeyValueStore

LOGGER = logging.getLogger(__name__)

LANGUAGES = ("en", "si")
THEMES = ("light", "dark")


@dataclass(frozen=True)
class Settings:
    """Connection settings the user saves explicitly."""

    endpoint_base: str
    api_key: str
    system_prompt: str

    @property
    def has_credentials(self) -> bool:
        return bool(self.endpoint_base.strip() and self.api_key.strip())


@dataclass(frozen=True)
class Preferences:
    """UI preferences kept alongside settings for any front-end to read."""

    language: str = "en"
    theme: str = "light"
    sidebar_collapsed: bool = False

    @classmethod
    def from_store(cls, store: KeyValueStore) -> Preferences:
        language = store.get(keys.KEY_LANGUAGE) or "en"
        theme = store.get(keys.KEY_THEME) or "light"
        return cls(
            language=language if language in LANGUAGES else "en",
            theme=theme if theme in THEMES else "light",
            sidebar_collapsed=store.get(keys.KEY_SIDEBAR_COLLAPSED) == "true",
        )

    def to_store_values(self) -> dict[str, str]:
        return {
            keys.KEY_LANGUAGE: self.language,
            keys.KEY_THEME: self.theme,
            keys.KEY_SIDEBAR_COLLAPSED: "true" if self.sidebar_collapsed else "false",
        }


def _stored_models(store: KeyValueStore) -> list[str]:
    """Model names saved by earlier sessions; unreadable values are ignored."""
    try:
        raw = json.loads(store.get(keys.KEY_MODELS) or "[]")
    except json.JSONDecodeError:
        return []
    if not isinstance(raw, list):
        return []
    return [name for name in raw if isinstance(name, str) and name.strip()]


@dataclass
class ChatSession:
    """Everything one user works with, persisted through a key-value store."""

    store: KeyValueStore
    settings: Settings
    models: list[str]
    model: str
    preferences: Preferences = field(default_factory=Preferences)
    conversation: Conversation = field(default_factory=Conversation)
    attachments: PendingAttachments = field(default_factory=PendingAttachments)

    @classmethod
    def load(cls, store: KeyValueStore, api_config: dict[str, Any]) -> ChatSession:
        """Read a session from ``store``, writing first-run defaults."""
        defaults: dict[str, str] = {}
        if not store.get(keys.KEY_BASE_URL):
            defaults[keys.KEY_BASE_URL] = str(api_config["default_base_url"])
        if not store.get(keys.KEY_SYSTEM_PROMPT):
            defaults[keys.KEY_SYSTEM_PROMPT] = str(api_config["default_system_prompt"])
        models = [str(name) for name in api_config.get("models") or []]
        for name in _stored_models(store):
            if name not in models:
                models.append(name)
        defaults[keys.KEY_MODELS] = json.dumps(models)
        store.update(defaults)

        settings = Settings(
            endpoint_base=store.get(keys.KEY_BASE_URL) or "",
            api_key=store.get(keys.KEY_API_KEY) or "",
            system_prompt=store.get(keys.KEY_SYSTEM_PROMPT) or "",
        )

        conversation = Conversation()
        raw_chat = store.get(keys.KEY_CHAT)
        if raw_chat:
            try:
                conversation = Conversation.from_json(raw_chat)
            except StorageFormatError as exc:
                LOGGER.warning(
                    "session.chat_unreadable",
                    extra={"event": "session.chat_unreadable", "reason": str(exc)},
                )

        model = str(api_config.get("model") or (models[0] if models else ""))
        return cls(
            store=store,
            settings=settings,
            models=models or [model],
            model=model,
            preferences=Preferences.from_store(store),
            conversation=conversation,
        )

    def save_settings(self, settings: Settings) -> None:
        self.settings = settings
        self.store.update(
            {
                keys.KEY_BASE_URL: settings.endpoint_base,
                keys.KEY_API_KEY: settings.api_key,
                keys.KEY_SYSTEM_PROMPT: settings.system_prompt,
            }
        )
        LOGGER.info("session.settings_saved", extra={"event": "session.settings_saved"})

    def save_preferences(self, preferences: Preferences) -> None:
        if preferences.language not in LANGUAGES:
            raise ValueError(f"Unsupported language {preferences.language!r}.")
        if preferences.theme not in THEMES:
            raise ValueError(f"Unsupported theme {preferences.theme!r}.")
        self.preferences = preferences
        self.store.update(preferences.to_store_values())

    def save_conversation(self) -> None:
        self.store.set(keys.KEY_CHAT, self.conversation.to_json())

    def clear_history(self) -> None:
        self.conversation.clear()
        self.save_conversation()

    def set_model(self, model_name: str) -> None:
        normalized = model_name.strip()
        if not normalized:
            raise ValueError("Model name must not be empty.")
        self.model = normalized
        if normalized not in self.models:
            self.models.append(normalized)
            self.store.set(keys.KEY_MODELS, json.dumps(self.models))

    def attach(self, attachment: Attachment) -> None:
        self.attachments.add(attachment)

    def remove_attachment(self, index: int) -> Attachment:
        return self.attachments.remove(index)
