"""Slash command registration and dispatch for the interactive prompt."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging
import os
import shlex

LOGGER = logging.getLogger(__name__)

CommandHandler = Callable[[str], Awaitable[None]]


def split_paths(args: str) -> list[str]:
    """Split a command argument string into user-expanded paths.

    Quoting follows shell rules so paths with spaces can be attached.
    """
    try:
        tokens = shlex.split(args)
    except ValueError:
        tokens = args.split()
    return [os.path.expanduser(token) for token in tokens if token.strip()]


class CommandManager:
    """Registry of ``/name`` commands with help text."""

    def __init__(self) -> None:
        self._commands: dict[str, CommandHandler] = {}
        self._command_help: dict[str, str] = {}

    def register(self, name: str, handler: CommandHandler, help_text: str = "") -> None:
        """Register a slash command; the leading ``/`` is optional."""
        normalized_name = name.lstrip("/")
        self._commands[normalized_name] = handler
        self._command_help[normalized_name] = help_text or f"Execute /{normalized_name}"
        LOGGER.debug(f"Registered command: /{normalized_name}")

    async def execute(self, command_line: str) -> bool:
        """Run a slash command.

        Returns:
            True if the command was handled, False when it is unknown.
        """
        if not command_line.startswith("/"):
            return False

        parts = command_line.split(maxsplit=1)
        command_name = parts[0][1:]
        args = parts[1] if len(parts) > 1 else ""

        handler = self._commands.get(command_name)
        if not handler:
            LOGGER.warning(f"Unknown command: /{command_name}")
            return False

        try:
            await handler(args)
            return True
        except Exception as e:
            LOGGER.error(f"Command /{command_name} failed: {e}")
            raise

    def get_commands(self) -> list[tuple[str, str]]:
        """Return ``(command, help_text)`` pairs with the ``/`` prefix."""
        return [
            (f"/{name}", help_text) for name, help_text in self._command_help.items()
        ]

    def is_command(self, text: str) -> bool:
        if not text.startswith("/"):
            return False
        command_name = text.split()[0][1:]
        return command_name in self._commands
