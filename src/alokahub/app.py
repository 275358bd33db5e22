"""Terminal front-end: one-shot commands and an interactive chat prompt."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
import logging
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel

from .client import ChatCompletionsClient
from .commands import CommandManager, split_paths
from .config import load_config
from .exceptions import AlokaHubError
from .ingest import FileIngestor
from .logging_utils import configure_logging
from .messages import Message
from .orchestrator import TurnOrchestrator
from .session import ChatSession
from .storage import KeyValueStore

LOGGER = logging.getLogger(__name__)

_ROLE_STYLES = {"user": "cyan", "assistant": "green", "system": "magenta"}


class ChatApp:
    """Wire config, storage, ingestion and the orchestrator to a console."""

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        console: Console | None = None,
        http_client: ChatCompletionsClient | None = None,
        store: KeyValueStore | None = None,
    ) -> None:
        self.config = config or load_config()
        configure_logging(self.config["logging"])
        api_cfg = self.config["api"]
        attachments_cfg = self.config["attachments"]

        self.console = console or Console()
        self.store = store or KeyValueStore(self.config["storage"]["path"])
        self.session = ChatSession.load(self.store, api_cfg)
        self.ingestor = FileIngestor(
            max_image_bytes=int(attachments_cfg["max_image_bytes"]),
            max_file_bytes=int(attachments_cfg["max_file_bytes"]),
        )
        self.http = http_client or ChatCompletionsClient(timeout=int(api_cfg["timeout"]))
        self.orchestrator = TurnOrchestrator(
            self.http,
            max_tokens=int(api_cfg["max_tokens"]),
            omit_history_images=bool(api_cfg["omit_history_images"]),
        )
        self.command_manager = CommandManager()
        self._register_all_commands()
        self._running = False

    def _register_all_commands(self) -> None:
        register = self.command_manager.register
        register("attach", self._handle_attach_command, "Attach files: /attach <path...>")
        register("detach", self._handle_detach_command, "Remove attachment: /detach <n>")
        register("attachments", self._handle_attachments_command, "List pending files")
        register("model", self._handle_model_command, "Switch model: /model <name>")
        register("clear", self._handle_clear_command, "Clear conversation history")
        register("balance", self._handle_balance_command, "Show remaining credits")
        register("help", self._handle_help_command, "Show help")
        register("quit", self._handle_quit_command, "Leave the chat")

    # Rendering -----------------------------------------------------------

    def render_message(self, message: Message) -> None:
        style = _ROLE_STYLES.get(message.role, "white")
        body = message.text
        if message.image_count:
            body = f"{body}\n\n_[{message.image_count} image(s) attached]_".strip()
        self.console.print(
            Panel(Markdown(body or " "), title=message.role, border_style=style)
        )

    def render_history(self) -> None:
        if not len(self.session.conversation):
            self.console.print("[dim]Ready to assist[/dim]")
            return
        for message in self.session.conversation:
            self.render_message(message)

    # Operations ----------------------------------------------------------

    async def attach_paths(self, paths: Sequence[str | Path]) -> int:
        """Ingest files into the pending list; returns how many were added."""
        attachments, errors = await self.ingestor.ingest_many(paths)
        for attachment in attachments:
            self.session.attach(attachment)
            self.console.print(
                f"[green]Attached[/green] {escape(attachment.name)} ({attachment.kind.value})"
            )
        for error in errors:
            LOGGER.info(
                "app.attachment.rejected",
                extra={
                    "event": "app.attachment.rejected",
                    "file_name": error.file_name,
                    "cause": str(error.cause),
                },
            )
            self.console.print(f"[red]{escape(str(error))}[/red]")
        return len(attachments)

    async def send(self, text: str, model: str | None = None) -> Message | None:
        reply = await self.orchestrator.send_turn(self.session, text, model=model)
        if reply is None:
            if not await self.orchestrator.state.can_send_message():
                self.console.print("[yellow]Busy. Wait for the current reply.[/yellow]")
            else:
                self.console.print("[yellow]Cannot send an empty message.[/yellow]")
            return None
        self.render_message(reply)
        return reply

    async def balance(self) -> int | None:
        settings = self.session.settings
        if not settings.has_credentials:
            return None
        return await self.http.fetch_balance(
            base_url=settings.endpoint_base, api_key=settings.api_key
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    # Slash commands ------------------------------------------------------

    async def _handle_attach_command(self, args: str) -> None:
        paths = split_paths(args)
        if not paths:
            self.console.print("Usage: /attach <path...>")
            return
        await self.attach_paths(paths)

    async def _handle_detach_command(self, args: str) -> None:
        try:
            index = int(args.strip()) - 1
            removed = self.session.remove_attachment(index)
        except (ValueError, IndexError):
            self.console.print("Usage: /detach <number from /attachments>")
            return
        self.console.print(f"Removed {removed.name}")

    async def _handle_attachments_command(self, _args: str) -> None:
        items = self.session.attachments.items
        if not items:
            self.console.print("No pending attachments.")
            return
        for number, item in enumerate(items, start=1):
            self.console.print(f"{number}. {item.name} ({item.kind.value})")

    async def _handle_model_command(self, args: str) -> None:
        name = args.strip()
        if not name:
            self.console.print(f"Model: {self.session.model}")
            self.console.print("Available: " + ", ".join(self.session.models))
            return
        self.session.set_model(name)
        self.console.print(f"Model set to {self.session.model}")

    async def _handle_clear_command(self, _args: str) -> None:
        self.session.clear_history()
        self.console.print("History cleared.")

    async def _handle_balance_command(self, _args: str) -> None:
        credits = await self.balance()
        if credits is None:
            self.console.print("Balance unavailable.")
        else:
            self.console.print(f"Balance: {credits:,} Credits")

    async def _handle_help_command(self, _args: str) -> None:
        for command, help_text in self.command_manager.get_commands():
            self.console.print(f"[bold]{command}[/bold]  {help_text}")

    async def _handle_quit_command(self, _args: str) -> None:
        self._running = False

    # Interactive loop ----------------------------------------------------

    async def handle_line(self, line: str) -> None:
        """Dispatch one line of input: slash command or chat turn."""
        text = line.strip()
        try:
            if text.startswith("/") and self.command_manager.is_command(text):
                await self.command_manager.execute(text)
                return
            await self.send(text)
        except AlokaHubError as exc:
            self.console.print(f"[red]{escape(str(exc))}[/red]")

    async def run(self) -> None:
        self.render_history()
        self._running = True
        try:
            while self._running:
                pending = len(self.session.attachments)
                prompt = f"[bold]you[/bold]{f' (+{pending})' if pending else ''}> "
                try:
                    line = await asyncio.to_thread(self.console.input, prompt)
                except (EOFError, KeyboardInterrupt):
                    break
                await self.handle_line(line)
        finally:
            await self.aclose()
