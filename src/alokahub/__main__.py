"""CLI entrypoint for AlokaHub."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from dataclasses import replace
from importlib import metadata
from pathlib import Path

from .app import ChatApp
from .config import ensure_config_dir, load_config
from .session import Preferences


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="alokahub",
        description="AlokaHub - terminal chat client for OpenAI-compatible endpoints",
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--config", type=Path, help="Path to config.toml")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("chat", help="Interactive chat (default)")

    send = sub.add_parser("send", help="Send a single message")
    send.add_argument("text", nargs="?", default="")
    send.add_argument("-a", "--attach", action="append", default=[], metavar="PATH")
    send.add_argument("-m", "--model")

    sub.add_parser("history", help="Print the saved conversation")
    sub.add_parser("clear", help="Clear the saved conversation")
    sub.add_parser("balance", help="Show remaining credits")
    sub.add_parser("models", help="List configured models")

    settings = sub.add_parser("settings", help="Show or change saved settings")
    settings.add_argument("--base-url")
    settings.add_argument("--api-key")
    settings.add_argument("--system-prompt")
    settings.add_argument("--language", choices=["en", "si"])
    settings.add_argument("--theme", choices=["light", "dark"])
    return parser


def _mask(secret: str) -> str:
    if not secret:
        return "(not set)"
    return f"{secret[:4]}…{secret[-2:]}" if len(secret) > 8 else "****"


async def _run_command(app: ChatApp, args: argparse.Namespace) -> int:
    console = app.console
    command = args.command or "chat"
    if command == "chat":
        await app.run()
        return 0
    try:
        if command == "send":
            if args.attach:
                await app.attach_paths(args.attach)
            reply = await app.send(args.text, model=args.model)
            return 0 if reply is not None else 1
        if command == "history":
            app.render_history()
        elif command == "clear":
            app.session.clear_history()
            console.print("History cleared.")
        elif command == "balance":
            credits = await app.balance()
            console.print(
                "Balance unavailable." if credits is None else f"Balance: {credits:,} Credits"
            )
        elif command == "models":
            for name in app.session.models:
                marker = "*" if name == app.session.model else " "
                console.print(f"{marker} {name}")
        elif command == "settings":
            session = app.session
            current = session.settings
            updated = replace(
                current,
                endpoint_base=args.base_url if args.base_url is not None else current.endpoint_base,
                api_key=args.api_key if args.api_key is not None else current.api_key,
                system_prompt=(
                    args.system_prompt
                    if args.system_prompt is not None
                    else current.system_prompt
                ),
            )
            if updated != current:
                session.save_settings(updated)
            if args.language or args.theme:
                session.save_preferences(
                    Preferences(
                        language=args.language or session.preferences.language,
                        theme=args.theme or session.preferences.theme,
                        sidebar_collapsed=session.preferences.sidebar_collapsed,
                    )
                )
            console.print(f"Base URL:      {session.settings.endpoint_base}")
            console.print(f"API key:       {_mask(session.settings.api_key)}")
            console.print(f"System prompt: {session.settings.system_prompt}")
            console.print(f"Language:      {session.preferences.language}")
            console.print(f"Theme:         {session.preferences.theme}")
        return 0
    finally:
        await app.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    """Ensure configuration exists, handle CLI flags, and run the client."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("alokahub-chat")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"alokahub {version}")
        return 0

    ensure_config_dir()
    app = ChatApp(load_config(args.config))
    return asyncio.run(_run_command(app, args))


if __name__ == "__main__":
    raise SystemExit(main())
