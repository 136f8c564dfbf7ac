"""Command registry — the single command allow-list.

Handlers bind themselves to a slash-command with ``@registry.register`` in
:mod:`bot.handlers`.  The dispatcher consults the registry before running
anything: a command that is not registered (or is development-only outside
development) is never forwarded to a handler, and ``admin_only`` entries are
gated on the caller's id.

The public entries double as the ``setMyCommands`` menu.
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Awaitable, Callable, Protocol, runtime_checkable

from sdk.models import BotCommand, Message

if TYPE_CHECKING:
    from bot.context import AppContext
    from core.session import Session


@runtime_checkable
class CommandHandler(Protocol):
    """Handler receiving the app context, the message and the caller's session."""
    def __call__(self, app: AppContext, message: Message, session: Session) -> Awaitable[None]: ...  # noqa: E704


@dataclasses.dataclass(frozen=True, slots=True)
class CommandEntry:
    """Metadata for a single registered slash-command."""
    command: str              # e.g. "/stats"
    description: str          # shown in the Telegram command menu
    handler: CommandHandler
    admin_only: bool = False  # caller must be in ADMIN_IDS
    dev_only: bool = False    # only routable in the development environment


class CommandRegistry:
    """Singleton command registry.

    Usage::

        @registry.register("/ping", description="Ping")
        async def handle_ping(app, message, session): ...

        entry = registry.lookup("/ping", development=False)
    """

    _instance: CommandRegistry | None = None
    _entries: dict[str, CommandEntry]

    def __new__(cls) -> CommandRegistry:
        if cls._instance is None:
            inst = super().__new__(cls)
            inst._entries = {}
            cls._instance = inst
        return cls._instance

    def register(
        self,
        command: str,
        *,
        description: str,
        admin_only: bool = False,
        dev_only: bool = False,
    ) -> Callable[[CommandHandler], CommandHandler]:
        """Decorator that registers *handler* for *command*."""
        def decorator(func: CommandHandler) -> CommandHandler:
            self._entries[command] = CommandEntry(
                command=command,
                description=description,
                handler=func,
                admin_only=admin_only,
                dev_only=dev_only,
            )
            return func
        return decorator

    def lookup(self, command: str, *, development: bool) -> CommandEntry | None:
        """Return the entry for *command* if it is allowed in this environment."""
        entry = self._entries.get(command)
        if entry is None or (entry.dev_only and not development):
            return None
        return entry

    def entries(self) -> dict[str, CommandEntry]:
        """Return a copy of all registered commands."""
        return dict(self._entries)

    def menu(self) -> list[BotCommand]:
        """Public commands in registration order, for ``setMyCommands``."""
        return [
            BotCommand(command=entry.command.lstrip("/"), description=entry.description)
            for entry in self._entries.values()
            if not entry.admin_only and not entry.dev_only
        ]


def parse_command(text: str) -> tuple[str, str]:
    """Split ``"/name@BotName  args"`` into ``("/name", "args")``.

    Returns ``("", "")`` when *text* is not a slash-command.
    """
    if not text.startswith("/"):
        return "", ""
    parts = text.split(maxsplit=1)
    command = parts[0].split("@", 1)[0].lower()
    if command == "/":
        return "", ""
    rest = parts[1].strip() if len(parts) > 1 else ""
    return command, rest


def command_target(text: str) -> str | None:
    """Return the bot a slash-command is addressed to (``/help@QuantaBot``), if any."""
    if not text.startswith("/"):
        return None
    _, _, target = text.split(maxsplit=1)[0].partition("@")
    return target or None


# Module-level singleton — import this everywhere.
registry = CommandRegistry()
