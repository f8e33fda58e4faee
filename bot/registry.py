"""Update router — single source of truth for update → handler mapping.

Handlers are registered declaratively with two decorators:

- ``@router.command("/start", description=...)`` binds a slash-command that
  arrives in a ``message`` update.
- ``@router.on(UpdateType.CHAT_MEMBER)`` binds a handler for every update that
  resolves to the given variant.

Every handler has the same shape: ``async def handler(update: Update) -> None``.
The dispatcher calls :meth:`UpdateRouter.dispatch` instead of an if/elif
chain, and the callback handler calls it again with a synthetic update when a
command button from ``/help`` is pressed.
"""

from __future__ import annotations

import dataclasses
from typing import Awaitable, Callable

from max_sdk import Update, UpdateType

# ── Handler type ─────────────────────────────────────────────────────────────

UpdateHandler = Callable[[Update], Awaitable[None]]


# ── Registry entry ───────────────────────────────────────────────────────────

@dataclasses.dataclass(frozen=True, slots=True)
class CommandEntry:
    """Metadata for a single registered slash-command."""
    command: str              # e.g. "/help"
    description: str          # shown in /help
    handler: UpdateHandler


def parse_command(text: str | None) -> str:
    """Extract ``/cmd`` from message text, dropping arguments and ``@botname``.

    Returns an empty string when *text* is not a command.
    """
    if not text or not text.startswith("/"):
        return ""
    return text.split()[0].split("@")[0]


# ── Router ───────────────────────────────────────────────────────────────────

class UpdateRouter:
    """Routes decoded updates to commands and per-variant handlers.

    Usage::

        router = UpdateRouter()

        @router.command("/ping", description="Ping")
        async def handle_ping(update: Update) -> None: ...

        handled = await router.dispatch(update)
    """

    def __init__(self) -> None:
        self._commands: dict[str, CommandEntry] = {}
        self._handlers: dict[UpdateType, UpdateHandler] = {}

    # ── decorators ───────────────────────────────────────────────────────

    def command(self, command: str, *, description: str) -> Callable[[UpdateHandler], UpdateHandler]:
        """Decorator that registers *handler* for the slash-command *command*."""
        def decorator(func: UpdateHandler) -> UpdateHandler:
            self._commands[command] = CommandEntry(command=command, description=description, handler=func)
            return func
        return decorator

    def on(self, update_type: UpdateType) -> Callable[[UpdateHandler], UpdateHandler]:
        """Decorator that registers *handler* for updates resolving to *update_type*."""
        if update_type is UpdateType.UNKNOWN:
            raise ValueError("Cannot register a handler for unknown updates")

        def decorator(func: UpdateHandler) -> UpdateHandler:
            self._handlers[update_type] = func
            return func
        return decorator

    # ── lookup helpers ───────────────────────────────────────────────────

    def get(self, command: str) -> CommandEntry | None:
        return self._commands.get(command)

    def entries(self) -> dict[str, CommandEntry]:
        """Return a copy of all registered commands."""
        return dict(self._commands)

    async def dispatch(self, update: Update) -> bool:
        """Invoke the handler matching *update*.

        A ``message`` update whose text starts with a registered command goes
        to that command.  Otherwise the handler registered for the resolved
        variant is called.  Returns ``True`` if a handler ran.
        """
        update_type = update.resolved_type()
        if update_type is UpdateType.UNKNOWN:
            return False

        if update_type is UpdateType.MESSAGE:
            entry = self._commands.get(parse_command(update.text()))
            if entry is not None:
                await entry.handler(update)
                return True

        handler = self._handlers.get(update_type)
        if handler is None:
            return False
        await handler(update)
        return True


# Module-level instance; handlers register here on import.
router = UpdateRouter()
