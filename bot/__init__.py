"""MAX bot application layer — polling, routing, update handlers.

This package may import from ``core/``, ``config`` and ``max_sdk`` only.
"""

from bot.dispatcher import process_update, run
from bot.handlers import (
    handle_callback,
    handle_chat_member,
    handle_help,
    handle_info,
    handle_join_request,
    handle_start,
)
from bot.max_api import answer_callback, get_client, get_updates, send_text
from bot.registry import UpdateRouter, router

__all__ = [
    # Dispatcher
    "run",
    "process_update",
    # Routing
    "UpdateRouter",
    "router",
    # Handlers
    "handle_start",
    "handle_help",
    "handle_info",
    "handle_callback",
    "handle_chat_member",
    "handle_join_request",
    # MAX API helpers
    "get_client",
    "get_updates",
    "send_text",
    "answer_callback",
]
