"""MAX messenger Bot API SDK -- client, transport, models, and exceptions.

The :class:`MaxClient` class wraps the HTTP API with synchronous service
objects; :class:`Update` decodes inbound webhook / poll payloads.

Usage::

    from max_sdk import MaxClient, APIError, UpdateType

    client = MaxClient(bot_token="...")
    for update in client.subscriptions().iter_updates(limit=10):
        if update.resolved_type() is UpdateType.MESSAGE:
            client.messages().send_text(update.chat_id(), "hi")
"""

from max_sdk.client import MaxClient
from max_sdk.exceptions import APIError, ConfigurationError
from max_sdk.models import (
    Chat,
    ChatType,
    Message,
    Update,
    UpdateEvent,
    UpdateType,
    User,
)
from max_sdk.transport import ClientConfig, Transport

__all__ = [
    "MaxClient",
    "ClientConfig",
    "Transport",
    "APIError",
    "ConfigurationError",
    "User",
    "Chat",
    "ChatType",
    "Message",
    "Update",
    "UpdateEvent",
    "UpdateType",
]
