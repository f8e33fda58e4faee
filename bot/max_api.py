"""Async MAX API helpers for the bot layer.

Thin async wrappers around the synchronous :mod:`max_sdk` client for polling
updates, sending messages, and acknowledging callback presses.  All blocking
I/O is offloaded via :func:`asyncio.to_thread` so the event loop is never
blocked.  A lazily-initialised module-level :class:`~max_sdk.MaxClient`
carries the values from :mod:`config`.
"""

import asyncio
from typing import Any, Callable, TypeVar

from config import BASE_URL, BOT_TOKEN, POLL_LIMIT, REQUEST_TIMEOUT, VERIFY_TLS
from core.logger import MaxBotLogger
from max_sdk import APIError, MaxClient, Update

logger = MaxBotLogger.get_logger()

T = TypeVar("T")

_default_client: MaxClient | None = None


def get_client() -> MaxClient:
    """Return (and lazily create) the module-level client singleton.

    Raises:
        ConfigurationError: If ``MAX_BOT_TOKEN`` is not configured.
    """
    global _default_client
    if _default_client is None:
        _default_client = MaxClient(
            bot_token=BOT_TOKEN,
            base_url=BASE_URL,
            timeout=REQUEST_TIMEOUT,
            verify_tls=VERIFY_TLS,
        )
    return _default_client


async def call_api(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking SDK call inside a thread to keep the event loop free."""
    return await asyncio.to_thread(func, *args, **kwargs)


async def get_updates(offset: int = 0, limit: int = POLL_LIMIT) -> list[Update]:
    """Poll for new updates and decode them.

    Raises:
        APIError: On transport failure or an API-reported error; the polling
            loop decides how to back off.
    """
    return await call_api(get_client().subscriptions().iter_updates, limit, offset)


async def send_text(
    chat_id: str,
    text: str,
    buttons: list[list[dict]] | None = None,
) -> bool:
    """Send a text message, optionally with an inline keyboard.

    Returns True on success, False when the API call failed (the failure is
    logged).
    """
    messages = get_client().messages()
    logger.debug("Sending message", extra={"chat_id": chat_id, "text_preview": text[:80]})
    try:
        if buttons:
            await call_api(messages.send_with_keyboard, chat_id, text, buttons)
        else:
            await call_api(messages.send_text, chat_id, text)
    except APIError as exc:
        logger.error(
            "Send message failed",
            extra={"chat_id": chat_id, "http_code": exc.http_code, "api_error_code": exc.api_error_code, "error": exc.message},
        )
        return False
    logger.info("Message sent", extra={"chat_id": chat_id})
    return True


async def answer_callback(callback_id: str, text: str) -> bool:
    """Acknowledge a callback button press so the client stops waiting."""
    try:
        await call_api(get_client().messages().answer_callback, callback_id, text)
    except APIError as exc:
        logger.error("Answer callback failed", extra={"callback_id": callback_id, "error": exc.message})
        return False
    return True
