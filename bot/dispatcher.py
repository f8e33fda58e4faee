"""Update dispatcher and main polling loop.

Decodes each incoming update and routes it through :data:`bot.registry.router`.
The loop uses ``asyncio`` to process updates concurrently, so slow API calls
never block the bot from fetching the next batch.
"""

import asyncio
from typing import Any, Mapping

from config import BOT_TOKEN, POLL_RETRY_DELAY
from core.logger import MaxBotLogger
from max_sdk import APIError, Update, UpdateType
from bot.registry import router
from bot.max_api import get_updates

# Import handlers module so @router decorators execute.
import bot.handlers as _handlers  # noqa: F401

logger = MaxBotLogger.get_logger()

# Strong references to in-flight update tasks.
_tasks: set[asyncio.Task] = set()


async def process_update(update: Update | Mapping[str, Any]) -> bool:
    """Decode (if needed) and dispatch a single update.

    API failures inside a handler are logged, not raised, so one bad update
    cannot stop the polling loop.  Returns ``True`` if a handler ran.
    """
    if not isinstance(update, Update):
        update = Update.from_dict(update)

    update_type = update.resolved_type()
    populated = update.populated_types()
    if len(populated) > 1:
        logger.warning(
            "Update carries several variants, routing the first",
            extra={"update_id": update.update_id, "variants": [t.value for t in populated]},
        )

    if update_type is UpdateType.UNKNOWN:
        logger.debug("Update has no known variant, skipping", extra={"update_id": update.update_id})
        return False

    logger.debug(
        "Processing update",
        extra={"update_id": update.update_id, "update_type": update_type.value, "chat_id": update.chat_id()},
    )
    try:
        handled = await router.dispatch(update)
    except APIError as exc:
        logger.error(
            "Handler failed with API error",
            extra={
                "update_id": update.update_id,
                "update_type": update_type.value,
                "http_code": exc.http_code,
                "api_error_code": exc.api_error_code,
                "error": exc.message,
            },
        )
        return False

    if not handled:
        logger.debug("No handler matched", extra={"update_id": update.update_id, "update_type": update_type.value})
    return handled


def _spawn(update: Update) -> None:
    task = asyncio.create_task(process_update(update))
    _tasks.add(task)
    task.add_done_callback(_tasks.discard)


async def run() -> None:
    """Start the async long-polling loop.

    Each update is spawned as an independent :func:`asyncio.create_task` so
    the loop immediately proceeds to fetch the next batch.

    Raises:
        EnvironmentError: If ``MAX_BOT_TOKEN`` is not set.
        ConfigurationError: If the client options are invalid; only
            :class:`APIError` is retried.
    """
    if not BOT_TOKEN:
        raise EnvironmentError("MAX_BOT_TOKEN environment variable is not set or is empty.")

    offset = 0

    logger.info("MAX bot is running. Polling for updates (async)...")
    while True:
        try:
            updates = await get_updates(offset)
        except APIError as exc:
            logger.warning(
                "Polling failed, retrying",
                extra={"api_endpoint": "/subscriptions/updates", "error": exc.message, "retry_in": POLL_RETRY_DELAY},
            )
            await asyncio.sleep(POLL_RETRY_DELAY)
            continue

        if updates:
            logger.debug("Received updates", extra={"count": len(updates)})
        for update in updates:
            _spawn(update)
            offset = max(offset, update.update_id + 1)
