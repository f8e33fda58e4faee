"""Entry point — start the MAX bot long-polling loop.

Usage::

    MAX_BOT_TOKEN=... python main.py
"""

import asyncio

from core.logger import MaxBotLogger
from bot.dispatcher import run

logger = MaxBotLogger.get_logger()


def main() -> None:
    # Route SDK transport logs through the JSON handlers.
    MaxBotLogger.attach("max_sdk")
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")


if __name__ == "__main__":
    main()
