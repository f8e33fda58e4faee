"""Update handlers for the MAX bot.

Slash-commands and per-variant handlers are bound to :data:`bot.registry.router`
at import time; :mod:`bot.dispatcher` imports this module for that side effect.
"""

from core.logger import MaxBotLogger
from max_sdk import Update, UpdateType
from max_sdk.services import MessagesService
from bot.max_api import answer_callback, send_text
from bot.registry import router

logger = MaxBotLogger.get_logger()


def _display_name(update: Update) -> str:
    message = update.main_message()
    sender = message.from_field if message is not None else None
    if sender is None or not sender.name:
        return "there"
    return sender.name


def _build_synthetic_update(update: Update, text: str) -> Update:
    """Turn a callback press into a ``message`` update carrying *text*.

    Lets command handlers run as if the user had typed the command.
    """
    source = update.callback_message()
    message = source.to_dict() if source is not None else {}
    message["text"] = text
    user = update.callback_user()
    if user is not None:
        message["from"] = user.to_dict()
    return Update.from_dict({"update_id": update.update_id, "message": message})


# ── Commands ─────────────────────────────────────────────────────────────────


@router.command("/start", description="Say hello")
async def handle_start(update: Update) -> None:
    """Greet the user and offer the command menu."""
    chat_id = update.chat_id()
    logger.info("User invoked /start", extra={"user_id": update.user_id(), "chat_id": chat_id, "command": "/start"})
    buttons = [[MessagesService.callback_button("📖 Help", "/help")]]
    await send_text(chat_id, f"👋 Hello, {_display_name(update)}! Tap Help to see what I can do.", buttons)


@router.command("/help", description="Show available commands")
async def handle_help(update: Update) -> None:
    """List registered commands as callback buttons."""
    chat_id = update.chat_id()
    logger.info("User invoked /help", extra={"user_id": update.user_id(), "chat_id": chat_id, "command": "/help"})

    buttons = [
        [MessagesService.callback_button(f"{cmd} — {entry.description}", cmd)]
        for cmd, entry in router.entries().items()
    ]
    await send_text(chat_id, "📖 Available commands (tap to use):", buttons)


@router.command("/info", description="Show chat and sender details")
async def handle_info(update: Update) -> None:
    chat_id = update.chat_id()
    message = update.main_message()
    chat = message.chat if message is not None else None
    logger.info("User invoked /info", extra={"user_id": update.user_id(), "chat_id": chat_id, "command": "/info"})

    chat_type = chat.chat_type.value if chat is not None else "unknown"
    await send_text(
        chat_id,
        f"ℹ️ Chat: {chat_id} ({chat_type})\n"
        f"• Your ID: {update.user_id()}\n"
        f"• Update ID: {update.update_id}",
    )


# ── Non-command updates ──────────────────────────────────────────────────────


@router.on(UpdateType.CALLBACK_QUERY)
async def handle_callback(update: Update) -> None:
    """Acknowledge a button press and run the command it carries, if any."""
    callback_id = update.callback_id()
    data = update.callback_data() or ""
    user = update.callback_user()
    logger.info(
        "Callback received",
        extra={"update_id": update.update_id, "user_id": user.user_id if user else None, "callback_data": data},
    )

    entry = router.get(data) if data.startswith("/") else None
    if callback_id:
        await answer_callback(callback_id, f"Running {data}…" if entry else "OK")

    if entry is None:
        logger.debug("Callback data matched no command", extra={"update_id": update.update_id, "callback_data": data})
        return

    chat = update.callback_chat()
    if chat is None or not chat.chat_id:
        logger.warning("Callback has no chat to reply into", extra={"update_id": update.update_id})
        return
    await entry.handler(_build_synthetic_update(update, data))


@router.on(UpdateType.CHAT_MEMBER)
async def handle_chat_member(update: Update) -> None:
    logger.info("Chat membership changed", extra={"update_id": update.update_id, "payload": update.chat_member})


@router.on(UpdateType.CHAT_JOIN_REQUEST)
async def handle_join_request(update: Update) -> None:
    logger.info("Chat join request received", extra={"update_id": update.update_id, "payload": update.chat_join_request})
