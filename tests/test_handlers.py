"""Tests for the update router, handlers and the polling dispatcher."""

import asyncio
import sys
import os
from unittest.mock import patch, AsyncMock, MagicMock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from max_sdk import APIError, ConfigurationError, MaxClient, Update, UpdateType
from bot.registry import UpdateRouter, parse_command


# ── Fixtures ─────────────────────────────────────────────────────────────────


def _make_update(text: str, chat_id: str = "c1", user_id: int = 5, variant: str = "message") -> dict:
    """Build a minimal raw update carrying one message-bearing variant."""
    return {
        "update_id": 1,
        variant: {
            "message_id": 11,
            "text": text,
            "chat": {"chat_id": chat_id, "type": "private"},
            "from": {"user_id": user_id, "name": "Ann"},
        },
    }


def _make_callback(data: str, chat_id: str = "g1", cb_id: str = "cb1") -> dict:
    """Build a minimal callback_query update."""
    return {
        "update_id": 2,
        "callback_query": {
            "id": cb_id,
            "data": data,
            "from": {"user_id": 5, "name": "Ann"},
            "message": {"message_id": 10, "chat": {"chat_id": chat_id, "type": "group"}},
        },
    }


# ── parse_command ────────────────────────────────────────────────────────────


class TestParseCommand:

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("/start", "/start"),
            ("/start now please", "/start"),
            ("/help@max_helper_bot", "/help"),
            ("hello", ""),
            ("", ""),
            (None, ""),
        ],
    )
    def test_parse(self, text, expected) -> None:
        assert parse_command(text) == expected


# ── UpdateRouter ─────────────────────────────────────────────────────────────


class TestUpdateRouter:
    """Validate routing on a fresh router instance."""

    @pytest.mark.asyncio
    async def test_command_dispatch(self) -> None:
        router = UpdateRouter()
        handler = AsyncMock()
        router.command("/ping", description="Ping")(handler)

        update = Update.from_dict(_make_update("/ping"))
        assert await router.dispatch(update) is True
        handler.assert_awaited_once_with(update)

    @pytest.mark.asyncio
    async def test_unregistered_command_falls_back_to_variant_handler(self) -> None:
        router = UpdateRouter()
        fallback = AsyncMock()
        router.on(UpdateType.MESSAGE)(fallback)

        assert await router.dispatch(Update.from_dict(_make_update("/nope"))) is True
        fallback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_commands_only_from_new_messages(self) -> None:
        router = UpdateRouter()
        handler = AsyncMock()
        router.command("/ping", description="Ping")(handler)

        update = Update.from_dict(_make_update("/ping", variant="edited_message"))
        assert await router.dispatch(update) is False
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_variant_handler(self) -> None:
        router = UpdateRouter()
        handler = AsyncMock()
        router.on(UpdateType.CHAT_MEMBER)(handler)

        assert await router.dispatch(Update.from_dict({"chat_member": {"user_id": 1}})) is True
        handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_update_not_handled(self) -> None:
        assert await UpdateRouter().dispatch(Update.from_dict({"update_id": 9})) is False

    def test_cannot_register_unknown(self) -> None:
        with pytest.raises(ValueError):
            UpdateRouter().on(UpdateType.UNKNOWN)

    def test_entries_is_a_copy(self) -> None:
        router = UpdateRouter()
        router.command("/a", description="A")(AsyncMock())
        entries = router.entries()
        entries.clear()
        assert router.get("/a") is not None
        assert router.get("/a").description == "A"


# ── Command handlers ─────────────────────────────────────────────────────────


class TestHandleStart:

    @pytest.mark.asyncio
    @patch("bot.handlers.send_text", new_callable=AsyncMock)
    async def test_greets_sender(self, mock_send) -> None:
        from bot.handlers import handle_start

        await handle_start(Update.from_dict(_make_update("/start")))

        chat_id, text, buttons = mock_send.call_args.args
        assert chat_id == "c1"
        assert "Hello, Ann" in text
        assert buttons[0][0]["payload"] == "/help"

    @pytest.mark.asyncio
    @patch("bot.handlers.send_text", new_callable=AsyncMock)
    async def test_anonymous_sender(self, mock_send) -> None:
        from bot.handlers import handle_start

        await handle_start(Update.from_dict({"message": {"text": "/start", "chat": {"chat_id": "c1"}}}))

        assert "Hello, there" in mock_send.call_args.args[1]


class TestHandleHelp:

    @pytest.mark.asyncio
    @patch("bot.handlers.send_text", new_callable=AsyncMock)
    async def test_lists_registered_commands(self, mock_send) -> None:
        from bot.handlers import handle_help

        await handle_help(Update.from_dict(_make_update("/help")))

        buttons = mock_send.call_args.args[2]
        payloads = [btn["payload"] for row in buttons for btn in row]
        assert {"/start", "/help", "/info"} <= set(payloads)
        assert all(btn["type"] == "callback" for row in buttons for btn in row)


class TestHandleInfo:

    @pytest.mark.asyncio
    @patch("bot.handlers.send_text", new_callable=AsyncMock)
    async def test_reports_ids(self, mock_send) -> None:
        from bot.handlers import handle_info

        await handle_info(Update.from_dict(_make_update("/info", chat_id="c9", user_id=77)))

        text = mock_send.call_args.args[1]
        assert "c9 (private)" in text
        assert "77" in text


# ── Callback handler ─────────────────────────────────────────────────────────


class TestHandleCallback:

    @pytest.mark.asyncio
    @patch("bot.handlers.answer_callback", new_callable=AsyncMock)
    @patch("bot.handlers.send_text", new_callable=AsyncMock)
    async def test_command_button_runs_command(self, mock_send, mock_answer) -> None:
        from bot.handlers import handle_callback

        await handle_callback(Update.from_dict(_make_callback("/help")))

        mock_answer.assert_awaited_once_with("cb1", "Running /help…")
        # /help replies into the chat the button was pressed in
        assert mock_send.call_args.args[0] == "g1"

    @pytest.mark.asyncio
    @patch("bot.handlers.answer_callback", new_callable=AsyncMock)
    @patch("bot.handlers.send_text", new_callable=AsyncMock)
    async def test_synthetic_update_carries_callback_user(self, mock_send, mock_answer) -> None:
        from bot.handlers import handle_callback

        await handle_callback(Update.from_dict(_make_callback("/info")))

        text = mock_send.call_args.args[1]
        assert "g1 (group)" in text
        assert "Your ID: 5" in text

    @pytest.mark.asyncio
    @patch("bot.handlers.answer_callback", new_callable=AsyncMock)
    @patch("bot.handlers.send_text", new_callable=AsyncMock)
    async def test_non_command_payload(self, mock_send, mock_answer) -> None:
        from bot.handlers import handle_callback

        await handle_callback(Update.from_dict(_make_callback("vote:1")))

        mock_answer.assert_awaited_once_with("cb1", "OK")
        mock_send.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("bot.handlers.answer_callback", new_callable=AsyncMock)
    @patch("bot.handlers.send_text", new_callable=AsyncMock)
    async def test_callback_without_message(self, mock_send, mock_answer) -> None:
        from bot.handlers import handle_callback

        await handle_callback(Update.from_dict({"callback_query": {"id": "cb2", "data": "/help"}}))

        mock_answer.assert_awaited_once()
        mock_send.assert_not_awaited()


# ── process_update dispatch ──────────────────────────────────────────────────


class TestProcessUpdate:
    """Validate that process_update decodes and routes raw payloads."""

    @pytest.mark.asyncio
    @patch("bot.handlers.send_text", new_callable=AsyncMock)
    async def test_dispatches_start(self, mock_send) -> None:
        from bot.dispatcher import process_update

        assert await process_update(_make_update("/start")) is True
        assert "Hello" in mock_send.call_args.args[1]

    @pytest.mark.asyncio
    @patch("bot.handlers.send_text", new_callable=AsyncMock)
    async def test_accepts_decoded_update(self, mock_send) -> None:
        from bot.dispatcher import process_update

        assert await process_update(Update.from_dict(_make_update("/help@bot"))) is True
        assert mock_send.called

    @pytest.mark.asyncio
    @patch("bot.handlers.send_text", new_callable=AsyncMock)
    async def test_plain_text_not_handled(self, mock_send) -> None:
        from bot.dispatcher import process_update

        assert await process_update(_make_update("just chatting")) is False
        mock_send.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("bot.handlers.answer_callback", new_callable=AsyncMock)
    @patch("bot.handlers.send_text", new_callable=AsyncMock)
    async def test_dispatches_callback(self, mock_send, mock_answer) -> None:
        from bot.dispatcher import process_update

        assert await process_update(_make_callback("/start")) is True
        mock_answer.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_membership_updates_handled(self) -> None:
        from bot.dispatcher import process_update

        assert await process_update({"update_id": 3, "chat_member": {"user_id": 1}}) is True
        assert await process_update({"update_id": 4, "chat_join_request": {"user_id": 1}}) is True

    @pytest.mark.asyncio
    async def test_unknown_update_skipped(self) -> None:
        from bot.dispatcher import process_update

        assert await process_update({"update_id": 5, "something_new": {}}) is False

    @pytest.mark.asyncio
    @patch("bot.handlers.send_text", new_callable=AsyncMock)
    async def test_api_error_is_contained(self, mock_send) -> None:
        from bot.dispatcher import process_update

        mock_send.side_effect = APIError.rate_limit_exceeded()
        assert await process_update(_make_update("/start")) is False


# ── Polling loop ─────────────────────────────────────────────────────────────


class TestRun:

    @pytest.mark.asyncio
    @patch("bot.dispatcher.BOT_TOKEN", None)
    async def test_requires_token(self) -> None:
        from bot.dispatcher import run

        with pytest.raises(EnvironmentError):
            await run()

    @pytest.mark.asyncio
    @patch("bot.dispatcher.POLL_RETRY_DELAY", 0)
    @patch("bot.dispatcher.BOT_TOKEN", "tok")
    @patch("bot.dispatcher._spawn")
    @patch("bot.dispatcher.get_updates", new_callable=AsyncMock)
    async def test_offset_advances_and_errors_back_off(self, mock_get, mock_spawn) -> None:
        from bot.dispatcher import run

        first = Update.from_dict({"update_id": 5, "chat_member": {}})
        second = Update.from_dict({"update_id": 3, "chat_member": {}})
        mock_get.side_effect = [APIError("down"), [first, second], asyncio.CancelledError()]

        with pytest.raises(asyncio.CancelledError):
            await run()

        assert [c.args[0] for c in mock_get.call_args_list] == [0, 0, 6]
        assert [c.args[0] for c in mock_spawn.call_args_list] == [first, second]

    @pytest.mark.asyncio
    @patch("bot.dispatcher.POLL_RETRY_DELAY", 0)
    @patch("bot.dispatcher.BOT_TOKEN", "tok")
    @patch("bot.dispatcher.get_updates", new_callable=AsyncMock)
    async def test_configuration_error_stops_polling(self, mock_get) -> None:
        from bot.dispatcher import run

        mock_get.side_effect = [ConfigurationError("Invalid client configuration"), []]

        with pytest.raises(ConfigurationError):
            await run()
        mock_get.assert_awaited_once()


# ── MAX API helpers ──────────────────────────────────────────────────────────


class TestMaxApi:

    @patch("bot.max_api.BOT_TOKEN", "tok")
    @patch("bot.max_api._default_client", None)
    def test_default_client_is_lazy_singleton(self) -> None:
        from bot.max_api import get_client

        client = get_client()
        assert isinstance(client, MaxClient)
        assert get_client() is client
        client.close()

    @pytest.mark.asyncio
    @patch("bot.max_api.get_client")
    async def test_send_text_without_buttons(self, mock_client) -> None:
        from bot.max_api import send_text

        messages = mock_client.return_value.messages.return_value
        assert await send_text("c1", "hi") is True
        messages.send_text.assert_called_once_with("c1", "hi")
        messages.send_with_keyboard.assert_not_called()

    @pytest.mark.asyncio
    @patch("bot.max_api.get_client")
    async def test_send_text_with_buttons(self, mock_client) -> None:
        from bot.max_api import send_text

        messages = mock_client.return_value.messages.return_value
        buttons = [[{"type": "callback", "text": "A", "payload": "a"}]]
        assert await send_text("c1", "hi", buttons) is True
        messages.send_with_keyboard.assert_called_once_with("c1", "hi", buttons)

    @pytest.mark.asyncio
    @patch("bot.max_api.get_client")
    async def test_send_text_failure_returns_false(self, mock_client) -> None:
        from bot.max_api import send_text

        mock_client.return_value.messages.return_value.send_text.side_effect = APIError.not_found()
        assert await send_text("c1", "hi") is False

    @pytest.mark.asyncio
    @patch("bot.max_api.get_client")
    async def test_answer_callback_failure_returns_false(self, mock_client) -> None:
        from bot.max_api import answer_callback

        mock_client.return_value.messages.return_value.answer_callback.side_effect = APIError("gone")
        assert await answer_callback("cb1", "ok") is False

    @pytest.mark.asyncio
    @patch("bot.max_api.get_client")
    async def test_get_updates(self, mock_client) -> None:
        from bot.max_api import get_updates

        subscriptions = mock_client.return_value.subscriptions.return_value
        subscriptions.iter_updates.return_value = [Update.from_dict({"update_id": 1})]

        updates = await get_updates(offset=7, limit=20)

        assert updates[0].update_id == 1
        subscriptions.iter_updates.assert_called_once_with(20, 7)
