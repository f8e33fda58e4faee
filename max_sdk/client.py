"""MaxClient -- entry point wrapping the MAX Bot API.

The client owns one :class:`~max_sdk.transport.Transport` (and therefore one
HTTP session) and hands out per-resource services that share it::

    with MaxClient(bot_token="...") as client:
        me = client.bot().get_user()
        client.messages().send_text(chat_id, "hello")
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import requests

from max_sdk.services import (
    BotService,
    ChatsService,
    MessagesService,
    SubscriptionsService,
    UploadService,
)
from max_sdk.transport import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, ClientConfig, Transport

logger = logging.getLogger(__name__)


class MaxClient:
    """Client-side service layer for the MAX Bot API.

    Raises:
        ConfigurationError: If *bot_token* is missing or an option is invalid.
            Raised before any network activity.
    """

    def __init__(
        self,
        bot_token: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        verify_tls: bool = True,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Create a new client.

        Args:
            bot_token: Bot access token, sent as ``access_token`` on every call.
            base_url: API base URL.
            timeout: Per-request timeout in seconds, shared by all calls.
            verify_tls: Whether to verify the server certificate.
            session: Optional pre-built :class:`requests.Session` to reuse.
        """
        self._config = ClientConfig.from_options(
            bot_token,
            base_url=base_url,
            timeout=timeout,
            verify_tls=verify_tls,
        )
        self._transport = Transport(self._config, session=session)
        logger.debug("MaxClient created", extra={"base_url": self._config.base_url})

    @classmethod
    def from_config(cls, options: Mapping[str, Any]) -> "MaxClient":
        """Build a client from a ``{bot_token, base_url, timeout, verify_tls}`` mapping."""
        return cls(
            bot_token=options.get("bot_token"),
            base_url=options.get("base_url") or DEFAULT_BASE_URL,
            timeout=options.get("timeout") or DEFAULT_TIMEOUT,
            verify_tls=options.get("verify_tls", True),
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def transport(self) -> Transport:
        return self._transport

    # ------------------------------------------------------------------
    #  Services
    # ------------------------------------------------------------------

    def bot(self) -> BotService:
        return BotService(self._transport)

    def chats(self) -> ChatsService:
        return ChatsService(self._transport)

    def messages(self) -> MessagesService:
        return MessagesService(self._transport)

    def subscriptions(self) -> SubscriptionsService:
        return SubscriptionsService(self._transport)

    def upload(self) -> UploadService:
        return UploadService(self._transport)

    # ------------------------------------------------------------------
    #  Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "MaxClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
