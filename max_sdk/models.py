"""Pydantic data models for the MAX Bot API objects.

Every model is frozen once constructed and is decoded *leniently*: a field
whose raw value is missing, ``null`` or of the wrong shape falls back to its
declared default instead of failing validation.  ``from_dict`` therefore never
raises, which keeps inbound webhook / poll handling robust against partial
payloads.  Optional fields keep a real "absent" state (``None``) because
several predicates (``is_reply``, ``is_edited``, ``is_forward``) depend on
presence rather than on a value.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple, Type, TypeVar, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
    model_validator,
)

ObjectT = TypeVar("ObjectT", bound="MaxObject")


class MaxObject(BaseModel):
    """Base class for lenient, immutable API objects."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _coerce_mapping(cls, data: Any) -> Any:
        """Treat any non-mapping input as an empty object."""
        if isinstance(data, cls) or isinstance(data, dict):
            return data
        if isinstance(data, Mapping):
            return dict(data)
        return {}

    @field_validator("*", mode="wrap")
    @classmethod
    def _fallback_to_default(cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo) -> Any:
        """Replace an invalid field value with the field's default."""
        try:
            return handler(value)
        except ValidationError:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)

    @classmethod
    def from_dict(cls: Type[ObjectT], data: Any) -> ObjectT:
        """Decode a raw API mapping.  Total: never raises on malformed input."""
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the raw API shape (unknown keys are not kept)."""
        return self.model_dump(by_alias=True)


# ── User ─────────────────────────────────────────────────────────────────────


class User(MaxObject):
    """A MAX user or bot."""

    user_id: int = 0
    name: str = ""
    username: str = ""
    is_bot: bool = False
    last_activity_time: int = 0  # epoch milliseconds

    @property
    def last_activity_at(self) -> datetime:
        return datetime.fromtimestamp(self.last_activity_time / 1000, tz=timezone.utc)

    @property
    def link(self) -> str:
        return f"max://max.ru/{self.username}"

    def is_active(self, minutes: int = 5) -> bool:
        """Return True if the user was active within the last *minutes*."""
        now_ms = int(time.time() * 1000)
        return (now_ms - self.last_activity_time) < minutes * 60 * 1000


# ── Chat ─────────────────────────────────────────────────────────────────────


class ChatType(str, Enum):
    PRIVATE = "private"
    GROUP = "group"
    CHANNEL = "channel"
    SUPERGROUP = "supergroup"
    UNKNOWN = "unknown"


class Chat(MaxObject):
    """A MAX chat (dialog, group or channel).

    ``type`` is kept as the raw string; :attr:`chat_type` classifies it.
    The ``is_*`` predicates compare the raw string, so they are exclusive only
    for well-formed input.
    """

    chat_id: str = ""
    type: str = ""
    title: str = ""
    description: Optional[str] = None
    photo: Optional[Union[str, Dict[str, Any]]] = None
    permissions: Dict[str, bool] = Field(default_factory=dict)
    slow_mode_delay: Optional[int] = None
    invite_link: Optional[str] = None
    pinned_message_id: Optional[int] = None
    sticker_set_name: Optional[str] = None
    can_set_sticker_set: Optional[bool] = None

    @field_validator("permissions", mode="before")
    @classmethod
    def _keep_bool_permissions(cls, value: Any) -> Any:
        """Drop individual non-boolean flags instead of the whole mapping."""
        if not isinstance(value, Mapping):
            return value
        return {str(key): flag for key, flag in value.items() if isinstance(flag, bool)}

    @property
    def chat_type(self) -> ChatType:
        try:
            return ChatType(self.type)
        except ValueError:
            return ChatType.UNKNOWN

    def is_private(self) -> bool:
        return self.type == ChatType.PRIVATE.value

    def is_group(self) -> bool:
        return self.type == ChatType.GROUP.value

    def is_channel(self) -> bool:
        return self.type == ChatType.CHANNEL.value

    def is_supergroup(self) -> bool:
        return self.type == ChatType.SUPERGROUP.value

    def has_photo(self) -> bool:
        return self.photo is not None

    def has_description(self) -> bool:
        return bool(self.description)

    def has_pinned_message(self) -> bool:
        return self.pinned_message_id is not None

    def has_invite_link(self) -> bool:
        return self.invite_link is not None

    def has_slow_mode(self) -> bool:
        return self.slow_mode_delay is not None and self.slow_mode_delay > 0

    def permission(self, key: str) -> bool:
        """Return the permission flag for *key*; unknown keys are False."""
        return self.permissions.get(key, False)

    def can_send_messages(self) -> bool:
        return self.permission("can_send_messages")

    def can_send_media_messages(self) -> bool:
        return self.permission("can_send_media_messages")

    def can_send_polls(self) -> bool:
        return self.permission("can_send_polls")

    def can_send_other_messages(self) -> bool:
        return self.permission("can_send_other_messages")

    def can_add_web_page_previews(self) -> bool:
        return self.permission("can_add_web_page_previews")


# ── Message ──────────────────────────────────────────────────────────────────


class Message(MaxObject):
    """A MAX message.

    Nested ``from``/``chat``/``via_bot``/``reply_to_message`` objects are only
    built when their key is present (and not ``null``); a present value of the
    wrong shape still yields an all-default object.
    """

    message_id: int = 0
    from_field: Optional[User] = Field(None, alias="from")
    chat: Optional[Chat] = None
    date: int = 0  # epoch seconds
    text: Optional[str] = None
    attachments: List[Dict[str, Any]] = Field(default_factory=list)
    reply_to_message: Optional[Message] = None
    edit_date: Optional[int] = None
    author_signature: Optional[str] = None
    forward_signature: Optional[str] = None
    forward_date: Optional[int] = None
    is_automatic_forward: Optional[bool] = None
    via_bot: Optional[User] = None
    media_group_id: Optional[str] = None
    entities: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("attachments", "entities", mode="before")
    @classmethod
    def _keep_mapping_items(cls, value: Any) -> Any:
        """Drop individual non-object items instead of the whole list."""
        if not isinstance(value, list):
            return value
        return [dict(item) for item in value if isinstance(item, Mapping)]

    @property
    def sent_at(self) -> datetime:
        return datetime.fromtimestamp(self.date, tz=timezone.utc)

    # -- presence predicates --------------------------------------------

    def is_text(self) -> bool:
        return bool(self.text)

    def is_reply(self) -> bool:
        return self.reply_to_message is not None

    def is_edited(self) -> bool:
        return self.edit_date is not None

    def is_forward(self) -> bool:
        return self.forward_date is not None

    def has_media_group(self) -> bool:
        return self.media_group_id is not None

    # -- attachments ----------------------------------------------------

    def has_attachments(self) -> bool:
        return bool(self.attachments)

    def attachments_count(self) -> int:
        return len(self.attachments)

    def get_attachment_by_type(self, attachment_type: str) -> Optional[Dict[str, Any]]:
        """Return the first attachment of *attachment_type*, in input order."""
        for attachment in self.attachments:
            if attachment.get("type", "") == attachment_type:
                return attachment
        return None

    def get_attachments_by_type(self, attachment_type: str) -> List[Dict[str, Any]]:
        return [a for a in self.attachments if a.get("type", "") == attachment_type]

    def has_attachment_type(self, attachment_type: str) -> bool:
        return self.get_attachment_by_type(attachment_type) is not None

    # -- age ------------------------------------------------------------

    def age(self) -> int:
        """Seconds elapsed since the message was sent."""
        return int(time.time()) - self.date

    def is_old(self, threshold_seconds: int = 3600) -> bool:
        return self.age() > threshold_seconds

    def formatted_age(self) -> str:
        age = self.age()
        if age < 60:
            return f"{age} sec ago"
        if age < 3600:
            return f"{age // 60} min ago"
        if age < 86400:
            return f"{age // 3600} h ago"
        return f"{age // 86400} d ago"


# ── Update ───────────────────────────────────────────────────────────────────


class UpdateType(str, Enum):
    """Kinds of inbound event an :class:`Update` can carry."""

    MESSAGE = "message"
    EDITED_MESSAGE = "edited_message"
    CHANNEL_POST = "channel_post"
    EDITED_CHANNEL_POST = "edited_channel_post"
    CALLBACK_QUERY = "callback_query"
    CHAT_MEMBER = "chat_member"
    CHAT_JOIN_REQUEST = "chat_join_request"
    UNKNOWN = "unknown"


# First populated variant wins when a payload carries several.
UPDATE_PRIORITY: Tuple[UpdateType, ...] = (
    UpdateType.MESSAGE,
    UpdateType.EDITED_MESSAGE,
    UpdateType.CHANNEL_POST,
    UpdateType.EDITED_CHANNEL_POST,
    UpdateType.CALLBACK_QUERY,
    UpdateType.CHAT_MEMBER,
    UpdateType.CHAT_JOIN_REQUEST,
)

MESSAGE_VARIANTS: Tuple[UpdateType, ...] = UPDATE_PRIORITY[:4]


class UpdateEvent(NamedTuple):
    """The resolved variant of an update: its type tag and payload.

    ``payload`` is a :class:`Message` for the four message-bearing variants,
    the raw mapping for the others, and ``None`` for ``UNKNOWN``.
    """

    type: UpdateType
    payload: Union[Message, Dict[str, Any], None]


class Update(MaxObject):
    """An inbound event envelope (webhook body or poll result item).

    At most one variant is expected to be populated.  Use :meth:`event` or
    :meth:`resolved_type` to branch on it; inputs carrying several variants
    resolve to the earliest one in :data:`UPDATE_PRIORITY`.
    """

    update_id: int = 0
    message: Optional[Message] = None
    edited_message: Optional[Message] = None
    channel_post: Optional[Message] = None
    edited_channel_post: Optional[Message] = None
    callback_query: Optional[Dict[str, Any]] = None
    chat_member: Optional[Dict[str, Any]] = None
    chat_join_request: Optional[Dict[str, Any]] = None

    def variant(self, update_type: UpdateType) -> Union[Message, Dict[str, Any], None]:
        """Return the payload stored for *update_type* (``None`` if absent)."""
        if update_type is UpdateType.UNKNOWN:
            return None
        return getattr(self, update_type.value)

    def populated_types(self) -> List[UpdateType]:
        """All populated variants, in priority order."""
        return [t for t in UPDATE_PRIORITY if self.variant(t) is not None]

    def event(self) -> UpdateEvent:
        for update_type in UPDATE_PRIORITY:
            payload = self.variant(update_type)
            if payload is not None:
                return UpdateEvent(update_type, payload)
        return UpdateEvent(UpdateType.UNKNOWN, None)

    def resolved_type(self) -> UpdateType:
        return self.event().type

    # -- variant predicates ---------------------------------------------

    def is_message(self) -> bool:
        return self.message is not None

    def is_edited_message(self) -> bool:
        return self.edited_message is not None

    def is_channel_post(self) -> bool:
        return self.channel_post is not None

    def is_edited_channel_post(self) -> bool:
        return self.edited_channel_post is not None

    def is_callback_query(self) -> bool:
        return self.callback_query is not None

    def is_chat_member(self) -> bool:
        return self.chat_member is not None

    def is_chat_join_request(self) -> bool:
        return self.chat_join_request is not None

    # -- message accessors ----------------------------------------------

    def main_message(self) -> Optional[Message]:
        """First present of message, edited_message, channel_post, edited_channel_post."""
        for update_type in MESSAGE_VARIANTS:
            message = self.variant(update_type)
            if message is not None:
                return message
        return None

    def chat_id(self) -> Optional[str]:
        """Chat ID of the main message.

        Does not look at a callback query's message; use :meth:`callback_chat`.
        """
        message = self.main_message()
        if message is None or message.chat is None:
            return None
        return message.chat.chat_id

    def user_id(self) -> Optional[int]:
        """Sender ID of the main message (see :meth:`callback_user` for callbacks)."""
        message = self.main_message()
        if message is None or message.from_field is None:
            return None
        return message.from_field.user_id

    def text(self) -> Optional[str]:
        message = self.main_message()
        return message.text if message is not None else None

    # -- callback accessors ---------------------------------------------

    def _callback(self) -> Optional[Dict[str, Any]]:
        if self.resolved_type() is not UpdateType.CALLBACK_QUERY:
            return None
        return self.callback_query

    def callback_data(self) -> Optional[str]:
        callback = self._callback()
        if callback is None or callback.get("data") is None:
            return None
        return str(callback["data"])

    def callback_id(self) -> Optional[str]:
        callback = self._callback()
        if callback is None or callback.get("id") is None:
            return None
        return str(callback["id"])

    def callback_user(self) -> Optional[User]:
        callback = self._callback()
        if callback is None or callback.get("from") is None:
            return None
        return User.from_dict(callback["from"])

    def callback_message(self) -> Optional[Message]:
        callback = self._callback()
        if callback is None or callback.get("message") is None:
            return None
        return Message.from_dict(callback["message"])

    def callback_chat(self) -> Optional[Chat]:
        message = self.callback_message()
        return message.chat if message is not None else None
