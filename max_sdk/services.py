"""Per-resource endpoint facades built on :class:`~max_sdk.transport.Transport`.

Each service is a thin wrapper: it composes a path template, delegates to
:meth:`Transport.execute` and returns the decoded body (or a model decoded
from it).  Errors propagate as :class:`~max_sdk.exceptions.APIError`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from max_sdk.exceptions import APIError
from max_sdk.models import Chat, Message, Update, User
from max_sdk.transport import Transport

logger = logging.getLogger(__name__)


class BaseService:
    """Shared verb helpers bound to one transport."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._transport.execute("GET", path, query=params)

    def _post(self, path: str, data: Optional[Dict[str, Any]] = None, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._transport.execute("POST", path, query=params, body=data)

    def _put(self, path: str, data: Optional[Dict[str, Any]] = None, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._transport.execute("PUT", path, query=params, body=data)

    def _patch(self, path: str, data: Optional[Dict[str, Any]] = None, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._transport.execute("PATCH", path, query=params, body=data)

    def _delete(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._transport.execute("DELETE", path, query=params)


# ── Bot ──────────────────────────────────────────────────────────────────────


class BotService(BaseService):
    """Information about the bot itself (``/me``)."""

    def get_info(self) -> Dict[str, Any]:
        return self._get("/me")

    def get_user(self) -> User:
        """Return the bot's own profile as a :class:`User`."""
        return User.from_dict(self.get_info())

    def update(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Edit the bot profile (name, description, commands, ...)."""
        return self._patch("/me", data)


# ── Chats ────────────────────────────────────────────────────────────────────


class ChatsService(BaseService):
    """Group chats and dialogs the bot participates in."""

    def get_all(self, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._get("/chats", params)

    def get_by_link(self, link: str) -> Dict[str, Any]:
        return self._get("/chats/link", {"link": link})

    def get_info(self, chat_id: str) -> Dict[str, Any]:
        return self._get(f"/chats/{chat_id}")

    def get_chat(self, chat_id: str) -> Chat:
        return Chat.from_dict(self.get_info(chat_id))

    def update(self, chat_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._patch(f"/chats/{chat_id}", data)

    def set_title(self, chat_id: str, title: str) -> Dict[str, Any]:
        return self.update(chat_id, {"title": title})

    def delete(self, chat_id: str) -> Dict[str, Any]:
        return self._delete(f"/chats/{chat_id}")

    def send_action(self, chat_id: str, action: str) -> Dict[str, Any]:
        """Show an activity indicator such as ``typing_on`` or ``sending_photo``."""
        return self._post(f"/chats/{chat_id}/actions", {"action": action})

    def get_pinned_message(self, chat_id: str) -> Dict[str, Any]:
        return self._get(f"/chats/{chat_id}/pinned_message")

    def pin_message(self, chat_id: str, message_id: str, notify: Optional[bool] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"message_id": message_id}
        if notify is not None:
            payload["notify"] = notify
        return self._put(f"/chats/{chat_id}/pinned_message", payload)

    def unpin_message(self, chat_id: str) -> Dict[str, Any]:
        return self._delete(f"/chats/{chat_id}/pinned_message")

    def get_membership(self, chat_id: str) -> Dict[str, Any]:
        return self._get(f"/chats/{chat_id}/membership")

    def leave(self, chat_id: str) -> Dict[str, Any]:
        return self._delete(f"/chats/{chat_id}/membership")

    def get_admins(self, chat_id: str) -> Dict[str, Any]:
        return self._get(f"/chats/{chat_id}/admins")

    def add_admin(self, chat_id: str, user_id: int) -> Dict[str, Any]:
        return self._post(f"/chats/{chat_id}/admins", {"user_id": user_id})

    def remove_admin(self, chat_id: str, user_id: int) -> Dict[str, Any]:
        return self._delete(f"/chats/{chat_id}/admins", {"user_id": user_id})

    def get_members(self, chat_id: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._get(f"/chats/{chat_id}/members", params)

    def add_members(self, chat_id: str, user_ids: Sequence[int]) -> Dict[str, Any]:
        return self._post(f"/chats/{chat_id}/members", {"user_ids": list(user_ids)})

    def remove_member(self, chat_id: str, user_id: int, block: Optional[bool] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"user_id": user_id}
        if block is not None:
            params["block"] = block
        return self._delete(f"/chats/{chat_id}/members", params)


# ── Messages ─────────────────────────────────────────────────────────────────


class MessagesService(BaseService):
    """Sending, editing and reading messages, plus inline-keyboard builders."""

    def get_messages(self, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._get("/messages", params)

    def send(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._post("/messages", data)

    def send_text(self, chat_id: str, text: str, **options: Any) -> Dict[str, Any]:
        return self.send({"chat_id": chat_id, "text": text, **options})

    def send_markdown(self, chat_id: str, text: str, **options: Any) -> Dict[str, Any]:
        return self.send({"chat_id": chat_id, "text": text, "format": "markdown", **options})

    def send_html(self, chat_id: str, text: str, **options: Any) -> Dict[str, Any]:
        return self.send({"chat_id": chat_id, "text": text, "format": "html", **options})

    def send_with_keyboard(
        self,
        chat_id: str,
        text: str,
        buttons: List[List[Dict[str, Any]]],
        **options: Any,
    ) -> Dict[str, Any]:
        """Send *text* with an ``inline_keyboard`` attachment built from *buttons* rows."""
        keyboard = {"type": "inline_keyboard", "payload": {"buttons": buttons}}
        return self.send({"chat_id": chat_id, "text": text, "attachments": [keyboard], **options})

    def edit(self, message_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._put(f"/messages/{message_id}", data)

    def delete(self, message_id: str) -> Dict[str, Any]:
        return self._delete(f"/messages/{message_id}")

    def get_by_id(self, message_id: str) -> Dict[str, Any]:
        return self._get(f"/messages/{message_id}")

    def get_message(self, message_id: str) -> Message:
        return Message.from_dict(self.get_by_id(message_id))

    def get_video_info(self, message_id: str) -> Dict[str, Any]:
        return self._get(f"/messages/{message_id}/video")

    def answer_callback(self, callback_id: str, text: str) -> Dict[str, Any]:
        """Acknowledge a callback button press, showing *text* to the user."""
        return self._post(f"/messages/{callback_id}/callback", {"text": text})

    # -- button builders ------------------------------------------------

    @staticmethod
    def callback_button(text: str, payload: str) -> Dict[str, Any]:
        return {"type": "callback", "text": text, "payload": payload}

    @staticmethod
    def link_button(text: str, url: str) -> Dict[str, Any]:
        return {"type": "link", "text": text, "url": url}

    @staticmethod
    def contact_button(text: str) -> Dict[str, Any]:
        return {"type": "request_contact", "text": text}

    @staticmethod
    def location_button(text: str) -> Dict[str, Any]:
        return {"type": "request_geo_location", "text": text}

    @staticmethod
    def app_button(text: str, app_id: str) -> Dict[str, Any]:
        return {"type": "open_app", "text": text, "app_id": app_id}

    @staticmethod
    def message_button(text: str, message: str) -> Dict[str, Any]:
        return {"type": "message", "text": text, "message": message}


# ── Subscriptions ────────────────────────────────────────────────────────────


class SubscriptionsService(BaseService):
    """Webhook subscriptions and long-poll update retrieval."""

    def get_subscriptions(self) -> Dict[str, Any]:
        return self._get("/subscriptions")

    def subscribe(self, webhook_url: str, **options: Any) -> Dict[str, Any]:
        return self._post("/subscriptions", {"url": webhook_url, **options})

    def unsubscribe(self) -> Dict[str, Any]:
        return self._delete("/subscriptions")

    def update_webhook_url(self, webhook_url: str) -> Dict[str, Any]:
        """Drop existing subscriptions, then subscribe *webhook_url*."""
        self.unsubscribe()
        return self.subscribe(webhook_url)

    def get_updates(self, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._get("/subscriptions/updates", params)

    def get_recent_updates(self, limit: int = 100, offset: int = 0) -> Dict[str, Any]:
        return self.get_updates({"limit": limit, "offset": offset})

    def get_updates_since(self, timestamp: int, limit: int = 100) -> Dict[str, Any]:
        return self.get_updates({"since": timestamp, "limit": limit})

    def iter_updates(self, limit: int = 100, offset: int = 0) -> List[Update]:
        """Fetch recent updates and decode each item into an :class:`Update`."""
        body = self.get_recent_updates(limit, offset)
        raw_updates = body.get("updates") if isinstance(body, dict) else None
        if not isinstance(raw_updates, list):
            return []
        return [Update.from_dict(raw) for raw in raw_updates]

    def get_unread_updates_count(self) -> int:
        updates = self.get_updates({"unread_only": True}).get("updates")
        return len(updates) if isinstance(updates, list) else 0

    def get_last_update_time(self) -> Optional[int]:
        """``update_id`` of the most recent update, or ``None`` when there is none."""
        updates = self.get_recent_updates(1).get("updates")
        if not isinstance(updates, list) or not updates or not isinstance(updates[0], dict):
            return None
        return updates[0].get("update_id")

    def mark_updates_as_read(self, update_ids: Sequence[int]) -> Dict[str, Any]:
        return self._post("/subscriptions/updates/read", {"update_ids": list(update_ids)})

    def _active_subscriptions(self) -> List[Dict[str, Any]]:
        subscriptions = self.get_subscriptions().get("subscriptions")
        return subscriptions if isinstance(subscriptions, list) else []

    def get_subscriptions_count(self) -> int:
        return len(self._active_subscriptions())

    def has_active_subscriptions(self) -> bool:
        return bool(self._active_subscriptions())

    def get_webhook_info(self) -> Optional[Dict[str, Any]]:
        """Return the first subscription, or ``None`` if there is none."""
        subscriptions = self._active_subscriptions()
        return subscriptions[0] if subscriptions else None

    def get_active_webhook_url(self) -> Optional[str]:
        info = self.get_webhook_info()
        return info.get("url") if info else None

    def is_webhook_active(self) -> bool:
        info = self.get_webhook_info()
        return info is not None and info.get("status", "") == "active"


# ── Uploads ──────────────────────────────────────────────────────────────────

_FILE_TYPES: Dict[str, frozenset[str]] = {
    "image": frozenset({"jpg", "jpeg", "png", "gif", "bmp", "webp"}),
    "video": frozenset({"mp4", "avi", "mov", "wmv", "flv", "webm"}),
    "audio": frozenset({"mp3", "wav", "ogg", "flac", "aac"}),
    "document": frozenset({"pdf", "doc", "docx", "txt", "rtf", "odt"}),
}


class UploadService(BaseService):
    """Two-step uploads (request an upload URL, then POST the file) and downloads."""

    def get_url(self, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._post("/upload", options or {})

    def get_upload_url(self, file_type: str, filename: str, size: int) -> Dict[str, Any]:
        return self.get_url({"type": file_type, "filename": filename, "size": size})

    def get_image_upload_url(self, filename: str, size: int) -> Dict[str, Any]:
        return self.get_upload_url("image", filename, size)

    def get_video_upload_url(self, filename: str, size: int) -> Dict[str, Any]:
        return self.get_upload_url("video", filename, size)

    def get_audio_upload_url(self, filename: str, size: int) -> Dict[str, Any]:
        return self.get_upload_url("audio", filename, size)

    def get_document_upload_url(self, filename: str, size: int) -> Dict[str, Any]:
        return self.get_upload_url("document", filename, size)

    def get_custom_upload_url(self, file_type: str, filename: str, size: int) -> Dict[str, Any]:
        return self.get_upload_url(file_type, filename, size)

    @staticmethod
    def detect_file_type(filename: str) -> str:
        """Guess the upload type from the file extension (``file`` if unknown)."""
        extension = Path(filename).suffix.lower().lstrip(".")
        for file_type, extensions in _FILE_TYPES.items():
            if extension in extensions:
                return file_type
        return "file"

    def upload_file(self, file_path: str | Path, file_type: str = "auto") -> Any:
        """Upload a local file and return the upload endpoint's response.

        Raises:
            FileNotFoundError: If *file_path* does not exist.
            APIError: If no upload URL is returned or the upload fails.
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")

        resolved_type = self.detect_file_type(path.name) if file_type == "auto" else file_type
        info = self.get_upload_url(resolved_type, path.name, path.stat().st_size)
        upload_url = info.get("upload_url")
        if not upload_url:
            raise APIError("Upload URL not received from API")

        logger.debug("Uploading file", extra={"file_name": path.name, "upload_type": resolved_type})
        return self.upload_to_url(upload_url, path)

    def upload_to_url(self, upload_url: str, file_path: str | Path) -> Any:
        return self._transport.upload(upload_url, file_path)

    def get_file_info(self, file_id: str) -> Dict[str, Any]:
        return self._get(f"/files/{file_id}")

    def download_file(self, file_id: str, save_path: str | Path) -> Path:
        """Download *file_id* to *save_path* and return the written path."""
        download_url = self.get_file_info(file_id).get("download_url")
        if not download_url:
            raise APIError("Download URL not available")
        target = Path(save_path)
        target.write_bytes(self._transport.download(download_url))
        return target

    def get_file_size(self, file_id: str) -> int:
        return self.get_file_info(file_id).get("size", 0)

    def get_file_mime_type(self, file_id: str) -> str:
        return self.get_file_info(file_id).get("mime_type", "")

    def is_image(self, file_id: str) -> bool:
        return self.get_file_mime_type(file_id).startswith("image/")

    def is_video(self, file_id: str) -> bool:
        return self.get_file_mime_type(file_id).startswith("video/")

    def is_audio(self, file_id: str) -> bool:
        return self.get_file_mime_type(file_id).startswith("audio/")
