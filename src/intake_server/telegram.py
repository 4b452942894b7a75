"""TelegramTransport — :class:`MessageTransport` over the Telegram Bot API.

Inbound updates arrive either through the webhook route or the long-polling
loop (``poll_forever``); both paths go through :meth:`process_update`, which
parses the update and awaits the registered handler.

Only private chats with human users are handled.  Callback-query taps on
inline buttons are turned into text events carrying the button payload, so
a button behaves exactly as if the subject had typed its command.
"""

from __future__ import annotations

import asyncio
import hmac
import logging
from typing import Any

import httpx

from intake_flow.errors import StorageError
from intake_flow.interfaces import DocumentHandler, MessageTransport, TextHandler
from intake_flow.models.messages import (
    DocumentEvent,
    OutboundMessage,
    Subject,
    TextEvent,
)

logger = logging.getLogger(__name__)

# Back-off after a failed getUpdates call, capped
_POLL_BACKOFF_START = 1.0
_POLL_BACKOFF_MAX = 60.0

_ALLOWED_UPDATES = ["message", "callback_query"]


class TelegramAPIError(Exception):
    """The Bot API answered ``ok: false`` or could not be reached."""


class TelegramTransport(MessageTransport):
    """Telegram Bot API adapter.

    Args:
        token: bot token from @BotFather.
        api_base: Bot API root, overridable for a local Bot API server.
        webhook_secret: value Telegram echoes in
            ``X-Telegram-Bot-Api-Secret-Token``; None disables the check.
        client: optional pre-built ``httpx.AsyncClient`` (tests).
        poll_timeout: long-poll timeout in seconds for ``getUpdates``.
    """

    def __init__(
        self,
        token: str,
        *,
        api_base: str = "https://api.telegram.org",
        webhook_secret: str | None = None,
        client: httpx.AsyncClient | None = None,
        poll_timeout: int = 30,
    ) -> None:
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._webhook_secret = webhook_secret
        self._poll_timeout = poll_timeout
        self._client = client or httpx.AsyncClient(timeout=poll_timeout + 10)
        self._text_handler: TextHandler | None = None
        self._document_handler: DocumentHandler | None = None
        self._update_tasks: set[asyncio.Task] = set()

    # ==================================================================
    # MessageTransport
    # ==================================================================

    def on_text_message(self, handler: TextHandler) -> None:
        self._text_handler = handler

    def on_document_message(self, handler: DocumentHandler) -> None:
        self._document_handler = handler

    async def send(self, subject_id: str, message: OutboundMessage) -> None:
        payload: dict[str, Any] = {"chat_id": subject_id, "text": message.text}
        if message.buttons:
            # One button per row
            payload["reply_markup"] = {
                "inline_keyboard": [
                    [{"text": b.label, "callback_data": b.payload}]
                    for b in message.buttons
                ],
            }
        await self._call("sendMessage", payload)

    async def download(self, file_ref: str) -> bytes:
        """Resolve ``file_ref`` (a Telegram ``file_id``) and fetch its bytes."""
        try:
            info = await self._call("getFile", {"file_id": file_ref})
            file_path = info.get("file_path")
            if not file_path:
                raise TelegramAPIError(f"getFile returned no file_path for {file_ref}")
            url = f"{self._api_base}/file/bot{self._token}/{file_path}"
            response = await self._client.get(url)
            response.raise_for_status()
        except (TelegramAPIError, httpx.HTTPError) as exc:
            raise StorageError(f"Telegram download failed: {exc}") from exc
        return response.content

    # ==================================================================
    # Webhook
    # ==================================================================

    def verify_secret(self, header_value: str | None) -> bool:
        """Check the webhook secret header.  Always true when none is set."""
        if not self._webhook_secret:
            return True
        if not header_value:
            return False
        return hmac.compare_digest(header_value, self._webhook_secret)

    async def set_webhook(self, url: str) -> None:
        payload: dict[str, Any] = {"url": url, "allowed_updates": _ALLOWED_UPDATES}
        if self._webhook_secret:
            payload["secret_token"] = self._webhook_secret
        await self._call("setWebhook", payload)
        logger.info("Telegram webhook set to %s", url)

    async def delete_webhook(self) -> None:
        await self._call("deleteWebhook", {"drop_pending_updates": False})

    # ==================================================================
    # Inbound updates
    # ==================================================================

    async def parse_update(
        self, update: dict[str, Any]
    ) -> TextEvent | DocumentEvent | None:
        """Convert one update into an event, or None if it should be ignored."""
        callback = update.get("callback_query")
        if callback is not None:
            return await self._parse_callback(callback)

        message = update.get("message")
        if not message:
            logger.debug("Update %s has no message, ignoring", update.get("update_id"))
            return None

        subject = self._subject_of(message.get("from") or {}, message.get("chat") or {})
        if subject is None:
            return None

        document = message.get("document")
        if document:
            return DocumentEvent(
                subject=subject,
                file_name=document.get("file_name") or "document",
                file_size=document.get("file_size") or 0,
                mime_type=document.get("mime_type"),
                file_ref=document["file_id"],
            )

        text = message.get("text")
        if text is None:
            logger.debug("Ignoring non-text message from %s", subject.subject_id)
            return None
        return TextEvent(subject=subject, text=text)

    async def process_update(self, update: dict[str, Any]) -> None:
        """Parse ``update`` and await the matching handler."""
        event = await self.parse_update(update)
        if isinstance(event, DocumentEvent):
            if self._document_handler is None:
                logger.warning("No document handler registered; dropping update")
                return
            await self._document_handler(event)
        elif isinstance(event, TextEvent):
            if self._text_handler is None:
                logger.warning("No text handler registered; dropping update")
                return
            await self._text_handler(event)

    async def poll_forever(self) -> None:
        """Long-poll ``getUpdates`` until cancelled.

        Each update runs in its own task, so a slow subject never delays
        another.
        """
        offset: int | None = None
        backoff = _POLL_BACKOFF_START
        logger.info("Telegram long polling started")
        while True:
            payload: dict[str, Any] = {
                "timeout": self._poll_timeout,
                "allowed_updates": _ALLOWED_UPDATES,
            }
            if offset is not None:
                payload["offset"] = offset
            try:
                updates = await self._call("getUpdates", payload)
            except TelegramAPIError as exc:
                logger.warning("getUpdates failed: %s (retrying in %.0fs)", exc, backoff)
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, _POLL_BACKOFF_MAX)
                continue
            backoff = _POLL_BACKOFF_START

            for update in updates:
                offset = update["update_id"] + 1
                self._spawn(update)

    async def close(self) -> None:
        if self._update_tasks:
            await asyncio.gather(*list(self._update_tasks), return_exceptions=True)
        await self._client.aclose()

    # ==================================================================
    # Internal helpers
    # ==================================================================

    async def _call(self, method: str, payload: dict[str, Any]) -> Any:
        url = f"{self._api_base}/bot{self._token}/{method}"
        try:
            response = await self._client.post(url, json=payload)
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TelegramAPIError(f"{method} request failed: {exc}") from exc
        if not data.get("ok"):
            raise TelegramAPIError(
                f"{method} failed: {data.get('error_code')} {data.get('description')}"
            )
        return data.get("result")

    async def _parse_callback(self, callback: dict[str, Any]) -> TextEvent | None:
        try:
            await self._call("answerCallbackQuery", {"callback_query_id": callback["id"]})
        except TelegramAPIError as exc:
            logger.warning("answerCallbackQuery failed: %s", exc)

        chat = (callback.get("message") or {}).get("chat") or {}
        subject = self._subject_of(callback.get("from") or {}, chat)
        data = callback.get("data")
        if subject is None or not data:
            return None
        return TextEvent(subject=subject, text=data)

    @staticmethod
    def _subject_of(user: dict[str, Any], chat: dict[str, Any]) -> Subject | None:
        if user.get("is_bot", False):
            logger.debug("Ignoring update from bot %s", user.get("id"))
            return None
        if chat.get("type", "private") != "private":
            logger.debug("Ignoring update from %s chat %s", chat.get("type"), chat.get("id"))
            return None
        if user.get("id") is None:
            return None
        return Subject(
            subject_id=str(user["id"]),
            username=user.get("username"),
            first_name=user.get("first_name"),
            last_name=user.get("last_name"),
        )

    def _spawn(self, update: dict[str, Any]) -> None:
        task = asyncio.create_task(self._process_logged(update))
        self._update_tasks.add(task)
        task.add_done_callback(self._update_tasks.discard)

    async def _process_logged(self, update: dict[str, Any]) -> None:
        try:
            await self.process_update(update)
        except Exception:
            logger.exception("Failed to process update %s", update.get("update_id"))
