from __future__ import annotations

import json
import logging
import mimetypes
from pathlib import Path
from typing import Any

import httpx

from tgjpg.messaging import MediaKind, MessageSendError, Payload

logger = logging.getLogger(__name__)

_MEDIA_METHODS: dict[MediaKind, tuple[str, str]] = {
    "photo": ("sendPhoto", "photo"),
    "animation": ("sendAnimation", "animation"),
}


class TelegramSendError(MessageSendError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TelegramClient:
    def __init__(
        self,
        *,
        bot_token: str,
        http_client: httpx.AsyncClient,
        base_url: str = "https://api.telegram.org",
        timeout_seconds: float = 30.0,
    ) -> None:
        self._http_client = http_client
        self._base_url = base_url.rstrip("/")
        self._bot_token = bot_token.strip()
        self._timeout_seconds = timeout_seconds

    async def send_text(self, *, chat_id: str, message: str) -> None:
        await self._post_json(
            method="sendMessage",
            payload={"chat_id": chat_id, "text": message},
        )

    async def send_photo(self, *, chat_id: str, payload: Payload) -> None:
        await self.send_media(chat_id=chat_id, payload=payload, media_kind="photo")

    async def send_animation(self, *, chat_id: str, payload: Payload) -> None:
        await self.send_media(
            chat_id=chat_id, payload=payload, media_kind="animation"
        )

    async def send_media(
        self, *, chat_id: str, payload: Payload, media_kind: MediaKind
    ) -> None:
        method, field_name = _MEDIA_METHODS[media_kind]
        if payload.kind == "url":
            # Telegram fetches the URL itself.
            await self._post_json(
                method=method,
                payload={"chat_id": chat_id, field_name: payload.url},
            )
            return

        filename, data, content_type = _upload_parts(payload, media_kind)
        await self._post_multipart(
            method=method,
            data={"chat_id": chat_id},
            files={field_name: (filename, data, content_type)},
        )

    async def answer_inline_query(
        self,
        *,
        inline_query_id: str,
        results: list[dict[str, Any]],
        cache_time: int = 300,
    ) -> None:
        await self._post_json(
            method="answerInlineQuery",
            payload={
                "inline_query_id": inline_query_id,
                "results": results,
                "cache_time": cache_time,
            },
        )

    async def _post_json(self, *, method: str, payload: dict[str, object]) -> None:
        url = f"{self._base_url}/bot{self._bot_token}/{method}"
        try:
            response = await self._http_client.post(
                url, json=payload, timeout=self._timeout_seconds
            )
        except httpx.HTTPError as exc:
            raise TelegramSendError(
                "Telegram send failed due to network error."
            ) from exc

        _raise_for_telegram_error(response)

    async def _post_multipart(
        self,
        *,
        method: str,
        data: dict[str, str],
        files: dict[str, tuple[str, bytes, str]],
    ) -> None:
        url = f"{self._base_url}/bot{self._bot_token}/{method}"
        try:
            response = await self._http_client.post(
                url,
                data=data,
                files=files,
                timeout=self._timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise TelegramSendError(
                "Telegram send failed due to network error."
            ) from exc

        _raise_for_telegram_error(response)


class TelegramDeliverer:
    """Delivery capability bound to one chat."""

    def __init__(self, *, client: TelegramClient, chat_id: str) -> None:
        self._client = client
        self._chat_id = chat_id

    async def __call__(self, payload: Payload, media_kind: MediaKind) -> None:
        await self._client.send_media(
            chat_id=self._chat_id, payload=payload, media_kind=media_kind
        )


def _upload_parts(
    payload: Payload, media_kind: MediaKind
) -> tuple[str, bytes, str]:
    if payload.kind == "file":
        path = Path(payload.path or "")
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise TelegramSendError(f"Could not read asset {path}: {exc}") from exc
        content_type = (
            mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        )
        return path.name, data, content_type

    content_type = payload.content_type or "application/octet-stream"
    filename = _filename_for_content_type(content_type, media_kind)
    return filename, payload.data or b"", content_type


def _filename_for_content_type(content_type: str, media_kind: MediaKind) -> str:
    if "gif" in content_type:
        return "image.gif"
    if "png" in content_type:
        return "image.png"
    if "jpeg" in content_type or "jpg" in content_type:
        return "image.jpg"
    if "webp" in content_type:
        return "image.webp"
    if "mp4" in content_type:
        return "animation.mp4"
    return "animation.gif" if media_kind == "animation" else "image.jpg"


def _raise_for_telegram_error(response: httpx.Response) -> None:
    if response.status_code < 400 and _body_ok(response):
        return
    detail = response.text.strip() or "No error detail"
    if len(detail) > 240:
        detail = f"{detail[:240]}..."
    raise TelegramSendError(
        f"Telegram API send failed ({response.status_code}): {detail}",
        status_code=response.status_code,
    )


def _body_ok(response: httpx.Response) -> bool:
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return True
    if isinstance(body, dict) and body.get("ok") is False:
        logger.debug("telegram_not_ok description=%s", body.get("description"))
        return False
    return True
