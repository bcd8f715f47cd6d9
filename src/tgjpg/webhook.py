from __future__ import annotations

import hmac
import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException

from tgjpg.config import Settings
from tgjpg.dedupe import UpdateDeduper
from tgjpg.delivery import DeliveryOrchestrator, Exhausted
from tgjpg.inline_query import build_inline_results
from tgjpg.local_finder import AssetMatch, CorpusReadError, LocalImageFinder
from tgjpg.local_mode import LocalModeStore
from tgjpg.query import Query, parse_image_query
from tgjpg.telegram import parse_telegram_update, strip_bot_suffix
from tgjpg.telegram_client import (
    TelegramClient,
    TelegramDeliverer,
    TelegramSendError,
)
from tgjpg.types import IncomingMessage, InlineQueryEvent, dedupe_key

logger = logging.getLogger(__name__)

LOCAL_COMMAND = "/local"
LOCAL_USAGE_TEXT = "Usage: /local on | off | status"


class WebhookHandler:
    def __init__(
        self,
        *,
        settings: Settings,
        telegram_client: TelegramClient,
        orchestrator: DeliveryOrchestrator,
        local_finder: LocalImageFinder,
        local_modes: LocalModeStore,
        deduper: UpdateDeduper,
    ) -> None:
        self._settings = settings
        self._telegram_client = telegram_client
        self._orchestrator = orchestrator
        self._local_finder = local_finder
        self._local_modes = local_modes
        self._deduper = deduper

    async def handle_webhook(
        self, payload: dict[str, object], background_tasks: BackgroundTasks
    ) -> dict[str, str]:
        parsed = parse_telegram_update(payload)
        if parsed is None:
            logger.debug("unsupported_update top_level_key_count=%d", len(payload))
            return {"status": "ignored", "reason": "unsupported_event"}

        if not self._deduper.mark_once(dedupe_key(parsed)):
            return {"status": "ignored", "reason": "duplicate"}

        if isinstance(parsed, InlineQueryEvent):
            background_tasks.add_task(self.handle_inline_query, parsed)
            return {"status": "accepted", "reason": "inline_queued"}

        if not is_authorized_chat(parsed, self._settings):
            logger.info(
                "ignoring_unauthorized_chat sender=%s chat_id=%s",
                parsed.sender,
                parsed.chat_id,
            )
            return {"status": "ignored", "reason": "unauthorized"}

        local_argument = parse_local_command(
            parsed.text, self._settings.telegram_bot_username
        )
        if local_argument is not None:
            reply = self.apply_local_command(parsed.chat_id, local_argument)
            background_tasks.add_task(self._safe_send_text, parsed, reply)
            return {"status": "accepted", "reason": "local_command"}

        query = parse_image_query(parsed.text)
        if query is None:
            return {"status": "ignored", "reason": "not_image_query"}

        background_tasks.add_task(self.handle_image_query, parsed, query)
        return {"status": "accepted", "reason": "image_queued"}

    def apply_local_command(self, chat_id: str, argument: str) -> str:
        if argument in {"on", "enable"}:
            self._local_modes.set_enabled(chat_id, True)
            logger.info("local_mode_changed chat_id=%s enabled=true", chat_id)
            return "Local mode enabled."
        if argument in {"off", "disable"}:
            self._local_modes.set_enabled(chat_id, False)
            logger.info("local_mode_changed chat_id=%s enabled=false", chat_id)
            return "Local mode disabled."
        if argument in {"", "status"}:
            state = "on" if self._local_modes.is_enabled(chat_id) else "off"
            return f"Local mode is {state}."
        return LOCAL_USAGE_TEXT

    async def handle_image_query(
        self, message: IncomingMessage, query: Query
    ) -> None:
        deliverer = TelegramDeliverer(
            client=self._telegram_client, chat_id=message.chat_id
        )
        try:
            result = await self._orchestrator.resolve_and_deliver(
                query.text,
                query.is_animated,
                self._local_modes.is_enabled(message.chat_id),
                deliverer,
            )
        except CorpusReadError:
            logger.exception(
                "corpus_read_error chat_id=%s query=%r", message.chat_id, query.text
            )
            return
        except Exception:
            logger.exception(
                "unexpected_image_query_error chat_id=%s query=%r",
                message.chat_id,
                query.text,
            )
            return

        if isinstance(result, Exhausted):
            # Unmatched text stays silent in chat.
            logger.info(
                "image_query_exhausted chat_id=%s query=%r reason=%s attempts=%d",
                message.chat_id,
                query.text,
                result.reason,
                len(result.attempts),
            )
            return

        logger.info(
            "image_query_delivered chat_id=%s query=%r attempts=%d",
            message.chat_id,
            query.text,
            len(result.attempts),
        )

    async def handle_inline_query(self, event: InlineQueryEvent) -> None:
        base_url = self._settings.bot_assets_public_base_url
        results: list[dict[str, Any]] = []
        if event.query and base_url:
            results = build_inline_results(
                self._inline_matches(event),
                query=event.query,
                assets_dir=self._local_finder.assets_dir,
                base_url=base_url,
                max_results=self._settings.bot_inline_max_results,
            )

        try:
            await self._telegram_client.answer_inline_query(
                inline_query_id=event.query_id,
                results=results,
                cache_time=self._settings.bot_inline_cache_seconds,
            )
        except TelegramSendError:
            logger.exception(
                "inline_answer_failed sender=%s query_id=%s",
                event.sender,
                event.query_id,
            )

    def _inline_matches(self, event: InlineQueryEvent) -> list[AssetMatch]:
        try:
            return self._local_finder.find_matches(event.query)
        except CorpusReadError:
            logger.exception("inline_corpus_read_error query=%r", event.query)
            return []

    async def _safe_send_text(self, message: IncomingMessage, text: str) -> None:
        try:
            await self._telegram_client.send_text(
                chat_id=message.chat_id, message=text
            )
        except TelegramSendError:
            logger.exception(
                "telegram_send_text_failed sender=%s chat_id=%s",
                message.sender,
                message.chat_id,
            )


def parse_local_command(text: str, bot_username: str | None) -> str | None:
    parts = text.strip().split()
    if not parts:
        return None

    command = strip_bot_suffix(parts[0].lower(), bot_username)
    if command != LOCAL_COMMAND:
        return None
    return parts[1].lower() if len(parts) > 1 else ""


def is_authorized_chat(message: IncomingMessage, settings: Settings) -> bool:
    if not settings.bot_allowed_chat_ids:
        return True
    return (
        message.chat_id in settings.bot_allowed_chat_ids
        or message.sender in settings.bot_allowed_chat_ids
    )


def build_router(handler: WebhookHandler, settings: Settings) -> APIRouter:
    router = APIRouter()

    @router.post("/webhook/telegram")
    async def telegram_webhook(
        payload: dict[str, object],
        background_tasks: BackgroundTasks,
        x_telegram_bot_api_secret_token: str | None = Header(default=None),
    ) -> dict[str, str]:
        expected = settings.telegram_webhook_secret
        if expected and not hmac.compare_digest(
            x_telegram_bot_api_secret_token or "", expected
        ):
            raise HTTPException(status_code=401, detail="invalid secret token")
        return await handler.handle_webhook(payload, background_tasks)

    return router
