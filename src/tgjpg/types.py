from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class IncomingMessage:
    update_id: int
    chat_id: str
    sender: str
    text: str
    is_group: bool = False


@dataclass(frozen=True)
class InlineQueryEvent:
    update_id: int
    query_id: str
    sender: str
    query: str


TelegramUpdate = IncomingMessage | InlineQueryEvent


def dedupe_key(update: TelegramUpdate) -> str:
    return f"telegram:{update.update_id}"
