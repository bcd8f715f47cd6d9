from __future__ import annotations

from typing import Any

from tgjpg.types import IncomingMessage, InlineQueryEvent, TelegramUpdate


def parse_telegram_update(payload: dict[str, Any]) -> TelegramUpdate | None:
    update = _section(payload)
    update_id = update.get("update_id")
    if not isinstance(update_id, int) or isinstance(update_id, bool):
        return None

    inline_query = _section(update.get("inline_query"))
    if inline_query:
        return _parse_inline_query(update_id, inline_query)

    message = _section(update.get("message"))
    if not message:
        return None

    text = _first_text(message, "text", "caption")
    if not text:
        return None

    from_data = _section(message.get("from"))
    chat_data = _section(message.get("chat"))
    sender_id = _telegram_id(from_data.get("id"))
    chat_id = _telegram_id(chat_data.get("id"))
    if sender_id is None or chat_id is None:
        return None

    chat_type = _first_text(chat_data, "type") or ""
    return IncomingMessage(
        update_id=update_id,
        chat_id=chat_id,
        sender=sender_id,
        text=text,
        is_group=chat_type in {"group", "supergroup"},
    )


def _parse_inline_query(
    update_id: int, inline_query: dict[str, Any]
) -> InlineQueryEvent | None:
    query_id = _first_text(inline_query, "id")
    sender_id = _telegram_id(_section(inline_query.get("from")).get("id"))
    if query_id is None or sender_id is None:
        return None

    query = inline_query.get("query")
    return InlineQueryEvent(
        update_id=update_id,
        query_id=query_id,
        sender=sender_id,
        query=query.strip() if isinstance(query, str) else "",
    )


def strip_bot_suffix(command: str, bot_username: str | None) -> str:
    """Turn "/local@my_bot" into "/local" when addressed to this bot."""
    name, _, target = command.partition("@")
    if not target:
        return name
    if bot_username and target.lower() == bot_username.lower().removeprefix("@"):
        return name
    return ""


def _section(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _first_text(data: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _telegram_id(value: object) -> str | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
