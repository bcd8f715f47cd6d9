from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from tgjpg.delivery import DEFAULT_MAX_ATTEMPTS
from tgjpg.image_search import (
    DEFAULT_SEARCH_ENDPOINT,
    DEFAULT_SEARCH_LOCALE,
    DEFAULT_SEARCH_USER_AGENT,
)

DEFAULT_ASSETS_DIR = "src/assets"
DEFAULT_TELEGRAM_API_BASE_URL = "https://api.telegram.org"


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: str
    telegram_bot_username: str | None = None
    telegram_api_base_url: str = DEFAULT_TELEGRAM_API_BASE_URL
    telegram_webhook_secret: str | None = None
    bot_assets_dir: Path = Path(DEFAULT_ASSETS_DIR)
    bot_assets_public_base_url: str | None = None
    bot_local_mode_default: bool = False
    bot_allowed_chat_ids: frozenset[str] = frozenset()
    bot_search_endpoint: str = DEFAULT_SEARCH_ENDPOINT
    bot_search_locale: str = DEFAULT_SEARCH_LOCALE
    bot_search_user_agent: str = DEFAULT_SEARCH_USER_AGENT
    bot_search_timeout_seconds: float = 15.0
    bot_download_timeout_seconds: float = 30.0
    bot_download_user_agent: str | None = None
    bot_max_delivery_attempts: int = DEFAULT_MAX_ATTEMPTS
    bot_inline_max_results: int = 10
    bot_inline_cache_seconds: int = 300
    bot_webhook_host: str = "127.0.0.1"
    bot_webhook_port: int = 8001

    @classmethod
    def from_env(cls) -> Settings:
        token = os.getenv("TELEGRAM_BOT_TOKEN")
        if not token or not token.strip():
            raise RuntimeError(
                "Missing required environment variables: TELEGRAM_BOT_TOKEN"
            )

        max_attempts = int(
            os.getenv("BOT_MAX_DELIVERY_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS))
        )
        if max_attempts < 1:
            raise RuntimeError("Invalid BOT_MAX_DELIVERY_ATTEMPTS. Expected >= 1.")

        return cls(
            telegram_bot_token=token.strip(),
            telegram_bot_username=_optional(os.getenv("TELEGRAM_BOT_USERNAME")),
            telegram_api_base_url=os.getenv(
                "TELEGRAM_API_BASE_URL", DEFAULT_TELEGRAM_API_BASE_URL
            ),
            telegram_webhook_secret=_optional(os.getenv("TELEGRAM_WEBHOOK_SECRET")),
            bot_assets_dir=Path(os.getenv("BOT_ASSETS_DIR", DEFAULT_ASSETS_DIR)),
            bot_assets_public_base_url=_optional(
                os.getenv("BOT_ASSETS_PUBLIC_BASE_URL")
            ),
            bot_local_mode_default=_parse_bool(os.getenv("BOT_LOCAL_MODE_DEFAULT")),
            bot_allowed_chat_ids=frozenset(
                _split_csv_set(os.getenv("BOT_ALLOWED_CHAT_IDS"))
            ),
            bot_search_endpoint=os.getenv(
                "BOT_SEARCH_ENDPOINT", DEFAULT_SEARCH_ENDPOINT
            ),
            bot_search_locale=os.getenv("BOT_SEARCH_LOCALE", DEFAULT_SEARCH_LOCALE),
            bot_search_user_agent=os.getenv(
                "BOT_SEARCH_USER_AGENT", DEFAULT_SEARCH_USER_AGENT
            ),
            bot_search_timeout_seconds=float(
                os.getenv("BOT_SEARCH_TIMEOUT_SECONDS", "15")
            ),
            bot_download_timeout_seconds=float(
                os.getenv("BOT_DOWNLOAD_TIMEOUT_SECONDS", "30")
            ),
            bot_download_user_agent=_optional(os.getenv("BOT_DOWNLOAD_USER_AGENT")),
            bot_max_delivery_attempts=max_attempts,
            bot_inline_max_results=int(os.getenv("BOT_INLINE_MAX_RESULTS", "10")),
            bot_inline_cache_seconds=int(os.getenv("BOT_INLINE_CACHE_SECONDS", "300")),
            bot_webhook_host=os.getenv("BOT_WEBHOOK_HOST", "127.0.0.1"),
            bot_webhook_port=int(os.getenv("BOT_WEBHOOK_PORT", "8001")),
        )


def _split_csv_set(value: str | None) -> set[str]:
    if value is None:
        return set()
    return {item.strip() for item in value.split(",") if item.strip()}


def _parse_bool(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _optional(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
