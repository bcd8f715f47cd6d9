from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI

from tgjpg.config import Settings
from tgjpg.dedupe import UpdateDeduper
from tgjpg.delivery import DeliveryOrchestrator
from tgjpg.image_search import ImageSearchClient
from tgjpg.local_finder import LocalImageFinder
from tgjpg.local_mode import LocalModeStore
from tgjpg.source_fetcher import SourceFetcher
from tgjpg.telegram_client import TelegramClient
from tgjpg.webhook import WebhookHandler, build_router


def create_app(settings: Settings) -> FastAPI:
    http_client = httpx.AsyncClient()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        await http_client.aclose()

    app = FastAPI(title="tgjpg-bot", version="1.0", lifespan=lifespan)

    telegram_client = TelegramClient(
        bot_token=settings.telegram_bot_token,
        http_client=http_client,
        base_url=settings.telegram_api_base_url,
    )
    local_finder = LocalImageFinder(settings.bot_assets_dir)
    orchestrator = build_orchestrator(
        settings, http_client=http_client, local_finder=local_finder
    )
    handler = WebhookHandler(
        settings=settings,
        telegram_client=telegram_client,
        orchestrator=orchestrator,
        local_finder=local_finder,
        local_modes=LocalModeStore(default_enabled=settings.bot_local_mode_default),
        deduper=UpdateDeduper(ttl_seconds=300),
    )

    app.include_router(build_router(handler, settings))

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    return app


def build_image_search(
    settings: Settings, *, http_client: httpx.AsyncClient
) -> ImageSearchClient:
    return ImageSearchClient(
        http_client=http_client,
        endpoint=settings.bot_search_endpoint,
        locale=settings.bot_search_locale,
        user_agent=settings.bot_search_user_agent,
        timeout_seconds=settings.bot_search_timeout_seconds,
    )


def build_orchestrator(
    settings: Settings,
    *,
    http_client: httpx.AsyncClient,
    local_finder: LocalImageFinder,
) -> DeliveryOrchestrator:
    return DeliveryOrchestrator(
        local_finder=local_finder,
        image_search=build_image_search(settings, http_client=http_client),
        source_fetcher=SourceFetcher(
            http_client=http_client,
            timeout_seconds=settings.bot_download_timeout_seconds,
            user_agent=settings.bot_download_user_agent,
        ),
        max_attempts=settings.bot_max_delivery_attempts,
    )


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def main() -> None:
    configure_logging()
    settings = Settings.from_env()
    app = create_app(settings)

    uvicorn.run(
        app,
        host=settings.bot_webhook_host,
        port=settings.bot_webhook_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
