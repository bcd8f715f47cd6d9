from __future__ import annotations

import logging
from enum import Enum

import httpx
from fake_useragent import UserAgent

from tgjpg.messaging import Payload

logger = logging.getLogger(__name__)

DOWNLOAD_REQUIRED_DOMAINS = ("imgur.com",)


class SourceKind(Enum):
    DIRECT_LINK = "direct_link"
    REQUIRES_DOWNLOAD = "requires_download"


class FetchError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def parse_source_url(url: str) -> httpx.URL:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise FetchError(f"Malformed URL: {url!r}") from exc

    if parsed.scheme not in {"http", "https"} or not parsed.host:
        raise FetchError(f"Malformed URL: {url!r}")
    return parsed


def classify(url: str) -> SourceKind:
    try:
        host = parse_source_url(url).host.lower()
    except FetchError:
        return SourceKind.DIRECT_LINK

    for domain in DOWNLOAD_REQUIRED_DOMAINS:
        if host == domain or host.endswith(f".{domain}"):
            return SourceKind.REQUIRES_DOWNLOAD
    return SourceKind.DIRECT_LINK


class SourceFetcher:
    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        timeout_seconds: float = 30.0,
        user_agent: str | None = None,
    ) -> None:
        self._http_client = http_client
        self._timeout_seconds = timeout_seconds
        self._user_agent = user_agent
        self._ua = UserAgent()

    async def materialize(self, url: str) -> Payload:
        parse_source_url(url)
        if classify(url) is SourceKind.DIRECT_LINK:
            return Payload.from_url(url)
        return await self.download(url)

    async def download(self, url: str) -> Payload:
        try:
            response = await self._http_client.get(
                url,
                headers={"User-Agent": self._user_agent or self._ua.chrome},
                timeout=self._timeout_seconds,
                follow_redirects=True,
            )
        except httpx.HTTPError as exc:
            raise FetchError(f"Download failed for {url}: {exc}") from exc

        if not response.is_success:
            raise FetchError(
                f"Download failed for {url} ({response.status_code})",
                status_code=response.status_code,
            )

        content_type = response.headers.get("content-type", "image/jpeg")
        content_type = content_type.split(";", 1)[0].strip() or "image/jpeg"
        logger.info(
            "source_downloaded url=%s bytes=%d content_type=%s",
            url,
            len(response.content),
            content_type,
        )
        return Payload.from_bytes(response.content, content_type)
