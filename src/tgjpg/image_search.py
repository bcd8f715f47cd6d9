from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from urllib.parse import unquote

import httpx
from lxml import etree, html

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_ENDPOINT = "https://www.google.com/search"
DEFAULT_SEARCH_LOCALE = "zh-TW"
DEFAULT_SEARCH_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.0 "
    "Mobile/15E148 Safari/604.1"
)
MAX_EXTRACTED_URLS = 10

# Provider-owned chrome: thumbnails, logos and static assets.
_PROVIDER_ASSET_MARKERS = ("encrypted-tbn", "gstatic", "googlelogo")

_STRUCTURED_ARRAY_RE = re.compile(
    r'\["(https?://[^"]+\.(?:jpg|jpeg|png|gif)[^"]*)"\s*,\s*\d+\s*,\s*\d+\]'
)
_QUOTED_URL_RE = re.compile(r'"(https?://[^"]+\.(?:jpg|jpeg|png|gif)[^"]*)"')
_REDIRECT_PARAM_RE = re.compile(r"[?&;]imgurl=([^&\"'\s<>]+)")
_ESCAPED_SEQUENCES = (
    ("\\u0026", "&"),
    ("\\u003d", "="),
    ("\\u003D", "="),
)

ExtractionStrategy = Callable[[str], list[str]]


class ImageSearchError(Exception):
    def __init__(self, user_message: str) -> None:
        super().__init__(user_message)
        self.user_message = user_message


class NoCandidatesError(ImageSearchError):
    pass


def is_provider_asset(url: str) -> bool:
    return any(marker in url for marker in _PROVIDER_ASSET_MARKERS)


def decode_escaped_url(url: str) -> str:
    decoded = url
    for escaped, plain in _ESCAPED_SEQUENCES:
        decoded = decoded.replace(escaped, plain)
    return decoded


def _collect(urls: Iterable[str]) -> list[str]:
    collected: list[str] = []
    for url in urls:
        if len(collected) >= MAX_EXTRACTED_URLS:
            break
        if not url or is_provider_asset(url):
            continue
        collected.append(url)
    return collected


def extract_structured_array(text: str) -> list[str]:
    return _collect(
        decode_escaped_url(match.group(1))
        for match in _STRUCTURED_ARRAY_RE.finditer(text)
    )


def extract_quoted_urls(text: str) -> list[str]:
    return _collect(
        decode_escaped_url(match.group(1)) for match in _QUOTED_URL_RE.finditer(text)
    )


def extract_redirect_params(text: str) -> list[str]:
    return _collect(
        _decode_redirect_target(match.group(1))
        for match in _REDIRECT_PARAM_RE.finditer(text)
    )


def extract_data_ou(text: str) -> list[str]:
    if "data-ou" not in text:
        return []
    try:
        tree = html.fromstring(text)
    except (etree.ParserError, ValueError):
        logger.debug("data_ou_parse_failed length=%d", len(text))
        return []
    return _collect(str(value).strip() for value in tree.xpath("//@data-ou"))


def _decode_redirect_target(raw: str) -> str:
    decoded = unquote(decode_escaped_url(raw))
    decoded = decoded.split("?", 1)[0]
    if not decoded.startswith(("http://", "https://")):
        return ""
    return decoded


EXTRACTION_STRATEGIES: tuple[tuple[str, ExtractionStrategy], ...] = (
    ("structured_array", extract_structured_array),
    ("quoted_url", extract_quoted_urls),
    ("redirect_param", extract_redirect_params),
    ("data_ou", extract_data_ou),
)


def extract_image_urls(text: str) -> list[str]:
    """Run the extraction strategies in priority order.

    The first strategy that yields any URL wins; results are never merged
    across strategies.
    """
    for name, strategy in EXTRACTION_STRATEGIES:
        urls = strategy(text)
        logger.info("image_extraction strategy=%s url_count=%d", name, len(urls))
        if urls:
            return urls

    logger.warning(
        "image_extraction_exhausted strategy_count=%d", len(EXTRACTION_STRATEGIES)
    )
    return []


class ImageSearchClient:
    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        endpoint: str = DEFAULT_SEARCH_ENDPOINT,
        locale: str = DEFAULT_SEARCH_LOCALE,
        user_agent: str = DEFAULT_SEARCH_USER_AGENT,
        timeout_seconds: float = 15.0,
    ) -> None:
        self._http_client = http_client
        self._endpoint = endpoint
        self._locale = locale
        self._user_agent = user_agent
        self._timeout_seconds = timeout_seconds

    async def search(self, query: str, is_animated: bool) -> list[str]:
        params = {
            "q": query,
            "tbs": "ift:gif" if is_animated else "ift:jpg",
            "tbm": "isch",
            "hl": self._locale,
        }
        logger.info(
            "image_search_request query=%r is_animated=%s", query, is_animated
        )

        try:
            response = await self._http_client.get(
                self._endpoint,
                params=params,
                headers=self._headers(),
                timeout=self._timeout_seconds,
                follow_redirects=True,
            )
        except httpx.HTTPError as exc:
            raise ImageSearchError("Image search request failed.") from exc

        if response.status_code >= 400:
            raise ImageSearchError(
                f"Image search failed with status {response.status_code}."
            )

        body = response.content.decode("utf-8", errors="replace")
        logger.debug(
            "image_search_response status=%d length=%d",
            response.status_code,
            len(body),
        )

        urls = extract_image_urls(body)
        if not urls:
            logger.error(
                "image_search_no_candidates query=%r sample=%r",
                query,
                body[:2000],
            )
            raise NoCandidatesError(
                "No image URLs extracted. The search page format may have changed."
            )
        return urls

    def _headers(self) -> dict[str, str]:
        primary = self._locale
        language = primary.split("-", 1)[0]
        return {
            "User-Agent": self._user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": f"{primary},{language};q=0.9,en-US;q=0.8,en;q=0.7",
        }
