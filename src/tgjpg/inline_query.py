from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any
from urllib.parse import quote

from tgjpg.local_finder import AssetMatch, MediaFormat

logger = logging.getLogger(__name__)

INLINE_THUMBNAIL_WIDTH = 320
INLINE_THUMBNAIL_HEIGHT = 240


def public_asset_url(path: Path, *, assets_dir: Path, base_url: str) -> str | None:
    try:
        relative = path.relative_to(assets_dir)
    except ValueError:
        logger.error("inline_asset_outside_corpus path=%s", path)
        return None

    encoded = "/".join(quote(part, safe="") for part in relative.parts)
    return f"{base_url.rstrip('/')}/{encoded}"


def build_inline_results(
    matches: list[AssetMatch],
    *,
    query: str,
    assets_dir: Path,
    base_url: str,
    max_results: int,
) -> list[dict[str, Any]]:
    """Turn ranked local matches into Telegram inline query results.

    Falls back to a single "no matches" article so the user gets feedback
    in the inline popup instead of an empty list.
    """
    results: list[dict[str, Any]] = []
    for match in matches[: max(0, max_results)]:
        url = public_asset_url(
            match.entry.path, assets_dir=assets_dir, base_url=base_url
        )
        if url is None:
            continue
        results.append(_media_result(match, url))

    if results:
        logger.info("inline_results query=%r count=%d", query, len(results))
        return results

    logger.info("inline_results_empty query=%r", query)
    return [
        {
            "type": "article",
            "id": uuid.uuid4().hex,
            "title": "No matching images found",
            "description": "Try another search term",
            "input_message_content": {
                "message_text": f'No matching images found for "{query}"'
            },
        }
    ]


def _media_result(match: AssetMatch, url: str) -> dict[str, Any]:
    title = match.entry.path.stem or "image"
    if match.entry.format is MediaFormat.ANIMATED:
        return {
            "type": "gif",
            "id": uuid.uuid4().hex,
            "gif_url": url,
            "thumbnail_url": url,
            "gif_width": INLINE_THUMBNAIL_WIDTH,
            "gif_height": INLINE_THUMBNAIL_HEIGHT,
            "title": title,
        }
    return {
        "type": "photo",
        "id": uuid.uuid4().hex,
        "photo_url": url,
        "thumbnail_url": url,
        "photo_width": INLINE_THUMBNAIL_WIDTH,
        "photo_height": INLINE_THUMBNAIL_HEIGHT,
        "title": title,
    }
