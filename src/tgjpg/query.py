from __future__ import annotations

import re
from dataclasses import dataclass

IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif")
ANIMATED_EXTENSIONS = frozenset({"gif"})

_QUERY_RE = re.compile(
    rf"^\s*(.+?)\.({'|'.join(IMAGE_EXTENSIONS)})\s*$", re.IGNORECASE | re.DOTALL
)


@dataclass(frozen=True)
class Query:
    text: str
    extension: str
    is_animated: bool


def parse_image_query(text: str) -> Query | None:
    match = _QUERY_RE.match(text)
    if match is None:
        return None

    body = match.group(1).strip()
    if not body:
        return None

    extension = match.group(2).lower()
    return Query(
        text=body,
        extension=extension,
        is_animated=extension in ANIMATED_EXTENSIONS,
    )
