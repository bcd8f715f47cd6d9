from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Protocol

MediaKind = Literal["photo", "animation"]
PayloadKind = Literal["url", "bytes", "file"]


class MessageSendError(Exception):
    pass


# The delivery capability reports rejections with the transport's send error.
DeliveryError = MessageSendError


@dataclass(frozen=True)
class Payload:
    kind: PayloadKind
    url: str | None = None
    data: bytes | None = None
    path: Path | None = None
    content_type: str | None = None

    @classmethod
    def from_url(cls, url: str) -> Payload:
        return cls(kind="url", url=url)

    @classmethod
    def from_bytes(cls, data: bytes, content_type: str) -> Payload:
        return cls(kind="bytes", data=data, content_type=content_type)

    @classmethod
    def from_path(cls, path: Path) -> Payload:
        return cls(kind="file", path=path)

    def describe(self) -> str:
        if self.kind == "url":
            return f"url:{self.url}"
        if self.kind == "file":
            return f"file:{self.path}"
        return f"bytes:{len(self.data or b'')}"


class Deliverer(Protocol):
    async def __call__(self, payload: Payload, media_kind: MediaKind) -> None: ...
