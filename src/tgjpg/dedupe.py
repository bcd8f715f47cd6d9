from __future__ import annotations

import time
from collections import OrderedDict


class UpdateDeduper:
    """Drops Telegram updates that are redelivered after a slow webhook reply."""

    def __init__(self, *, ttl_seconds: int = 300, max_entries: int = 4096) -> None:
        self._ttl_seconds = ttl_seconds
        self._max_entries = max(1, max_entries)
        self._seen: OrderedDict[str, float] = OrderedDict()

    def mark_once(self, key: str) -> bool:
        now = time.monotonic()
        self._purge(now)

        if key in self._seen:
            return False

        self._seen[key] = now + self._ttl_seconds
        while len(self._seen) > self._max_entries:
            self._seen.popitem(last=False)
        return True

    def _purge(self, now: float) -> None:
        while self._seen:
            key, expires_at = next(iter(self._seen.items()))
            if expires_at > now:
                break
            del self._seen[key]
