from __future__ import annotations


class LocalModeStore:
    """Per-chat local-mode flags.

    Only the webhook writes here; the resolution pipeline receives the
    flag as a plain bool read through is_enabled.
    """

    def __init__(self, *, default_enabled: bool = False) -> None:
        self._default_enabled = default_enabled
        self._flags: dict[str, bool] = {}

    def is_enabled(self, chat_id: str) -> bool:
        return self._flags.get(chat_id, self._default_enabled)

    def set_enabled(self, chat_id: str, enabled: bool) -> None:
        self._flags[chat_id] = enabled
