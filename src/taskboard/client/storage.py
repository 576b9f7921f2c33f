"""Client-side token storage with per-entry expiry.

Entries vanish once their expiry passes, the way browser cookies do,
so a token is never handed out after the lifetime it was stored with.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol


def utcnow() -> datetime:
    return datetime.now(UTC)


class TokenStorage(Protocol):
    """Where a SessionAgent keeps its tokens."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str, expires_at: datetime) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryTokenStorage:
    """In-process TokenStorage.

    Args:
        clock: Source of the current time, injectable for tests
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self.clock = clock
        self._entries: dict[str, tuple[str, datetime]] = {}

    def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: str, expires_at: datetime) -> None:
        self._entries[key] = (value, expires_at)

    def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
