"""Session store interface and an in-memory implementation.

The store is an eventually-consistent key-value store with per-key expiry.
No compare-and-swap is assumed.
"""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Protocol

SESSION_KEY_PREFIX = "review_session_"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_session_key(session_id: str) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"


class SessionStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def put(self, key: str, value: str, ttl_seconds: int) -> None: ...


class InMemorySessionStore:
    """Dict-backed store that evicts keys once their TTL has passed."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[str, datetime]] = {}
        self.put_count = 0

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, evict_at = entry
        if self._clock() >= evict_at:
            del self._entries[key]
            return None
        return value

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be at least 1")
        self._entries[key] = (value, self._clock() + timedelta(seconds=ttl_seconds))
        self.put_count += 1

    def __len__(self) -> int:
        return len(self._entries)
