from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """
    Simple in-memory cache where every entry carries its own expiry.

    Expired entries are not removed on read; they are overwritten by the next
    ``set`` for the same key. When ``max_entries`` is given, expired entries are
    swept once the store grows past it.
    """

    def __init__(
        self,
        ttl: float,
        clock: Callable[[], float] = time.time,
        max_entries: int | None = None,
    ) -> None:
        self.ttl = float(ttl)
        self._clock = clock
        self._max_entries = max_entries or None
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.expires_at > self._clock()

    def get(self, key: str, default: Any = None) -> Any:
        """
        Return cached value if it exists and is not expired.
        """
        entry = self._entries.get(key)
        if entry is None or entry.expires_at <= self._clock():
            return default
        return entry.value

    def set(self, key: str, value: Any) -> None:
        """
        Store value with expiry = now + ttl.
        """
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self.ttl)
        if self._max_entries is not None and len(self._entries) > self._max_entries:
            self.sweep_expired()

    def sweep_expired(self) -> int:
        now = self._clock()
        stale = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in stale:
            del self._entries[k]
        return len(stale)
