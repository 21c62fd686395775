"""
In-memory TTL cache for upstream responses.

Entries expire lazily on read; there is no background sweeper. The entry count
is bounded and the oldest inserted entry is evicted first (FIFO over
insertion, not access). One instance is created at process start and handed to
the fetch layer; nothing is ever persisted.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional


_MISSING = object()


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """Key/value store with per-entry expiry and a soft size bound"""

    def __init__(
        self,
        default_ttl: float = 60.0,
        max_entries: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or ``default`` when absent or expired"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return default
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Insert or overwrite ``key``; evicts the oldest entry when over the bound"""
        expires_at = self._clock() + (self.default_ttl if ttl is None else ttl)
        with self._lock:
            # overwriting keeps the original insertion position
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)
            if len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        return len(self._entries)
