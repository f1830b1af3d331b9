import threading
import time
from collections import OrderedDict
from typing import Any

from config.settings import POSTER_CACHE_MAX_ENTRIES, POSTER_CACHE_TTL_SECONDS


class BoundedTTLCache:
    """In-memory LRU cache with per-entry expiry.

    Instances are created by the caller and handed to the components that need
    them, so two clients never share entries unless they share the object.
    """

    def __init__(self, *, max_entries=POSTER_CACHE_MAX_ENTRIES, ttl_seconds=POSTER_CACHE_TTL_SECONDS, clock=time.time) -> None:
        self.max_entries = max(1, int(max_entries))
        self.ttl_seconds = max(1, int(ttl_seconds))
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()

    def get(self, key: str) -> Any:
        now = self._clock()
        with self._lock:
            row = self._entries.get(key)
            if row is None:
                return None
            expires_at, payload = row
            if expires_at <= now:
                self._entries.pop(key, None)
                return None
            self._entries.move_to_end(key)
            return payload

    def set(self, key: str, payload: Any, *, ttl_seconds: int | None = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else max(1, int(ttl_seconds))
        expires_at = self._clock() + ttl
        with self._lock:
            self._entries[key] = (expires_at, payload)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
