"""
In-memory cache for search results
"""

import hashlib
import json
import time
from typing import Any, Dict, Optional, Tuple

from slackrat.config.settings import settings


class SearchCache:
    """Values expire after ttl_seconds; when full the oldest entry is dropped"""

    def __init__(self, ttl_seconds: int = 3600, max_entries: int = 256):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is not None:
            expires_at, value = entry
            if time.time() < expires_at:
                self.hits += 1
                return value
            del self._entries[key]
        self.misses += 1
        return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        # Rewritten keys move to the end
        self._entries.pop(key, None)
        if len(self._entries) >= self.max_entries:
            self.purge_expired()
            if len(self._entries) >= self.max_entries:
                # Insertion order, so the first key is the oldest
                del self._entries[next(iter(self._entries))]
        self._entries[key] = (time.time() + (ttl or self.ttl_seconds), value)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def purge_expired(self) -> int:
        """Drop expired entries, returning how many were removed"""
        now = time.time()
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def make_key(prefix: str, *parts: Any) -> str:
        """Stable key for a search: prefix plus an md5 of the JSON-encoded parts"""
        encoded = json.dumps(parts, sort_keys=True, default=str)
        return f"{prefix}:{hashlib.md5(encoded.encode()).hexdigest()}"


search_cache = SearchCache(
    ttl_seconds=settings.cache_ttl_seconds,
    max_entries=settings.cache_max_entries
)
