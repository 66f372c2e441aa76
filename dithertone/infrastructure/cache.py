from __future__ import annotations

import hashlib
import json
import threading
import time
from typing import Dict, Optional, Tuple

from ..config import SETTINGS
from ..processing.pipeline import PipelineConfig


CacheEntry = Tuple[float, bytes]


def cache_key(source: str, config: PipelineConfig) -> str:
    payload = json.dumps(config.to_dict(), sort_keys=True)
    return hashlib.sha1(f"{source}|{payload}".encode("utf-8")).hexdigest()


class ResponseCache:
    def __init__(self, ttl: float | None = None, max_entries: int | None = None) -> None:
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._ttl = SETTINGS.cache_ttl if ttl is None else ttl
        self._max_entries = SETTINGS.cache_size if max_entries is None else max_entries

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            entry = self._entries.get(key)
            if not entry:
                return None
            timestamp, data = entry
            if time.time() - timestamp > self._ttl:
                self._entries.pop(key, None)
                return None
            return data

    def put(self, key: str, data: bytes) -> None:
        with self._lock:
            while self._entries and len(self._entries) >= self._max_entries:
                oldest = min(self._entries.items(), key=lambda item: item[1][0])[0]
                self._entries.pop(oldest, None)
            self._entries[key] = (time.time(), data)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


CACHE = ResponseCache()
# Last PNG successfully served per fallback key, kept until evicted by size.
LAST_GOOD = ResponseCache(ttl=float("inf"))


def remember_last_good(key: str, data: bytes) -> None:
    LAST_GOOD.put(key, data)


def last_good_png(key: Optional[str]) -> Optional[bytes]:
    """Return the last PNG served for ``key``; never one served for another source."""

    if not key:
        return None
    return LAST_GOOD.get(key)
