from __future__ import annotations

import hashlib
import json
import threading
import time
from typing import Any, Dict, Mapping, Optional, Tuple

from ..config import SETTINGS


CacheEntry = Tuple[float, Any]


def cache_key(image_bytes: bytes, settings: Mapping[str, Any]) -> str:
    digest = hashlib.sha256(image_bytes)
    digest.update(json.dumps(dict(settings), sort_keys=True).encode("utf-8"))
    return digest.hexdigest()


class ResponseCache:
    def __init__(self, ttl: float = SETTINGS.cache_ttl, max_entries: int = SETTINGS.cache_entries) -> None:
        self._ttl = ttl
        self._max_entries = max_entries
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if not entry:
                return None
            timestamp, data = entry
            if time.time() - timestamp > self._ttl:
                self._entries.pop(key, None)
                return None
            return data

    def put(self, key: str, data: Any) -> None:
        if self._max_entries <= 0:
            return
        with self._lock:
            while len(self._entries) >= self._max_entries and key not in self._entries:
                oldest = min(self._entries.items(), key=lambda item: item[1][0])[0]
                self._entries.pop(oldest, None)
            self._entries[key] = (time.time(), data)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
