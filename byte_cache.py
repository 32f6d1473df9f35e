from __future__ import annotations

import threading
from typing import Callable, Optional


class ByteCache:
    """Additive path -> bytes map shared across renders.

    Entries are never evicted. With a capacity set, once the cache is full new
    values are still handed back to the caller but not stored.
    """

    def __init__(self, capacity: Optional[int] = None) -> None:
        self.capacity = capacity
        self._entries: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[bytes]:
        return self._entries.get(key)

    def put(self, key: str, value: bytes) -> bool:
        """Store value; returns False when the capacity kept it out."""
        with self._lock:
            if key not in self._entries and self.is_full():
                return False
            self._entries[key] = value
            return True

    def is_full(self) -> bool:
        return self.capacity is not None and len(self._entries) >= self.capacity

    def get_or_load(self, key: str, loader: Callable[[str], bytes]) -> bytes:
        cached = self._entries.get(key)
        if cached is not None:
            return cached
        # Two renders racing on the same key both read the file; same content either way.
        value = loader(key)
        self.put(key, value)
        return value
