from __future__ import annotations

import threading
import time
from typing import Callable, Generic, Iterable, TypeVar

T = TypeVar("T")

KEY_SEPARATOR = ":"


def make_cache_key(parts: Iterable[str | None]) -> str:
    """Join fingerprint parts with ``:``.

    ``None`` becomes an empty part. Separators and backslashes inside a part
    are escaped so distinct part lists never produce the same key.
    """
    escaped = []
    for part in parts:
        text = "" if part is None else str(part)
        escaped.append(text.replace("\\", "\\\\").replace(KEY_SEPARATOR, "\\" + KEY_SEPARATOR))
    return KEY_SEPARATOR.join(escaped)


class TTLCache(Generic[T]):
    """In-memory response cache with a fixed time-to-live in milliseconds.

    Expired entries are dropped lazily on ``get`` or eagerly by
    ``clean_expired``. ``size`` counts stale entries until one of those runs.
    When ``max_entries`` is set, inserting a new key into a full cache first
    sweeps expired entries and then drops the entry closest to expiry.
    """

    def __init__(
        self,
        ttl_ms: int,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        self._ttl_ms = ttl_ms
        self._max_entries = max_entries if max_entries is None else max(1, max_entries)
        self._clock = clock
        self._data: dict[str, tuple[float, T]] = {}
        self._lock = threading.Lock()

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def get(self, key: str) -> T | None:
        now = self._now_ms()
        with self._lock:
            value = self._data.get(key)
            if value is None:
                return None
            expires_at, payload = value
            if now > expires_at:
                self._data.pop(key, None)
                return None
            return payload

    def set(self, key: str, value: T) -> None:
        now = self._now_ms()
        with self._lock:
            if self._max_entries is not None and key not in self._data and len(self._data) >= self._max_entries:
                self._evict_expired_locked(now)
                if len(self._data) >= self._max_entries:
                    oldest_key = min(self._data, key=lambda k: self._data[k][0])
                    self._data.pop(oldest_key, None)
            self._data[key] = (now + self._ttl_ms, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._data)

    def clean_expired(self) -> int:
        now = self._now_ms()
        with self._lock:
            return self._evict_expired_locked(now)

    def _evict_expired_locked(self, now: float) -> int:
        expired = [k for k, (expires_at, _) in self._data.items() if now > expires_at]
        for key in expired:
            self._data.pop(key, None)
        return len(expired)
