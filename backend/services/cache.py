# backend/services/cache.py
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from config import settings

_MISSING = object()


def cache_key(owner_id: int, kind: str, *parts: Any) -> str:
    return ":".join(["tenant", str(owner_id), kind, *(str(p) for p in parts)])


def tenant_prefix(owner_id: int) -> str:
    return f"tenant:{owner_id}:"


# Process-local TTL cache for derived read results. Never a source of truth:
# every successful write invalidates the whole tenant.
class ReadCache:
    def __init__(self, default_ttl: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = settings.CACHE_TTL_SECONDS if default_ttl is None else default_ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                self._misses += 1
                return default
            expires_at, value = item
            if expires_at <= self._clock():
                del self._entries[key]
                self._misses += 1
                return default
            self._hits += 1
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = (self._clock() + ttl, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for k in doomed:
                del self._entries[k]
            return len(doomed)

    def invalidate_tenant(self, owner_id: int) -> int:
        return self.invalidate_prefix(tenant_prefix(owner_id))

    def cleanup(self) -> int:
        """Drop expired entries, return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
            for k in expired:
                del self._entries[k]
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"size": len(self._entries), "hits": self._hits, "misses": self._misses}


def cached(cache: ReadCache, key: str, fn: Callable[[], Any], ttl: Optional[int] = None) -> Any:
    value = cache.get(key, _MISSING)
    if value is _MISSING:
        value = fn()
        cache.set(key, value, ttl)
    return value


read_cache = ReadCache()
