"""
In-memory TTL cache with request de-duplication

Entries are keyed by endpoint (optionally scoped to a user). While a key is
being loaded, concurrent callers for the same key wait for that load instead
of starting their own. Failed loads are never cached.
"""
import threading
import time
from concurrent.futures import Future

DEFAULT_TTL = 30.0  # seconds


def cache_key(endpoint, user_id=None):
    """``endpoint`` or ``endpoint:user:<id>``"""
    return f"{endpoint}:user:{user_id}" if user_id else endpoint


class QueryCache:
    def __init__(self, default_ttl=DEFAULT_TTL, clock=time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries = {}
        self._pending = {}
        self._lock = threading.Lock()

    def _lookup(self, key, ttl):
        """Returns (hit, value); expired entries are dropped. Caller holds the lock."""
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        data, stored_at, entry_ttl = entry
        max_age = ttl if ttl is not None else entry_ttl
        if self._clock() - stored_at < max_age:
            return True, data
        del self._entries[key]
        return False, None

    def get(self, endpoint, user_id=None, ttl=None):
        with self._lock:
            return self._lookup(cache_key(endpoint, user_id), ttl)[1]

    def set(self, endpoint, data, user_id=None, ttl=None):
        entry_ttl = ttl if ttl is not None else self.default_ttl
        with self._lock:
            self._entries[cache_key(endpoint, user_id)] = (data, self._clock(), entry_ttl)

    def invalidate(self, endpoint, user_id=None):
        key = cache_key(endpoint, user_id)
        with self._lock:
            self._entries.pop(key, None)
            self._pending.pop(key, None)

    def invalidate_pattern(self, pattern):
        """Drops every key containing ``pattern``"""
        with self._lock:
            for key in [k for k in self._entries if pattern in k]:
                del self._entries[key]
            for key in [k for k in self._pending if pattern in k]:
                del self._pending[key]

    def clear(self):
        with self._lock:
            self._entries.clear()
            self._pending.clear()

    def fetch(self, endpoint, loader, user_id=None, ttl=None, force_refresh=False):
        """
        Returns the cached value for the key or loads it with ``loader()``.

        Args:
            endpoint: Cache namespace (usually the API path)
            loader: Zero-argument callable producing the value
            user_id: Scopes the entry to one user
            ttl: Seconds the loaded value stays fresh
            force_refresh: Ignore a fresh cached value

        Raises:
            Whatever ``loader`` raises; concurrent waiters get the same error.
        """
        key = cache_key(endpoint, user_id)
        entry_ttl = ttl if ttl is not None else self.default_ttl

        with self._lock:
            if not force_refresh:
                hit, data = self._lookup(key, ttl)
                if hit:
                    return data
            future = self._pending.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._pending[key] = future

        if not owner:
            return future.result()

        try:
            data = loader()
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(data)
            with self._lock:
                self._entries[key] = (data, self._clock(), entry_ttl)
            return data
        finally:
            with self._lock:
                if self._pending.get(key) is future:
                    del self._pending[key]

    def stats(self):
        now = self._clock()
        with self._lock:
            entries = [
                {
                    "key": key,
                    "age": now - stored_at,
                    "ttl": entry_ttl,
                    "is_valid": now - stored_at < entry_ttl,
                }
                for key, (_, stored_at, entry_ttl) in self._entries.items()
            ]
            return {
                "size": len(self._entries),
                "pending_requests": len(self._pending),
                "entries": entries,
            }


# Process-wide cache shared by the API layer
query_cache = QueryCache()
