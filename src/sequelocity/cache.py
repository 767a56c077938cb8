"""
Named, bounded caches shared by the whole process.

Only per-type introspection is cached (see `describe.describe`); the
result of describing a class never changes while the process runs.
"""
import functools
import logging
import threading

import cachetools

logger = logging.getLogger(__name__)


class Cache:
    """Process-wide registry of cachetools caches, one per name."""

    _instance = None
    _caches: dict[str, cachetools.Cache] = {}
    _lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> 'Cache':
        with cls._lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def get_cache(self, name: str, maxsize: int = 256,
                  ttl: int | None = None) -> cachetools.Cache:
        """The cache called `name`, created on first use.

        LRU when `ttl` is None, else entries also expire after `ttl` seconds.
        """
        with self._lock:
            cache = self._caches.get(name)
            if cache is None:
                cache = (cachetools.LRUCache(maxsize=maxsize) if ttl is None
                         else cachetools.TTLCache(maxsize=maxsize, ttl=ttl))
                self._caches[name] = cache
            return cache

    def clear_all(self) -> None:
        with self._lock:
            for cache in self._caches.values():
                cache.clear()

    def clear_cache(self, name: str) -> None:
        with self._lock:
            if name in self._caches:
                self._caches[name].clear()


def cached_by_type(cache_name: str, maxsize: int = 256):
    """Memoize a one-argument function (typically of a class) in `cache_name`.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(key):
            cache = Cache.get_instance().get_cache(cache_name, maxsize=maxsize)
            with Cache._lock:
                if key in cache:
                    return cache[key]
            result = func(key)
            with Cache._lock:
                cache[key] = result
            logger.debug(f'Cached {func.__name__}({getattr(key, "__name__", key)!r})')
            return result
        return wrapper
    return decorator
