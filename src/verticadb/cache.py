"""
Schema metadata cache.

Catalog lookups are cached per database and table in cachetools TTLCaches,
so entries expire on their own and DDL helpers can drop a table's entries
explicitly.
"""
import functools
import logging
import threading

import cachetools

logger = logging.getLogger(__name__)


class Cache:
    """Process-wide registry of named TTL caches.

    Keys are tuples of (scope, table, extra arguments), the scope being the
    database and identifier policy of the connection. Table names are
    compared exactly, Vertica identifiers are case sensitive.
    """

    _instance: 'Cache | None' = None
    _instance_lock = threading.Lock()

    def __init__(self) -> None:
        self._caches: dict[str, cachetools.TTLCache] = {}
        self._lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> 'Cache':
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def get_cache(self, name: str, maxsize: int = 100, ttl: int = 300) -> cachetools.TTLCache:
        """Named cache, created on first use with the given size and TTL (seconds)."""
        with self._lock:
            cache = self._caches.get(name)
            if cache is None:
                cache = self._caches[name] = cachetools.TTLCache(maxsize=maxsize, ttl=ttl)
            return cache

    def clear_all(self) -> None:
        with self._lock:
            for cache in self._caches.values():
                cache.clear()

    def clear_for_table(self, table_name: str) -> None:
        """Drop every cached entry for the table, in all databases."""
        with self._lock:
            for name, cache in self._caches.items():
                for key in [k for k in cache if k[1] == table_name]:
                    cache.pop(key, None)
                    logger.debug(f'Cleared {name} entry for table {table_name}')


def cacheable(cache_name: str, ttl: int = 600, maxsize: int = 50):
    """Decorator caching `func(cn, table, ...)` results per database, identifier
    policy and table.

    A bypass_cache=True call skips the lookup and refreshes the entry.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(cn, table, *args, bypass_cache=False, **kwargs):
            cache = Cache.get_instance().get_cache(cache_name, maxsize=maxsize, ttl=ttl)
            key = ((str(cn.options), cn.identifiers), table, args, tuple(sorted(kwargs.items())))
            if not bypass_cache and key in cache:
                logger.debug(f'Cache hit for {func.__name__}({table})')
                return cache[key]
            result = func(cn, table, *args, **kwargs)
            cache[key] = result
            return result
        return wrapper
    return decorator
