"""In-memory cache provider using cachetools.TTLCache.

Holds fetched content pools for one process.  The default TTL is the
content revalidation cadence, so a pool is re-fetched at most once per
window regardless of request volume.
"""

from __future__ import annotations

from typing import Any

import structlog
from cachetools import TTLCache

from src.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


class MemoryCacheProvider(ICacheProvider):
    """In-memory TTL cache backed by ``cachetools.TTLCache``.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the least-recently-used entry
        is evicted.
    ttl:
        Default time-to-live in seconds for cache entries.
    """

    def __init__(self, max_size: int = 256, ttl: int = 600) -> None:
        self._default_ttl = ttl
        self._cache: TTLCache[str, Any] = TTLCache(maxsize=max_size, ttl=ttl)

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        value = self._cache.get(key)
        logger.debug("cache_hit" if value is not None else "cache_miss", key=key)
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store *value* under *key*.

        ``TTLCache`` applies one TTL to every entry, so a per-call *ttl*
        different from the default is logged and ignored.
        """
        if ttl is not None and ttl != self._default_ttl:
            logger.debug("cache_ttl_ignored", key=key, ttl=ttl, default_ttl=self._default_ttl)
        self._cache[key] = value
        logger.debug("cache_set", key=key)

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)
        logger.debug("cache_delete", key=key)

    async def exists(self, key: str) -> bool:
        return key in self._cache

    async def clear(self) -> None:
        self._cache.clear()
        logger.debug("cache_cleared")

    def __len__(self) -> int:
        return len(self._cache)
