"""Caching decorator for content pool providers.

Wraps any :class:`IContentPoolProvider` and stores fetched pools in an
:class:`ICacheProvider` for the revalidation window.  Only successful
fetches are cached; an error from the inner provider propagates and leaves
the cache untouched, so the next request tries the remote again.

A cached batch fetched with a larger limit also satisfies smaller requests
for the same pool (the records are newest-first, so a prefix is exact).
"""

from __future__ import annotations

from typing import Any

from src.interfaces.cache_provider import ICacheProvider
from src.interfaces.content_pool_provider import IContentPoolProvider
from src.utils.logging import get_logger


class CachedPoolProvider(IContentPoolProvider):
    """Read-through cache in front of another pool provider.

    Parameters
    ----------
    inner:
        The provider that actually fetches pools.
    cache:
        Key-value store for fetched batches.
    ttl:
        Revalidation window in seconds.
    """

    def __init__(
        self,
        inner: IContentPoolProvider,
        cache: ICacheProvider,
        ttl: int = 600,
    ) -> None:
        self._inner = inner
        self._cache = cache
        self._ttl = ttl
        self._logger = get_logger(__name__)

    def get_provider_name(self) -> str:
        return self._inner.get_provider_name()

    def supported_pools(self) -> frozenset[str]:
        return self._inner.supported_pools()

    @staticmethod
    def _key(pool: str) -> str:
        return f"pool:{pool}"

    async def fetch_pool(self, pool: str, limit: int) -> list[dict[str, Any]]:
        key = self._key(pool)
        cached = await self._cache.get(key)
        if cached is not None:
            cached_limit, records = cached
            # A short batch is the whole pool, so it satisfies any limit.
            if cached_limit >= limit or len(records) < cached_limit:
                self._logger.debug("pool_cache_hit", pool=pool, limit=limit, cached_limit=cached_limit)
                return list(records[:limit])

        records = await self._inner.fetch_pool(pool, limit)
        await self._cache.set(key, (limit, list(records)), ttl=self._ttl)
        return list(records)

    async def invalidate(self, pool: str | None = None) -> None:
        """Drop one pool (or all pools) so the next request refetches."""
        if pool is None:
            await self._cache.clear()
        else:
            await self._cache.delete(self._key(pool))
        self._logger.info("pool_cache_invalidated", pool=pool or "*")
