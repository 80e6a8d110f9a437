"""Cache providers.

In-memory TTL cache for fetched content pools.  Not shared across worker
processes; a networked store can implement ICacheProvider instead without
changing the aggregator.
"""

from src.providers.cache.memory_cache import MemoryCacheProvider

__all__ = ["MemoryCacheProvider"]
