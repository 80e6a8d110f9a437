"""Content pool providers (WPGraphQL transport and its read-through cache)."""

from src.providers.content.cached_pool_provider import CachedPoolProvider
from src.providers.content.wpgraphql_provider import POOL_QUERIES, WPGraphQLProvider

__all__ = ["CachedPoolProvider", "POOL_QUERIES", "WPGraphQLProvider"]
