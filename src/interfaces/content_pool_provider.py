"""Abstract base class for content pool providers.

A content pool is one backing collection in the CMS (video entries,
projects, posts).  Providers fetch the newest ``limit`` raw records of a pool
as plain dicts; normalization happens in the services layer, so a provider
never decides which records are usable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class IContentPoolProvider(ABC):
    """Contract for fetching bounded batches of raw pool records.

    Implementations raise :class:`~src.utils.errors.ContentFetchError` on
    any remote failure.  They must never return an empty list in place of
    an error.
    """

    @abstractmethod
    async def fetch_pool(self, pool: str, limit: int) -> list[dict[str, Any]]:
        """Return up to *limit* raw records of *pool*, newest first.

        Parameters
        ----------
        pool:
            Pool name, e.g. ``"video_entry"`` or ``"project"``.
        limit:
            Maximum number of records to fetch.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short provider name used in logs and error prefixes."""

    @abstractmethod
    def supported_pools(self) -> frozenset[str]:
        """Return the pool names this provider can fetch."""
