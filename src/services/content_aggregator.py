"""Content pool aggregator: one filtered, faceted page per request.

Architecture:
    - Called by the ``/api/v1/resources/{kind}`` route and the browse CLI.
    - Depends on IContentPoolProvider for raw pool batches (usually the
      cached WPGraphQL provider).
    - Uses item_normalizer, filter_predicate, facet_counter and paginator.

Design pattern: Service (stateless, receives dependencies via constructor).
Concurrent requests share nothing mutable; each call builds its own text
index, item list and result.

Failure policy: a pool fetch error propagates to the caller.  An empty pool
is never substituted, because dropping a whole content type from results
and facets looks exactly like "no matches".
"""

from __future__ import annotations

import time
from typing import Any, Mapping

import structlog

from src.interfaces.content_pool_provider import IContentPoolProvider
from src.models.content import NormalizedItem
from src.models.query import PageMeta, PageResult
from src.services.facet_counter import count_facets
from src.services.filter_predicate import FilterPredicate, ItemTextIndex
from src.services.paginator import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PoolSizingPolicy,
    clamp_page_size,
    decode_cursor,
    paginate,
    sort_items,
)
from src.services.resource_collections import (
    PoolSpec,
    build_filter_query,
    resolve_collection,
)
from src.utils.concurrency import gather_all

logger = structlog.get_logger(logger_name=__name__)


class ContentPoolAggregator:
    """Merges content pools into one collection and answers page requests.

    Parameters
    ----------
    provider:
        Source of raw pool records.
    sizing:
        Pool fetch sizing policy.
    default_page_size, max_page_size:
        Bounds applied to the requested ``first``.
    min_query_length:
        Shorter text queries are ignored.
    """

    def __init__(
        self,
        provider: IContentPoolProvider,
        sizing: PoolSizingPolicy | None = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
        min_query_length: int = 2,
    ) -> None:
        self._provider = provider
        self._sizing = sizing or PoolSizingPolicy()
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size
        self._min_query_length = min_query_length

    async def aggregate(
        self,
        kind: str,
        filters: Mapping[str, Any] | None = None,
        first: Any = None,
        after: Any = None,
    ) -> PageResult:
        """Return one page of *kind* plus independent facet counts.

        Steps:
            1. Resolve the collection and build the FilterQuery.
            2. Pick the pools that could hold a match.
            3. Fetch them concurrently at the escalated batch size.
            4. Normalize, drop unusable records, merge, de-duplicate.
            5. Count facets over the merged, unsliced collection.
            6. Filter, sort and slice the page.

        Raises:
            UnknownCollectionError: *kind* is not served.
            ContentFetchError: any pool fetch failed.
        """
        started = time.monotonic()
        collection = resolve_collection(kind)
        query = build_filter_query(filters, collection)
        page_size = clamp_page_size(first, self._default_page_size, self._max_page_size)
        offset = decode_cursor(after)

        pools = collection.relevant_pools(query)
        skipped = [p.name for p in collection.pools if p not in pools]
        if skipped:
            logger.debug("pools_skipped", kind=collection.kind, pools=skipped)

        # Pools are fetched in bounded batches, not in full.  The batch grows
        # with the requested offset so deeper pages have records behind them,
        # capped at max_bound.  A narrow filter can still leave the page short
        # while a pool that filled its batch holds older records; those pools
        # are fetched once more at max_bound.  A pool that fills a capped batch
        # may hold more than we saw, and the result is then flagged truncated.
        fetch_size = self._sizing.size_for(offset, page_size)
        requested = {pool.name: fetch_size for pool in pools}
        batches = await gather_all(
            [self._provider.fetch_pool(pool.name, fetch_size) for pool in pools]
        )
        items = self._merge(pools, batches)

        predicate = FilterPredicate(query, self._min_query_length, ItemTextIndex())
        matched = [item for item in items if predicate.matches(item)]

        if len(matched) <= offset + page_size and fetch_size < self._sizing.max_bound:
            partial = [
                index
                for index, batch in enumerate(batches)
                if self._sizing.may_hold_more(fetch_size, len(batch))
            ]
            if partial:
                logger.debug(
                    "pools_escalated",
                    kind=collection.kind,
                    pools=[pools[index].name for index in partial],
                    matched=len(matched),
                    fetch_size=self._sizing.max_bound,
                )
                refetched = await gather_all(
                    [
                        self._provider.fetch_pool(pools[index].name, self._sizing.max_bound)
                        for index in partial
                    ]
                )
                batches = list(batches)
                for index, batch in zip(partial, refetched):
                    batches[index] = batch
                    requested[pools[index].name] = self._sizing.max_bound
                items = self._merge(pools, batches)
                matched = [item for item in items if predicate.matches(item)]

        pool_sizes = {pool.name: len(batch) for pool, batch in zip(pools, batches)}
        saturated = [
            name
            for name, size in pool_sizes.items()
            if self._sizing.is_saturated(requested[name], size)
        ]
        if saturated:
            logger.warning(
                "pool_saturated",
                kind=collection.kind,
                pools=saturated,
                fetch_size=max(requested[name] for name in saturated),
                offset=offset,
            )

        facets = count_facets(
            items, predicate, collection.facet_taxonomies, collection.vocabularies
        )
        page = paginate(sort_items(matched), after, page_size, self._max_page_size)

        logger.info(
            "aggregate_complete",
            kind=collection.kind,
            pools=pool_sizes,
            merged=len(items),
            total=page.total,
            returned=len(page.items),
            offset=page.offset,
            truncated=bool(saturated),
            elapsed_ms=round((time.monotonic() - started) * 1000, 1),
        )

        return PageResult(
            items=page.items,
            page_info=page.page_info,
            total=page.total,
            facets=facets,
            meta=PageMeta(overall_total=len(items), truncated=bool(saturated), pools=pool_sizes),
        )

    async def collect(self, kind: str, filters: Mapping[str, Any] | None = None) -> list[NormalizedItem]:
        """Return every item of *kind* matching *filters*, following cursors."""
        collected: list[NormalizedItem] = []
        after: str | None = None
        while True:
            result = await self.aggregate(kind, filters, first=self._max_page_size, after=after)
            collected.extend(result.items)
            if not result.page_info.has_next_page:
                return collected
            after = result.page_info.end_cursor

    @staticmethod
    def _merge(
        pools: tuple[PoolSpec, ...],
        batches: list[list[dict[str, Any]]],
    ) -> list[NormalizedItem]:
        items: list[NormalizedItem] = []
        seen: set[str] = set()
        for pool, batch in zip(pools, batches):
            for record in batch:
                item = pool.normalize(record)
                if item is None:
                    continue
                if item.id in seen:
                    logger.debug("duplicate_item_dropped", pool=pool.name, id=item.id)
                    continue
                seen.add(item.id)
                items.append(item)
        return items
