"""Client filter synchronizer: the filtering model applied to rendered content."""

from src.sync.engine import FilterSynchronizer, SyncState, mount_resource_filters
from src.sync.memory_surface import MemoryRenderSurface
from src.sync.scheduler import CoalescingScheduler
from src.sync.strategies import BLOG, FAQ, PROJECT, STRATEGIES, VIDEO, KindConfig, resolve_strategy
from src.sync.url_state import UrlParamNames, parse_filter_state, serialize_filter_state

__all__ = [
    "BLOG",
    "FAQ",
    "PROJECT",
    "STRATEGIES",
    "VIDEO",
    "CoalescingScheduler",
    "FilterSynchronizer",
    "KindConfig",
    "MemoryRenderSurface",
    "SyncState",
    "UrlParamNames",
    "mount_resource_filters",
    "parse_filter_state",
    "resolve_strategy",
    "serialize_filter_state",
]
