"""Public interface definitions for external collaborators.

The discovery engine reaches every outside system through the abstract base
classes in this package.  Concrete adapters live in ``src/providers/`` (and
``src/sync/`` for render surfaces) and are injected at startup in
``src/main.py``, so unit tests can pass fakes without touching the network.

CONCRETE PROVIDER MAP:
    Interface               →  Concrete implementations
    ─────────────────────────────────────────────────────────────────────
    IContentPoolProvider    →  WPGraphQLProvider, CachedPoolProvider
    ICacheProvider          →  MemoryCacheProvider
    IRenderSurface          →  MemoryRenderSurface
"""

from src.interfaces.cache_provider import ICacheProvider
from src.interfaces.content_pool_provider import IContentPoolProvider
from src.interfaces.render_surface import (
    Chip,
    IRenderSurface,
    Suggestion,
    SurfaceItem,
    ToggleControl,
)

__all__ = [
    "Chip",
    "Suggestion",
    "ICacheProvider",
    "IContentPoolProvider",
    "IRenderSurface",
    "SurfaceItem",
    "ToggleControl",
]
