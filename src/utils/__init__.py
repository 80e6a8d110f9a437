"""Utility modules for the discovery engine.

Available utility modules (all re-exported here for convenience):

- **errors** -- Domain-specific exception hierarchy rooted at DiscoveryError;
  pool-fetch failures raise ContentFetchError so the route layer can map
  them to a degraded response instead of an empty result.
- **concurrency** -- fail-fast asyncio fan-out used to fetch independent
  content pools in parallel.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **text_normalizer** -- search normalization (case, diacritics, whitespace),
  HTML stripping, slug and YouTube-id extraction, and the memoized
  normalized-text arena shared by the server predicate and client sync.
"""

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    ContentFetchError,
    DiscoveryError,
    UnknownCollectionError,
)

# -- Async concurrency helpers ---------------------------------------------
from src.utils.concurrency import gather_all

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

# -- Text normalization ----------------------------------------------------
from src.utils.text_normalizer import (
    NormalizedTextCache,
    extract_youtube_id,
    normalize_search_text,
    slugify,
    strip_html,
)

__all__ = [
    "ConfigurationError",
    "ContentFetchError",
    "DiscoveryError",
    "NormalizedTextCache",
    "UnknownCollectionError",
    "configure_logging",
    "extract_youtube_id",
    "gather_all",
    "get_logger",
    "normalize_search_text",
    "slugify",
    "strip_html",
]
