"""Discovery engine FastAPI application entry point.

Wires together the content provider, pool cache, aggregator, and routes via
dependency injection.  Loads configuration from ``.env`` and
``config/config.yaml`` and configures structured logging.

Also exposes :func:`build_aggregator` for the browse CLI, which runs the
same aggregation outside the web server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import VERSION
from src.api.routes import router as api_router
from src.config.loader import load_config
from src.config.settings import Settings
from src.providers.cache.memory_cache import MemoryCacheProvider
from src.providers.content.cached_pool_provider import CachedPoolProvider
from src.providers.content.wpgraphql_provider import WPGraphQLProvider
from src.services.content_aggregator import ContentPoolAggregator
from src.services.paginator import PoolSizingPolicy
from src.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Component assembly
# ---------------------------------------------------------------------------


def build_aggregator(
    app_settings: Settings,
    http_client: httpx.AsyncClient,
) -> tuple[ContentPoolAggregator, CachedPoolProvider]:
    """Build the aggregator over a cached WPGraphQL provider.

    Raises:
        ConfigurationError: ``WP_GRAPHQL_ENDPOINT`` is not set.
    """
    remote = WPGraphQLProvider(
        http_client=http_client,
        endpoint=app_settings.wp_graphql_endpoint,
        auth_user=app_settings.wp_auth_user,
        auth_password=app_settings.wp_auth_app_password,
        verbose_errors=app_settings.wp_verbose_errors,
        timeout=app_settings.wp_request_timeout,
    )
    cache = MemoryCacheProvider(
        max_size=app_settings.pool_cache_max_size,
        ttl=app_settings.wp_revalidate_seconds,
    )
    pool_cache = CachedPoolProvider(remote, cache, ttl=app_settings.wp_revalidate_seconds)
    aggregator = ContentPoolAggregator(
        pool_cache,
        sizing=PoolSizingPolicy(
            min_batch=app_settings.pool_min_batch,
            max_bound=app_settings.pool_max_bound,
            multiplier=app_settings.pool_size_multiplier,
        ),
        default_page_size=app_settings.page_size_default,
        max_page_size=app_settings.page_size_max,
        min_query_length=app_settings.min_query_length,
    )
    return aggregator, pool_cache


def _build_all(app_settings: Settings, app_config: dict[str, Any]) -> dict[str, Any]:
    """Construct every component for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    http_client = httpx.AsyncClient(timeout=app_settings.wp_request_timeout)
    aggregator, pool_cache = build_aggregator(app_settings, http_client)

    provider_registry: dict[str, Any] = {
        "content": bool(app_settings.wp_graphql_endpoint),
        "content_provider": pool_cache.get_provider_name(),
        "basic_auth": app_settings.has_basic_auth(),
        "revalidate_seconds": app_settings.wp_revalidate_seconds,
    }

    return {
        "http_client": http_client,
        "aggregator": aggregator,
        "pool_cache": pool_cache,
        "settings": app_settings,
        "sync_config": app_config.get("sync", {}),
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise providers and services on startup, clean up on shutdown."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version=VERSION,
        environment=settings.app_env,
        content_provider=components["provider_registry"]["content_provider"],
        pool_max_bound=settings.pool_max_bound,
    )

    yield

    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Content Discovery API",
        version=VERSION,
        description=(
            "Faceted discovery over CMS content: merged content pools, "
            "free-text and taxonomy filtering, independent facet counts and "
            "cursor pagination."
        ),
        lifespan=_lifespan,
    )

    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=config.get("cors", {}).get("allowed_origins"))

    application.include_router(api_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
