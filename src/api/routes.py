"""FastAPI API routes for the discovery engine.

Provides the resource page endpoint, the filter configuration used by
client mounts, cache revalidation, and a health check.  Service
dependencies are resolved from ``app.state`` via FastAPI's ``Depends``
using the ``Annotated`` pattern.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                         Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/resources/{kind}         POST    One filtered page + facet counts
# /api/v1/filters/{kind}           GET     Synchronizer settings for a kind
# /api/v1/revalidate               POST    Drop cached pools (secret header)
# /api/v1/health                   GET     Health check + provider status
#
# DEPENDENCY INJECTION PATTERN:
# Each route declares its dependencies as type-annotated params.  FastAPI
# resolves these via Depends() helpers that read from app.state
# (populated at startup in main.py's _build_all).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
import secrets
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError

from src.api.schemas import (
    ErrorResponse,
    FilterConfigResponse,
    FilterGroupConfig,
    HealthResponse,
    ResourceQueryRequest,
    RevalidateRequest,
    RevalidateResponse,
)
from src.config.settings import Settings
from src.models.query import PageResult
from src.providers.content.cached_pool_provider import CachedPoolProvider
from src.services.content_aggregator import ContentPoolAggregator
from src.sync.engine import IDLE_TIMEOUT_SECONDS
from src.sync.strategies import resolve_strategy
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

VERSION = "0.1.0"

router = APIRouter(prefix="/api/v1")


# ---------------------------------------------------------------------------
# Dependency injection helpers: resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_aggregator(request: Request) -> ContentPoolAggregator:
    """Return the content pool aggregator from application state."""
    return request.app.state.aggregator


def _get_pool_cache(request: Request) -> CachedPoolProvider | None:
    return getattr(request.app.state, "pool_cache", None)


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _get_sync_config(request: Request) -> dict[str, Any]:
    return getattr(request.app.state, "sync_config", None) or {}


AggregatorDep = Annotated[ContentPoolAggregator, Depends(_get_aggregator)]
PoolCacheDep = Annotated[CachedPoolProvider | None, Depends(_get_pool_cache)]
SettingsDep = Annotated[Settings, Depends(_get_settings)]
SyncConfigDep = Annotated[dict[str, Any], Depends(_get_sync_config)]


async def _read_json_object(request: Request) -> dict[str, Any] | None:
    """Return the JSON object body, ``{}`` when empty, ``None`` when invalid."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


@router.post(
    "/resources/{kind}",
    response_model=PageResult,
    responses={
        400: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Query one page of a resource collection",
)
async def query_resources(
    kind: str,
    request: Request,
    aggregator: AggregatorDep,
) -> PageResult:
    """Return one filtered, sorted page of *kind* with facet counts.

    Body: ``{"first": 24, "after": "<cursor>", "filters": {...}}``; every
    field is optional.  An unknown *kind* is a 400 and a failed content
    pool fetch is a 502 (both via ``ErrorHandlingMiddleware``).
    """
    payload = await _read_json_object(request)
    if payload is None:
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    try:
        body = ResourceQueryRequest.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail="Invalid request body") from exc

    return await aggregator.aggregate(kind, body.filters, first=body.first, after=body.after)


# ---------------------------------------------------------------------------
# Filter configuration for client mounts
# ---------------------------------------------------------------------------


@router.get(
    "/filters/{kind}",
    response_model=FilterConfigResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Filter synchronizer settings for a kind",
)
async def filter_config(kind: str, sync_config: SyncConfigDep) -> FilterConfigResponse:
    """Return URL parameter names and sync defaults for *kind*.

    Parameter names from ``config.yaml`` (``sync.url_params``) override the
    built-in names.
    """
    config = resolve_strategy(kind)
    names = config.url_params.with_overrides(sync_config.get("url_params"))
    return FilterConfigResponse(
        kind=config.kind,
        text_param=names.text,
        groups=[
            FilterGroupConfig(taxonomy=taxonomy, param=names.groups[taxonomy])
            for taxonomy in config.groups
            if taxonomy in names.groups
        ],
        grouped=config.grouped,
        disclosure=config.disclosure,
        suggestions=config.suggestions,
        hash_prefix=config.hash_prefix,
        min_query_length=sync_config.get("min_query_length", 2),
        prewarm_limit=sync_config.get("prewarm_limit", config.prewarm_limit),
        idle_timeout_seconds=sync_config.get("idle_timeout_seconds", IDLE_TIMEOUT_SECONDS),
        disabled_message=config.disabled_message,
    )


# ---------------------------------------------------------------------------
# Revalidation
# ---------------------------------------------------------------------------


def _authorized(request: Request, expected: str) -> bool:
    incoming = (
        request.headers.get("x-revalidate-secret")
        or request.query_params.get("secret")
        or ""
    )
    return bool(expected) and secrets.compare_digest(incoming, expected)


@router.post(
    "/revalidate",
    response_model=RevalidateResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Drop cached content pools",
)
async def revalidate(
    request: Request,
    app_settings: SettingsDep,
    pool_cache: PoolCacheDep,
) -> RevalidateResponse:
    """Invalidate cached pools so the next page request refetches them.

    Requires ``REVALIDATE_SECRET`` to be configured and sent in the
    ``x-revalidate-secret`` header (or ``?secret=``).  A malformed body is
    treated as empty, which revalidates every pool.
    """
    if not _authorized(request, app_settings.revalidate_secret):
        raise HTTPException(status_code=401, detail="Unauthorized")

    payload = await _read_json_object(request) or {}
    try:
        body = RevalidateRequest.model_validate(payload)
    except ValidationError:
        body = RevalidateRequest()

    targets = body.targets()
    if pool_cache is None:
        return RevalidateResponse(revalidated=False, pools=targets)

    if targets:
        for pool in targets:
            await pool_cache.invalidate(pool)
    else:
        await pool_cache.invalidate()
    _logger.info("revalidated", pools=targets or ["*"])
    return RevalidateResponse(revalidated=True, pools=targets)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider configuration."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    status = "healthy" if providers.get("content", False) else "degraded"
    return HealthResponse(status=status, version=VERSION, providers=providers)
