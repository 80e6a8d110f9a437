"""Pydantic request/response schemas for the discovery API.

Defines the public contract for the REST endpoints: resource pages, filter
configuration for client mounts, cache revalidation, and health.  The page
body itself is :class:`src.models.query.PageResult`, served with camelCase
aliases.

# ─── HOW SCHEMAS WORK ─────────────────────────────────────────────────
#
# These Pydantic models define the *shape* of HTTP request and response
# bodies.  FastAPI uses them for:
#
#   1. **Validation** - the resources route validates its body explicitly
#      so a malformed body becomes a 400 (not FastAPI's default 422).
#   2. **Serialization** - outgoing objects are converted to JSON matching
#      the schema (via response_model=...).
#   3. **Documentation** - OpenAPI docs are generated from these schemas
#      (visible at /docs).
#
# Convention: Request schemas end with "Request", response schemas
# end with "Response".
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ResourceQueryRequest(BaseModel):
    """Body of ``POST /api/v1/resources/{kind}``.

    ``first`` is clamped later rather than rejected, so strings and floats
    pass validation here.  ``filters`` keys are free text (``q``, ``search``,
    ``text``) and taxonomy keys or their aliases.
    """

    model_config = ConfigDict(extra="ignore")

    first: int | float | str | None = None
    after: str | None = None
    filters: dict[str, Any] = Field(default_factory=dict)

    @field_validator("after", mode="before")
    @classmethod
    def _coerce_cursor(cls, value: Any) -> str | None:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return None

    @field_validator("filters", mode="before")
    @classmethod
    def _coerce_filters(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}


class FilterGroupConfig(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    taxonomy: str
    param: str


class FilterConfigResponse(BaseModel):
    """What a client needs to mount the filter synchronizer for one kind."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    kind: str
    text_param: str
    groups: list[FilterGroupConfig] = Field(default_factory=list)
    grouped: bool = False
    disclosure: bool = False
    suggestions: bool = False
    hash_prefix: str | None = None
    min_query_length: int = 2
    prewarm_limit: int = 6
    idle_timeout_seconds: float = 1.2
    disabled_message: str = ""


class RevalidateRequest(BaseModel):
    """Optional body of ``POST /api/v1/revalidate``; no pools means all."""

    pool: str | None = None
    pools: list[str] = Field(default_factory=list)

    def targets(self) -> list[str]:
        names = [*self.pools, *([self.pool] if self.pool else [])]
        return list(dict.fromkeys(n for n in names if n))


class RevalidateResponse(BaseModel):
    revalidated: bool
    pools: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
