"""Discovery-engine domain models - re-exports all public model classes.

    - content.py - normalized items, taxonomy terms, video media, and the
                   taxonomy key constants
    - query.py   - filter query, facet groups, page info and page results
"""

from __future__ import annotations

from src.models.content import (
    BUCKET,
    CATEGORY,
    MATERIAL_TYPE,
    ROOF_COLOR,
    SERVICE_AREA,
    TAXONOMY_LABELS,
    NormalizedItem,
    TermRef,
    VideoMedia,
)
from src.models.query import (
    FacetBucket,
    FacetGroup,
    FilterQuery,
    PageInfo,
    PageMeta,
    PageResult,
)

__all__ = [
    "BUCKET",
    "CATEGORY",
    "MATERIAL_TYPE",
    "ROOF_COLOR",
    "SERVICE_AREA",
    "TAXONOMY_LABELS",
    "FacetBucket",
    "FacetGroup",
    "FilterQuery",
    "NormalizedItem",
    "PageInfo",
    "PageMeta",
    "PageResult",
    "TermRef",
    "VideoMedia",
]
