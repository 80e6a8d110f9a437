"""Content pool provider backed by a WPGraphQL endpoint.

Each pool maps to one named GraphQL operation that lists the newest
published records of a post type.  Requests are single POSTs of
``{query, variables}`` with optional HTTP Basic auth (a WordPress
application password).

There are no retries here: a non-2xx status, a transport error, or a
GraphQL ``errors`` payload raises :class:`ContentFetchError`, and the
aggregator lets it propagate.  Caching lives one layer up in
:class:`~src.providers.content.cached_pool_provider.CachedPoolProvider`.
"""

from __future__ import annotations

import json
from typing import Any, NamedTuple

import httpx

from src.interfaces.content_pool_provider import IContentPoolProvider
from src.utils.errors import ConfigurationError, ContentFetchError
from src.utils.logging import get_logger

_PROVIDER_NAME = "wpgraphql"


class _PoolQuery(NamedTuple):
    operation: str
    root: str
    document: str


_LIST_VIDEO_ENTRIES = """
query ListVideoEntries($limit: Int!) {
  videoEntries(first: $limit, where: { status: PUBLISH, orderby: { field: DATE, order: DESC } }) {
    nodes {
      id
      slug
      title
      date
      videoCategories(first: 10) { nodes { name slug } }
      videoLibraryMetadata { youtubeUrl description }
    }
  }
}
"""

_LIST_PROJECT_VIDEOS = """
query ListProjectVideos($limit: Int!) {
  projects(first: $limit, where: { status: PUBLISH, orderby: { field: DATE, order: DESC } }) {
    nodes {
      slug
      uri
      title
      date
      projectVideoInfo { youtubeUrl }
      projectDetails { projectDescription }
      projectFilters {
        materialType { nodes { name slug } }
        serviceArea  { nodes { name slug } }
      }
    }
  }
}
"""

_LIST_POSTS = """
query ListPosts($limit: Int!) {
  posts(first: $limit, where: { status: PUBLISH, orderby: { field: DATE, order: DESC } }) {
    nodes {
      slug
      uri
      title
      date
      excerpt
      content
      featuredImage { node { sourceUrl altText } }
      categories(first: 12) { nodes { name slug } }
    }
  }
}
"""

_LIST_PROJECTS = """
query ListProjects($limit: Int!) {
  projects(first: $limit, where: { status: PUBLISH, orderby: { field: DATE, order: DESC } }) {
    nodes {
      slug
      uri
      title
      date
      featuredImage { node { sourceUrl altText } }
      projectDetails { projectDescription }
      projectFilters {
        materialType { nodes { name slug } }
        roofColor    { nodes { name slug } }
        serviceArea  { nodes { name slug } }
      }
    }
  }
}
"""

POOL_QUERIES: dict[str, _PoolQuery] = {
    "video_entry": _PoolQuery("ListVideoEntries", "videoEntries", _LIST_VIDEO_ENTRIES),
    "project_video": _PoolQuery("ListProjectVideos", "projects", _LIST_PROJECT_VIDEOS),
    "post": _PoolQuery("ListPosts", "posts", _LIST_POSTS),
    "project": _PoolQuery("ListProjects", "projects", _LIST_PROJECTS),
}


class WPGraphQLProvider(IContentPoolProvider):
    """Fetches content pools from a WPGraphQL endpoint.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient`` for testability and connection pooling.
    endpoint:
        Absolute URL of the GraphQL endpoint.
    auth_user, auth_password:
        Optional Basic-auth credentials; both must be set to be used.
    verbose_errors:
        Include the raw GraphQL ``errors`` payload in raised messages.
    timeout:
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        endpoint: str,
        auth_user: str = "",
        auth_password: str = "",
        verbose_errors: bool = False,
        timeout: float = 30.0,
    ) -> None:
        if not endpoint:
            raise ConfigurationError(
                message="WP_GRAPHQL_ENDPOINT is not configured",
                provider_name=_PROVIDER_NAME,
            )
        self._http = http_client
        self._endpoint = endpoint
        self._auth = httpx.BasicAuth(auth_user, auth_password) if auth_user and auth_password else None
        self._verbose_errors = verbose_errors
        self._timeout = timeout
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # IContentPoolProvider implementation
    # ------------------------------------------------------------------

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME

    def supported_pools(self) -> frozenset[str]:
        return frozenset(POOL_QUERIES)

    async def fetch_pool(self, pool: str, limit: int) -> list[dict[str, Any]]:
        spec = POOL_QUERIES.get(pool)
        if spec is None:
            raise ContentFetchError(
                message=f"No query registered for pool '{pool}'",
                provider_name=_PROVIDER_NAME,
            )

        data = await self.execute(spec.document, {"limit": limit}, operation=spec.operation)
        connection = data.get(spec.root)
        nodes = connection.get("nodes") if isinstance(connection, dict) else None
        records = [node for node in nodes or () if isinstance(node, dict)]
        self._logger.debug("pool_fetched", pool=pool, limit=limit, count=len(records))
        return records

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def execute(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        operation: str | None = None,
    ) -> dict[str, Any]:
        """POST a GraphQL document and return its ``data`` object.

        Raises
        ------
        ContentFetchError
            On transport failure, non-2xx status, an unparseable body, or a
            GraphQL ``errors`` payload.
        """
        payload = {"query": query, "variables": variables or {}}
        try:
            response = await self._http.post(
                self._endpoint,
                json=payload,
                headers={"Content-Type": "application/json"},
                auth=self._auth,
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            self._logger.warning("wpgraphql_request_failed", operation=operation, error=str(exc))
            raise ContentFetchError(
                message=f"WPGraphQL request failed: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        if response.status_code < 200 or response.status_code >= 300:
            self._logger.warning(
                "wpgraphql_http_error",
                operation=operation,
                status=response.status_code,
            )
            raise ContentFetchError(
                message=f"WPGraphQL HTTP {response.status_code} {response.reason_phrase}".rstrip(),
                provider_name=_PROVIDER_NAME,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise ContentFetchError(
                message="WPGraphQL returned a non-JSON body",
                provider_name=_PROVIDER_NAME,
            ) from exc

        if not isinstance(body, dict):
            raise ContentFetchError(
                message="WPGraphQL returned an unexpected body",
                provider_name=_PROVIDER_NAME,
            )

        errors = body.get("errors")
        if errors:
            self._logger.warning(
                "wpgraphql_errors",
                operation=operation,
                errors=errors[:3] if isinstance(errors, list) else errors,
            )
            message = (
                json.dumps(errors) if self._verbose_errors else "WPGraphQL responded with an error"
            )
            raise ContentFetchError(message=message, provider_name=_PROVIDER_NAME)

        data = body.get("data")
        return data if isinstance(data, dict) else {}
