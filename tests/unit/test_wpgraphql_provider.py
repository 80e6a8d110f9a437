"""Unit tests for the WPGraphQL content pool provider."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.providers.content.wpgraphql_provider import POOL_QUERIES, WPGraphQLProvider
from src.utils.errors import ConfigurationError, ContentFetchError

_ENDPOINT = "https://cms.example.com/graphql"


def _response(status: int = 200, **kwargs) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", _ENDPOINT), **kwargs)


def _client(response: httpx.Response | None = None, error: Exception | None = None) -> MagicMock:
    client = MagicMock(spec=httpx.AsyncClient)
    if error is not None:
        client.post = AsyncMock(side_effect=error)
    else:
        client.post = AsyncMock(return_value=response)
    return client


def _provider(client: MagicMock, **overrides) -> WPGraphQLProvider:
    kwargs = {"endpoint": _ENDPOINT}
    kwargs.update(overrides)
    return WPGraphQLProvider(client, **kwargs)


# ======================================================================
# Construction
# ======================================================================


class TestWPGraphQLProviderSetup:
    def test_empty_endpoint_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError, match="WP_GRAPHQL_ENDPOINT"):
            WPGraphQLProvider(_client(), endpoint="")

    def test_name_and_pools(self) -> None:
        provider = _provider(_client())
        assert provider.get_provider_name() == "wpgraphql"
        assert provider.supported_pools() == frozenset(
            {"video_entry", "project_video", "post", "project"}
        )

    def test_every_pool_query_takes_a_limit(self) -> None:
        for spec in POOL_QUERIES.values():
            assert "$limit: Int!" in spec.document
            assert spec.root in spec.document

    def test_video_entries_read_description_from_metadata(self) -> None:
        document = POOL_QUERIES["video_entry"].document
        assert "videoLibraryMetadata { youtubeUrl description }" in document
        assert "excerpt" not in document


# ======================================================================
# fetch_pool
# ======================================================================


class TestFetchPool:
    @pytest.mark.asyncio
    async def test_returns_nodes(self) -> None:
        nodes = [{"slug": "a"}, {"slug": "b"}]
        client = _client(_response(json={"data": {"posts": {"nodes": nodes}}}))
        provider = _provider(client)

        records = await provider.fetch_pool("post", 60)

        assert records == nodes
        call = client.post.call_args
        assert call.args[0] == _ENDPOINT
        assert call.kwargs["json"]["variables"] == {"limit": 60}
        assert "query ListPosts" in call.kwargs["json"]["query"]
        assert call.kwargs["auth"] is None

    @pytest.mark.asyncio
    async def test_basic_auth_when_both_credentials_set(self) -> None:
        client = _client(_response(json={"data": {"projects": {"nodes": []}}}))
        provider = _provider(client, auth_user="editor", auth_password="app pass")

        await provider.fetch_pool("project", 10)

        assert isinstance(client.post.call_args.kwargs["auth"], httpx.BasicAuth)

    @pytest.mark.asyncio
    async def test_partial_credentials_are_ignored(self) -> None:
        client = _client(_response(json={"data": {"projects": {"nodes": []}}}))
        provider = _provider(client, auth_user="editor")

        await provider.fetch_pool("project", 10)

        assert client.post.call_args.kwargs["auth"] is None

    @pytest.mark.asyncio
    async def test_missing_connection_is_empty(self) -> None:
        client = _client(_response(json={"data": {"videoEntries": None}}))
        assert await _provider(client).fetch_pool("video_entry", 5) == []

    @pytest.mark.asyncio
    async def test_non_dict_nodes_are_skipped(self) -> None:
        client = _client(_response(json={"data": {"posts": {"nodes": [{"slug": "a"}, None, 3]}}}))
        assert await _provider(client).fetch_pool("post", 5) == [{"slug": "a"}]

    @pytest.mark.asyncio
    async def test_unknown_pool(self) -> None:
        client = _client()
        with pytest.raises(ContentFetchError, match="podcast"):
            await _provider(client).fetch_pool("podcast", 5)
        client.post.assert_not_called()


# ======================================================================
# Failures
# ======================================================================


class TestExecuteFailures:
    @pytest.mark.asyncio
    async def test_http_status_error(self) -> None:
        client = _client(_response(502, text="upstream down"))
        with pytest.raises(ContentFetchError) as exc_info:
            await _provider(client).fetch_pool("post", 5)
        assert exc_info.value.message == "WPGraphQL HTTP 502 Bad Gateway"
        assert exc_info.value.provider_name == "wpgraphql"

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        error = httpx.ConnectError("connection refused", request=httpx.Request("POST", _ENDPOINT))
        client = _client(error=error)
        with pytest.raises(ContentFetchError, match="connection refused") as exc_info:
            await _provider(client).fetch_pool("post", 5)
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_non_json_body(self) -> None:
        client = _client(_response(text="<html>maintenance</html>"))
        with pytest.raises(ContentFetchError, match="non-JSON"):
            await _provider(client).fetch_pool("post", 5)

    @pytest.mark.asyncio
    async def test_graphql_errors_are_terse_by_default(self) -> None:
        errors = [{"message": "Cannot query field \"videoEntries\""}]
        client = _client(_response(json={"errors": errors, "data": None}))
        with pytest.raises(ContentFetchError) as exc_info:
            await _provider(client).fetch_pool("video_entry", 5)
        assert exc_info.value.message == "WPGraphQL responded with an error"

    @pytest.mark.asyncio
    async def test_graphql_errors_verbose(self) -> None:
        errors = [{"message": "Internal server error"}]
        client = _client(_response(json={"errors": errors}))
        with pytest.raises(ContentFetchError) as exc_info:
            await _provider(client, verbose_errors=True).fetch_pool("post", 5)
        assert json.loads(exc_info.value.message) == errors

    @pytest.mark.asyncio
    async def test_execute_returns_data_object(self) -> None:
        client = _client(_response(json={"data": {"viewer": {"name": "x"}}}))
        data = await _provider(client).execute("{ viewer { name } }")
        assert data == {"viewer": {"name": "x"}}
        assert client.post.call_args.kwargs["json"]["variables"] == {}
