"""Tests for MetabaseClient — headers, payloads, and error translation."""

import json

import httpx
import pytest

from metabase_tenancy.common.exceptions import MetabaseError
from metabase_tenancy.metabase.client import MetabaseClient


def make_client(handler) -> MetabaseClient:
    return MetabaseClient(
        "https://metabase.test/",
        "mb-api-key",
        transport=httpx.MockTransport(handler),
    )


class TestRequests:
    async def test_sends_api_key_header(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[{"id": 1, "name": "All Users"}])

        client = make_client(handler)
        groups = await client.list_groups()
        await client.aclose()

        assert groups == [{"id": 1, "name": "All Users"}]
        assert seen[0].headers["x-api-key"] == "mb-api-key"
        assert seen[0].method == "GET"
        assert str(seen[0].url) == "https://metabase.test/api/permissions/group"

    async def test_copy_dashboard_payload(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": 2001})

        client = make_client(handler)
        result = await client.copy_dashboard(
            71,
            name="Sales Dashboard",
            description="Sales dashboard for Project 42",
            collection_id=1001,
        )
        await client.aclose()

        assert result["id"] == 2001
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/api/dashboard/71/copy"
        assert json.loads(seen[0].content) == {
            "name": "Sales Dashboard",
            "description": "Sales dashboard for Project 42",
            "is_deep_copy": True,
            "collection_id": 1001,
        }

    async def test_create_collection_payload(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": 1001})

        client = make_client(handler)
        await client.create_collection(
            "Project 42", "Dashboard collection for project 42", parent_id=162,
        )
        await client.aclose()

        body = json.loads(seen[0].content)
        assert seen[0].url.path == "/api/collection"
        assert body["parent_id"] == 162
        assert body["color"] == "#509EE3"

    async def test_graph_put_sends_whole_graph(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"revision": 3, "groups": {}})

        client = make_client(handler)
        graph = {"revision": 2, "groups": {"9": {"500": "write"}}}
        await client.put_collection_graph(graph)
        await client.aclose()

        assert seen[0].method == "PUT"
        assert json.loads(seen[0].content) == graph

    async def test_empty_body_returns_none(self):
        client = make_client(lambda request: httpx.Response(204))
        assert await client.delete_group(9) is None
        await client.aclose()


class TestErrors:
    async def test_error_response_raises(self):
        client = make_client(
            lambda request: httpx.Response(400, json={"message": "Invalid graph"})
        )
        with pytest.raises(MetabaseError) as exc_info:
            await client.put_permissions_graph({"revision": 1, "groups": {}})
        await client.aclose()

        err = exc_info.value
        assert err.status_code == 400
        assert err.payload == {"message": "Invalid graph"}
        assert "Invalid graph" in err.message
        assert err.code == "REMOTE_ERROR"

    async def test_text_error_body(self):
        client = make_client(lambda request: httpx.Response(404, text="Not found."))
        with pytest.raises(MetabaseError) as exc_info:
            await client.delete_collection(1001)
        await client.aclose()

        assert exc_info.value.status_code == 404
        assert exc_info.value.payload == "Not found."

    async def test_transport_failure_has_no_status(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)
        with pytest.raises(MetabaseError) as exc_info:
            await client.list_groups()
        await client.aclose()

        assert exc_info.value.status_code is None
        assert exc_info.value.payload is None
