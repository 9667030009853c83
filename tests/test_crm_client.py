"""Unit tests for the record store client, using httpx.MockTransport."""

import json

import httpx
import pytest

from fieldsync.crm_client import CRMClient
from fieldsync.errors import CRMRequestError


def _client(handler, max_retries: int = 2) -> CRMClient:
    return CRMClient(
        base_url="https://crm.test",
        api_token="tok",
        location_id="loc-1",
        api_version="2021-07-28",
        max_retries=max_retries,
        backoff_seconds=0,
        transport=httpx.MockTransport(handler),
    )


class TestCRMClient:

    @pytest.mark.asyncio
    async def test_fetch_custom_fields(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"customFields": [{"id": "cf_1", "name": "Motivation"}]})

        client = _client(handler)
        fields = await client.fetch_custom_fields()
        await client.aclose()

        assert fields == [{"id": "cf_1", "name": "Motivation"}]
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/locations/loc-1/customFields"
        assert request.headers["Authorization"] == "Bearer tok"
        assert request.headers["Version"] == "2021-07-28"

    @pytest.mark.asyncio
    async def test_get_custom_field_values(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/contacts/contact-1"
            return httpx.Response(200, json={
                "contact": {
                    "id": "contact-1",
                    "customFields": [
                        {"id": "cf_counter", "value": "4"},
                        {"id": "cf_memory", "value": "[2024-04-01] Motivation: Downsizing"},
                        {"value": "orphan"},
                    ],
                }
            })

        client = _client(handler)
        values = await client.get_custom_field_values("contact-1")
        await client.aclose()

        assert values == {"cf_counter": "4", "cf_memory": "[2024-04-01] Motivation: Downsizing"}

    @pytest.mark.asyncio
    async def test_update_custom_fields_sends_one_batch(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "PUT"
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"succeded": True})

        client = _client(handler)
        updates = [{"id": "cf_counter", "value": 5}, {"id": "cf_timeline", "value": "By April"}]
        await client.update_custom_fields("contact-1", updates)
        await client.aclose()

        assert bodies == [{"customFields": updates}]

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503, text="unavailable")
            return httpx.Response(200, json={"customFields": []})

        client = _client(handler)
        assert await client.fetch_custom_fields() == []
        await client.aclose()
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_retries_transport_errors_then_gives_up(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler, max_retries=2)
        with pytest.raises(CRMRequestError):
            await client.get_contact("contact-1")
        await client.aclose()
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404, json={"message": "Contact not found"})

        client = _client(handler)
        with pytest.raises(CRMRequestError) as exc:
            await client.get_contact("missing")
        await client.aclose()

        assert exc.value.status_code == 404
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_non_json_body_raises_request_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        client = _client(handler)
        with pytest.raises(CRMRequestError) as exc:
            await client.fetch_custom_fields()
        await client.aclose()

        assert exc.value.status_code == 200

    @pytest.mark.asyncio
    async def test_non_object_body_raises_request_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"id": "cf_1"}])

        client = _client(handler)
        with pytest.raises(CRMRequestError):
            await client.fetch_custom_fields()
        await client.aclose()

    @pytest.mark.asyncio
    async def test_empty_body_reads_as_empty_object(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(204)

        client = _client(handler)
        assert await client.update_custom_fields("contact-1", [{"id": "cf_1", "value": "x"}]) == {}
        await client.aclose()
