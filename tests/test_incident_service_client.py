"""Tests for the REST incident repository using httpx.MockTransport."""

import json

import httpx
import pytest

from conftest import make_incident
from incident_core_lib.clients import IncidentServiceClient
from incident_core_lib.core.interfaces import Pagination, SearchCriteria
from incident_core_lib.models import IncidentStatus, IncidentStatusKind, Severity
from incident_core_lib.utils.resilience import create_custom_retry

BASE_URL = "http://incident-store.test"


def client_for(handler, **kwargs) -> IncidentServiceClient:
    return IncidentServiceClient(base_url=BASE_URL + "/", transport=httpx.MockTransport(handler), **kwargs)


class TestIncidentServiceClient:
    @pytest.mark.asyncio
    async def test_find_by_id(self):
        stored = make_incident().with_id(4)

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v1/incidents/4"
            assert request.headers["X-API-Key"] == "secret"
            return httpx.Response(200, json=stored.model_dump(mode="json"))

        found = await client_for(handler, api_key="secret").find_by_id(4)

        assert found == stored

    @pytest.mark.asyncio
    async def test_find_by_id_not_found(self):
        client = client_for(lambda request: httpx.Response(404, json={"detail": "Not found"}))
        assert await client.find_by_id(4) is None

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        client = client_for(lambda request: httpx.Response(500))
        with pytest.raises(httpx.HTTPStatusError):
            await client.find_by_id(4)

    @pytest.mark.asyncio
    async def test_create_sends_incident_without_id(self):
        sent = {}

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            body = json.loads(request.content)
            sent.update(body)
            return httpx.Response(201, json={**body, "id": 12})

        created = await client_for(handler).create(make_incident())

        assert "id" not in sent
        assert sent["status"]["kind"] == IncidentStatusKind.OPEN.value
        assert created.id == 12
        assert created.title == "High CPU on api-gateway"

    @pytest.mark.asyncio
    async def test_update(self):
        incident = make_incident(status=IncidentStatus.diagnosed(3)).with_id(5)

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "PUT"
            assert request.url.path == "/api/v1/incidents/5"
            return httpx.Response(200, content=request.content)

        updated = await client_for(handler).update(incident)

        assert updated.status == IncidentStatus.diagnosed(3)

    @pytest.mark.asyncio
    async def test_update_requires_id(self):
        client = client_for(lambda request: httpx.Response(200))
        with pytest.raises(ValueError):
            await client.update(make_incident())

    @pytest.mark.asyncio
    async def test_search_passes_filters_and_page(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert dict(request.url.params) == {
                "query": "cpu",
                "severity": "HIGH",
                "limit": "10",
                "offset": "20",
            }
            return httpx.Response(200, json=[make_incident().with_id(1).model_dump(mode="json")])

        results = await client_for(handler).search(
            SearchCriteria(query="cpu", severity=Severity.HIGH),
            Pagination(limit=10, offset=20),
        )

        assert [i.id for i in results] == [1]


class TestWaitUntilReady:
    @pytest.mark.asyncio
    async def test_retries_until_healthy(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/health"
            calls.append(request)
            return httpx.Response(503 if len(calls) < 2 else 200)

        await client_for(handler).wait_until_ready(create_custom_retry(max_attempts=3, min_wait=0, max_wait=0))

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_gives_up(self):
        client = client_for(lambda request: httpx.Response(503))

        with pytest.raises(httpx.HTTPStatusError):
            await client.wait_until_ready(create_custom_retry(max_attempts=2, min_wait=0, max_wait=0))
