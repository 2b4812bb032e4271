"""
Integration tests for the list, mutate, refetch flow.

Runs the full stack (façade, query cache, mutation dispatcher, HTTP
transport, normalizer) against an in-memory admin backend.
"""

import asyncio
import json

import httpx
import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from data_access.app.adapters.api_client import ResourceApiClient
from data_access.app.caching.query_cache import QueryCacheStore
from data_access.app.resources.facade import DataAccessClient
from shared.config import get_config
from shared.errors import ValidationError
from shared.test_helpers import FakeClock, test_data_factory


class FakeAdminBackend:
    """Minimal coupon backend speaking the admin response envelope."""

    def __init__(self):
        self.coupons = {c["id"]: dict(c) for c in test_data_factory.create_raw_coupons()}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        path = request.url.path.replace("/api/v1/admin/coupons", "", 1)

        if request.method == "GET" and path == "":
            records = list(self.coupons.values())
            return httpx.Response(200, json={
                "status": 1,
                "data": {
                    "coupons": records,
                    "pagination": {"page": 1, "limit": 20, "total": len(records), "totalPages": 1},
                },
            })
        if request.method == "GET" and path == "/stats":
            return httpx.Response(200, json={"status": 1, "data": {"total": len(self.coupons)}})
        if request.method == "GET":
            record = self.coupons.get(path.lstrip("/"))
            if record is None:
                return httpx.Response(404, json={"status": 0, "message": "Coupon not found"})
            return httpx.Response(200, json={"status": 1, "data": {"coupon": record}})
        if request.method == "POST":
            body = json.loads(request.content)
            if body.get("code") in {c.get("code") for c in self.coupons.values()}:
                return httpx.Response(409, json={"errors": [{"field": "code", "message": "Code already exists"}]})
            record = {"id": f"c{len(self.coupons) + 1}", **body}
            self.coupons[record["id"]] = record
            return httpx.Response(201, json={"status": 1, "data": {"coupon": record}})
        if request.method == "DELETE":
            self.coupons.pop(path.lstrip("/"), None)
            return httpx.Response(200, json={"status": 1, "data": None})
        return httpx.Response(405, json={"message": "Method not allowed"})

    def count(self, method: str, path: str) -> int:
        return sum(1 for item in self.requests if item == (method, path))


class TestListThenMutateFlow:
    """Integration tests for cache coherence across mutations."""

    @pytest.fixture
    def backend(self):
        return FakeAdminBackend()

    @pytest.fixture
    def client(self, backend):
        config = get_config(api_base_url="http://api.test/api/v1", metrics_enabled=False)
        api = ResourceApiClient.from_config(config, transport=httpx.MockTransport(backend))
        return DataAccessClient(config, api=api, store=QueryCacheStore.create(config, clock=FakeClock()))

    @pytest.mark.asyncio
    async def test_create_makes_next_read_refetch(self, client, backend):
        """Test that a read after a successful create never serves the old page."""
        coupons = client.resource("coupons")

        first = await coupons.list()
        cached = await coupons.list()
        assert [c.id for c in first.items] == ["c1", "c2", "c3"]
        assert cached.items == first.items
        assert backend.count("GET", "/api/v1/admin/coupons") == 1

        await coupons.create({"code": "WELCOME", "type": "fixed", "value": 100})
        after = await coupons.list()

        assert backend.count("GET", "/api/v1/admin/coupons") == 2
        assert [c.code for c in after.items][-1] == "WELCOME"
        assert after.items[-1].type == "fixed"
        assert after.pagination.total == 4
        await client.dispose()

    @pytest.mark.asyncio
    async def test_failed_create_keeps_cached_page(self, client, backend):
        coupons = client.resource("coupons")
        await coupons.list()

        with pytest.raises(ValidationError) as exc_info:
            await coupons.create({"code": "SAVE10"})

        assert exc_info.value.field_errors[0].field == "code"
        await coupons.list()
        assert backend.count("GET", "/api/v1/admin/coupons") == 1
        await client.dispose()

    @pytest.mark.asyncio
    async def test_delete_invalidates_detail_and_stats(self, client, backend):
        coupons = client.resource("coupons")
        detail = await coupons.detail("c1")
        stats = await coupons.stats()
        assert detail.entity.code == "SAVE10"
        assert stats.data == {"total": 3}

        await coupons.delete("c1")
        detail = await coupons.detail("c1")
        stats = await coupons.stats()

        assert detail.is_error
        assert detail.error_message == "Coupon not found"
        assert stats.data == {"total": 2}
        await client.dispose()

    @pytest.mark.asyncio
    async def test_concurrent_reads_share_one_request(self, client, backend):
        coupons = client.resource("coupons")

        results = await asyncio.gather(*(coupons.list({"search": ""}) for _ in range(5)))

        assert backend.count("GET", "/api/v1/admin/coupons") == 1
        assert all(len(result.items) == 3 for result in results)
        await client.dispose()
