import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from app.domain.errors import ConstraintViolation, StoreError
from app.infrastructure.rest_client import RestTableClient, parse_content_range
from app.infrastructure.table_client import EQ, ILIKE, Filter, PageRange, Sort


def make_client(handler):
    return RestTableClient("https://example.supabase.co/", "anon-key", transport=httpx.MockTransport(handler))


def run(coro):
    return asyncio.run(coro)


def test_parse_content_range():
    assert parse_content_range("0-9/25") == 25
    assert parse_content_range("*/0") == 0
    assert parse_content_range("0-9/*") is None
    assert parse_content_range(None) is None


def test_select_builds_postgrest_query():
    seen = {}

    def handler(request):
        seen["request"] = request
        return httpx.Response(200, json=[{"id": "1"}], headers={"Content-Range": "0-0/25"})

    async def scenario():
        client = make_client(handler)
        try:
            return await client.select(
                filters=(Filter("customer_name", ILIKE, "ana"), Filter("status", EQ, "SHIPPED")),
                sort=Sort("customer_name", descending=False),
                page_range=PageRange(10, 5),
                count=True,
            )
        finally:
            await client.aclose()

    result = run(scenario())
    request = seen["request"]
    assert request.url.path == "/rest/v1/orders"
    params = request.url.params
    assert params["select"] == "*"
    assert params["customer_name"] == "ilike.*ana*"
    assert params["status"] == "eq.SHIPPED"
    assert params["order"] == "customer_name.asc"
    assert params["offset"] == "10"
    assert params["limit"] == "5"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["authorization"] == "Bearer anon-key"
    assert request.headers["prefer"] == "count=exact"
    assert result.rows == [{"id": "1"}]
    assert result.total_count == 25


def test_select_defaults_to_newest_first():
    seen = {}

    def handler(request):
        seen["params"] = request.url.params
        return httpx.Response(200, json=[])

    result = run(make_client(handler).select())
    assert seen["params"]["order"] == "created_at.desc"
    assert "offset" not in seen["params"]
    assert result.total_count is None


def test_insert_sends_numbers_and_returns_id():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        seen["prefer"] = request.headers["prefer"]
        return httpx.Response(201, json=[{"id": "new-id"}])

    order_id = run(make_client(handler).insert({"customer_name": "Ana", "price_per_unit": Decimal("9.99")}))
    assert order_id == "new-id"
    assert seen["body"] == [{"customer_name": "Ana", "price_per_unit": 9.99, "status": "CREATED"}]
    assert seen["prefer"] == "return=representation"


def test_update_and_delete_report_affected_rows():
    def handler(request):
        assert request.url.params["id"] == "eq.abc"
        if request.method == "PATCH":
            return httpx.Response(200, json=[{"id": "abc"}])
        return httpx.Response(200, json=[])

    client = make_client(handler)
    assert run(client.update_by_id("abc", {"status": "SHIPPED"})) == 1
    assert run(client.delete_by_id("abc")) == 0


def test_constraint_errors_are_classified():
    def handler(request):
        return httpx.Response(400, json={"code": "23514", "message": "violates check constraint"})

    with pytest.raises(ConstraintViolation) as exc_info:
        run(make_client(handler).insert({"quantity": 0}))
    assert exc_info.value.message == "violates check constraint"
    assert exc_info.value.status_code == 400


def test_other_http_errors_are_store_errors():
    def handler(request):
        return httpx.Response(401, json={"message": "Invalid API key"})

    with pytest.raises(StoreError) as exc_info:
        run(make_client(handler).select())
    assert not isinstance(exc_info.value, ConstraintViolation)
    assert exc_info.value.message == "Invalid API key"


def test_network_failure_is_store_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StoreError) as exc_info:
        run(make_client(handler).select())
    assert "Could not reach the order store" in exc_info.value.message


def test_search_wildcards_are_neutralised():
    seen = []

    def handler(request):
        seen.append(request.url.params["customer_name"])
        return httpx.Response(200, json=[])

    client = make_client(handler)
    run(client.select(filters=(Filter("customer_name", ILIKE, "a*b"),)))
    run(client.select(filters=(Filter("customer_name", ILIKE, "100%_off"),)))
    assert seen == ["ilike.*a_b*", "ilike.*100\\%\\_off*"]
