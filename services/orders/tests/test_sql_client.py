import asyncio
import threading
from decimal import Decimal

import pytest

from app.domain.errors import ConstraintViolation
from app.infrastructure.db import init_models, make_engine
from app.infrastructure.sql_client import SqlTableClient
from app.infrastructure.table_client import EQ, ILIKE, Filter, PageRange, Sort


@pytest.fixture
def sql_client():
    engine = make_engine("sqlite://")
    init_models(engine)
    client = SqlTableClient(engine)
    yield client
    asyncio.run(client.aclose())


def order(name, **fields):
    record = {
        "customer_name": name,
        "product_name": "Desk Lamp",
        "quantity": 2,
        "price_per_unit": Decimal("4.50"),
        "delivery_address": "Ilica 1, Zagreb",
    }
    record.update(fields)
    return record


def test_insert_assigns_id_and_defaults(sql_client):
    order_id = asyncio.run(sql_client.insert(order("Ana Horvat")))
    result = asyncio.run(sql_client.select(filters=(Filter("id", EQ, order_id),)))
    row = result.rows[0]
    assert row["status"] == "CREATED"
    assert row["created_at"] is not None
    assert row["price_per_unit"] == Decimal("4.50")


def test_select_filters_sorts_pages_and_counts(sql_client):
    for name in ["Ana Horvat", "Ivana Kos", "Marko Babić", "Ana Marić"]:
        asyncio.run(sql_client.insert(order(name, status="SHIPPED" if "Ana" in name else "CREATED")))

    result = asyncio.run(sql_client.select(
        filters=(Filter("customer_name", ILIKE, "ana"),),
        sort=Sort("customer_name", descending=False),
        page_range=PageRange(0, 2),
        count=True,
    ))
    assert result.total_count == 3
    assert [r["customer_name"] for r in result.rows] == ["Ana Horvat", "Ana Marić"]

    shipped = asyncio.run(sql_client.select(filters=(Filter("status", EQ, "SHIPPED"),), count=True))
    assert shipped.total_count == 2


def test_search_wildcards_match_literally(sql_client):
    asyncio.run(sql_client.insert(order("100% Cotton Ltd")))
    asyncio.run(sql_client.insert(order("Cotton Ltd")))
    result = asyncio.run(sql_client.select(filters=(Filter("customer_name", ILIKE, "100%"),), count=True))
    assert result.total_count == 1


def test_update_and_delete_return_rowcount(sql_client):
    order_id = asyncio.run(sql_client.insert(order("Ana Horvat")))
    assert asyncio.run(sql_client.update_by_id(order_id, {"status": "DELIVERED"})) == 1
    assert asyncio.run(sql_client.update_by_id("missing", {"status": "DELIVERED"})) == 0
    assert asyncio.run(sql_client.delete_by_id(order_id)) == 1
    assert asyncio.run(sql_client.delete_by_id(order_id)) == 0


def test_missing_required_column_is_constraint_violation(sql_client):
    with pytest.raises(ConstraintViolation):
        asyncio.run(sql_client.insert({"customer_name": "No Product", "quantity": 1, "price_per_unit": 1}))


def test_unknown_column_is_rejected(sql_client):
    with pytest.raises(ValueError):
        asyncio.run(sql_client.select(sort=Sort("total_amount")))


def test_session_work_runs_off_the_event_loop_thread(sql_client):
    threads = []
    factory = sql_client.session_factory

    def tracking_factory():
        threads.append(threading.get_ident())
        return factory()

    sql_client.session_factory = tracking_factory

    async def scenario():
        order_id = await sql_client.insert(order("Ana Horvat"))
        await sql_client.update_by_id(order_id, {"status": "SHIPPED"})
        await sql_client.select(count=True)
        await sql_client.delete_by_id(order_id)
        return threading.get_ident()

    loop_thread = asyncio.run(scenario())
    assert len(threads) == 4
    assert loop_thread not in threads
