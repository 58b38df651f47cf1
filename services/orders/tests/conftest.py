import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from app.core_settings import Settings
from app.domain.errors import StoreError
from app.domain.models import OrderStatus
from app.infrastructure.table_client import DEFAULT_SORT, EQ, ILIKE, Filter, PageRange, SelectResult, Sort
from app.main import create_app

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class InMemoryTableClient:
    """Table client over a plain list of rows.

    created_at increases with every insert so the default sort is
    deterministic. Set `fail_with` to make every call raise that error.
    """

    def __init__(self):
        self.rows: list[dict] = []
        self.calls: list[str] = []
        self.fail_with: Optional[StoreError] = None
        self.closed = False
        self._clock = 0

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    def add(self, **fields) -> str:
        """Seed a row directly, bypassing `calls`."""
        self._clock += 1
        row = {
            "id": str(uuid.uuid4()),
            "product_name": "Widget",
            "customer_name": "Customer",
            "quantity": 1,
            "price_per_unit": Decimal("1.00"),
            "delivery_address": "1 Main Street",
            "status": OrderStatus.CREATED.value,
            "created_at": EPOCH + timedelta(minutes=self._clock),
        }
        row.update(fields)
        self.rows.append(row)
        return row["id"]

    def get(self, row_id: str) -> Optional[dict]:
        return next((row for row in self.rows if row["id"] == row_id), None)

    @staticmethod
    def _matches(row: dict, f: Filter) -> bool:
        value = row.get(f.field)
        if f.op == EQ:
            return value == f.value
        if f.op == ILIKE:
            return str(f.value).lower() in (value or "").lower()
        raise ValueError(f"Unsupported filter operator: {f.op}")

    async def select(
        self,
        filters: Sequence[Filter] = (),
        sort: Optional[Sort] = None,
        page_range: Optional[PageRange] = None,
        count: bool = False,
    ) -> SelectResult:
        self._check("select")
        sort = sort or DEFAULT_SORT
        rows = [row for row in self.rows if all(self._matches(row, f) for f in filters)]
        rows.sort(key=lambda row: row["id"])
        rows.sort(key=lambda row: (row.get(sort.field) is None, row.get(sort.field)), reverse=sort.descending)
        total = len(rows)
        if page_range is not None:
            rows = rows[page_range.offset:page_range.offset + page_range.limit]
        return SelectResult(rows=[dict(row) for row in rows], total_count=total if count else None)

    async def insert(self, record: Mapping[str, Any]) -> str:
        self._check("insert")
        return self.add(**record)

    async def update_by_id(self, row_id: str, record: Mapping[str, Any]) -> int:
        self._check("update")
        row = self.get(row_id)
        if row is None:
            return 0
        row.update(record)
        return 1

    async def delete_by_id(self, row_id: str) -> int:
        self._check("delete")
        row = self.get(row_id)
        if row is None:
            return 0
        self.rows.remove(row)
        return 1

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def store():
    return InMemoryTableClient()


@pytest.fixture
def settings():
    return Settings(_env_file=None, STORE_BACKEND="sql", DATABASE_URL="sqlite://", LOG_LEVEL="WARNING")


@pytest.fixture
def client(store, settings):
    with TestClient(create_app(table_client=store, settings=settings)) as c:
        yield c


@pytest.fixture
def valid_form():
    return {
        "customer_name": "Ana Horvat",
        "product_name": "Desk Lamp",
        "quantity": "3",
        "price_per_unit": "9.99",
        "delivery_address": "Ilica 1, Zagreb",
        "status": "CREATED",
    }
