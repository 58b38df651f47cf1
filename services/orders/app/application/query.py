"""Translates list-view parameters into a table select.

`QueryComposer.compose` is pure: the same `OrderQuery` always yields the same
`SelectParams`. The fetch helpers run the composed select through the page
cache and turn rows into `Order` read models.
"""

from dataclasses import dataclass, field, replace
import json
from typing import Optional, Tuple

from shared.core import get_logger
from app.domain.errors import NotFoundError, StoreError, ValidationError
from app.domain.models import DEFAULT_SORT_COLUMN, SORTABLE_COLUMNS, OrderStatus
from app.infrastructure.cache import LIST_SCOPE, OrderCache, detail_scope
from app.infrastructure.table_client import EQ, ILIKE, Filter, PageRange, Sort, TableClient
from .schemas import Order, OrderPage

logger = get_logger(__name__)

ALL_STATUSES = "ALL"
SORT_DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class OrderQuery:
    search_term: str = ""
    status_filter: str = ALL_STATUSES
    sort_field: Optional[str] = None
    sort_direction: str = "desc"
    page: int = 0
    page_size: int = 10

    def with_changes(self, **changes) -> "OrderQuery":
        return replace(self, **changes)


@dataclass(frozen=True)
class SelectParams:
    filters: Tuple[Filter, ...] = ()
    sort: Sort = field(default_factory=Sort)
    page_range: PageRange = PageRange(0, 10)
    count: bool = True

    def cache_key(self) -> str:
        # Filter values are user input and may contain any separator character
        filters = [[f.field, f.op, f.value] for f in self.filters]
        direction = "desc" if self.sort.descending else "asc"
        body = json.dumps(
            [filters, self.sort.field, direction, self.page_range.offset, self.page_range.limit],
            default=str,
        )
        return f"{LIST_SCOPE}:{body}"


def validate_query(query: OrderQuery) -> None:
    errors = {}
    if query.page < 0:
        errors["page"] = "Page must be 0 or greater"
    if query.page_size < 1:
        errors["page_size"] = "Page size must be at least 1"
    status = (query.status_filter or "").strip()
    if status and status != ALL_STATUSES and status not in OrderStatus.__members__:
        errors["status_filter"] = f"Unknown status: {status}"
    if query.sort_field is not None and query.sort_field not in SORTABLE_COLUMNS:
        errors["sort_field"] = f"Cannot sort by {query.sort_field}"
    if query.sort_direction not in SORT_DIRECTIONS:
        errors["sort_direction"] = "Sort direction must be asc or desc"
    if errors:
        raise ValidationError(errors, message="Invalid order query")


class QueryComposer:
    def __init__(self, client: TableClient, cache: Optional[OrderCache] = None):
        self.client = client
        self.cache = cache

    def compose(self, query: OrderQuery) -> SelectParams:
        validate_query(query)

        filters = []
        term = query.search_term.strip()
        if term:
            filters.append(Filter("customer_name", ILIKE, term))
        status = (query.status_filter or "").strip()
        if status and status != ALL_STATUSES:
            filters.append(Filter("status", EQ, status))

        if query.sort_field:
            sort = Sort(query.sort_field, descending=query.sort_direction == "desc")
        else:
            sort = Sort(DEFAULT_SORT_COLUMN, descending=True)

        return SelectParams(
            filters=tuple(filters),
            sort=sort,
            page_range=PageRange(offset=query.page * query.page_size, limit=query.page_size),
            count=True,
        )

    async def fetch_page(self, query: OrderQuery, refresh: bool = False) -> OrderPage:
        """One page of orders plus the exact total; store failures come back as `error`."""
        params = self.compose(query)
        key = params.cache_key()
        if self.cache is not None and not refresh:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        try:
            result = await self.client.select(
                filters=params.filters,
                sort=params.sort,
                page_range=params.page_range,
                count=params.count,
            )
            orders = [Order.from_row(row) for row in result.rows]
        except StoreError as e:
            logger.warning(f"Order list fetch failed: {e.message}")
            return OrderPage(page=query.page, page_size=query.page_size, error=e.message)

        page = OrderPage(
            orders=orders,
            total_count=result.total_count if result.total_count is not None else len(result.rows),
            page=query.page,
            page_size=query.page_size,
        )
        if self.cache is not None:
            self.cache.set(key, page)
        return page

    async def fetch_order(self, order_id: str, refresh: bool = False) -> Order:
        """Detail fetch; raises NotFoundError when the id has no row."""
        key = detail_scope(order_id)
        if self.cache is not None and not refresh:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        result = await self.client.select(
            filters=(Filter("id", EQ, order_id),),
            page_range=PageRange(0, 1),
        )
        if not result.rows:
            raise NotFoundError(order_id)
        order = Order.from_row(result.rows[0])
        if self.cache is not None:
            self.cache.set(key, order)
        return order


async def probe_store(client: TableClient) -> Tuple[bool, Optional[str]]:
    """Cheap connectivity check: select a single row."""
    try:
        await client.select(page_range=PageRange(0, 1))
    except StoreError as e:
        return False, e.message
    return True, None
