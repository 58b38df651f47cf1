"""Current filter/sort/page parameters of a list view plus its last page.

Every parameter change issues a new fetch. Fetches may overlap; the one
issued last wins and older completions are dropped, so a slow response can
never overwrite newer view state. After `close()` no completion is applied.
"""

from enum import Enum
from typing import Optional

from shared.core import get_logger
from app.infrastructure.cache import LIST_SCOPE
from .query import ALL_STATUSES, OrderQuery, QueryComposer, validate_query
from .schemas import ActionResponse, Order

logger = get_logger(__name__)

# Changing any of these sends the user back to the first page
FILTER_FIELDS = ("search_term", "status_filter", "page_size")


class ViewStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


class ListViewState:
    def __init__(self, composer: QueryComposer, query: Optional[OrderQuery] = None):
        self.composer = composer
        self.query = query or OrderQuery()
        validate_query(self.query)
        self.rows: list[Order] = []
        self.total_count = 0
        self.status = ViewStatus.IDLE
        self.error: Optional[str] = None
        self.active = True
        self._seq = 0

    @property
    def page_count(self) -> int:
        if not self.total_count:
            return 0
        return -(-self.total_count // self.query.page_size)

    @property
    def is_loading(self) -> bool:
        return self.status == ViewStatus.LOADING

    async def _fetch(self, refresh: bool = False) -> bool:
        """Fetch for the current query; returns False when the result was discarded."""
        self._seq += 1
        seq = self._seq
        query = self.query
        # Previous rows stay visible while loading
        self.status = ViewStatus.LOADING

        page = await self.composer.fetch_page(query, refresh=refresh)

        if not self.active or seq != self._seq:
            logger.debug(
                "Discarding stale order page",
                extra={'extra_fields': {'seq': seq, 'latest': self._seq, 'active': self.active}}
            )
            return False

        if page.error:
            # Keep the last good page on screen next to the message
            self.status = ViewStatus.ERROR
            self.error = page.error
        else:
            self.rows = list(page.orders)
            self.total_count = page.total_count
            self.status = ViewStatus.IDLE
            self.error = None
        return True

    async def apply(self, **changes) -> bool:
        """Change several parameters at once and fetch.

        A change of search term, status filter or page size resets the page
        to 0 unless `page` is part of `changes`.
        """
        query = self.query.with_changes(**changes)
        if "page" not in changes and any(
            getattr(query, name) != getattr(self.query, name) for name in FILTER_FIELDS
        ):
            query = query.with_changes(page=0)
        validate_query(query)
        self.query = query
        return await self._fetch()

    async def load(self) -> bool:
        return await self._fetch()

    async def refresh(self) -> bool:
        """Re-run the current query, bypassing cached pages."""
        return await self._fetch(refresh=True)

    async def set_search_term(self, term: str) -> bool:
        return await self.apply(search_term=term)

    async def set_status_filter(self, status: str) -> bool:
        return await self.apply(status_filter=status or ALL_STATUSES)

    async def set_sort(self, field: Optional[str], direction: str = "desc") -> bool:
        # Sorting keeps the current page
        return await self.apply(sort_field=field, sort_direction=direction, page=self.query.page)

    async def set_page(self, page: int) -> bool:
        return await self.apply(page=page)

    async def set_page_size(self, page_size: int) -> bool:
        return await self.apply(page_size=page_size)

    async def reset_filters(self) -> bool:
        return await self.apply(search_term="", status_filter=ALL_STATUSES)

    async def after_mutation(self, response: ActionResponse) -> bool:
        """Refresh when a successful mutation made the list stale."""
        if response.success and LIST_SCOPE in response.invalidates:
            return await self.refresh()
        return False

    def close(self) -> None:
        """Stop applying results; the view is gone."""
        self.active = False
