"""Capability interface over the hosted `orders` table.

Everything above this module talks to the store through a `TableClient`
handed to it at construction time, so a fake store can be substituted in
tests and the backend (PostgREST or SQL) picked by configuration.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Sequence

from app.domain.models import DEFAULT_SORT_COLUMN

EQ = "eq"
ILIKE = "ilike"

@dataclass(frozen=True)
class Filter:
    field: str
    op: str
    value: Any

@dataclass(frozen=True)
class Sort:
    field: str = DEFAULT_SORT_COLUMN
    descending: bool = True

DEFAULT_SORT = Sort()

@dataclass(frozen=True)
class PageRange:
    offset: int
    limit: int

@dataclass
class SelectResult:
    rows: list[dict] = field(default_factory=list)
    total_count: Optional[int] = None


class TableClient(Protocol):
    async def select(
        self,
        filters: Sequence[Filter] = (),
        sort: Optional[Sort] = None,
        page_range: Optional[PageRange] = None,
        count: bool = False,
    ) -> SelectResult:
        """Rows matching all filters; sort defaults to created_at descending."""
        ...

    async def insert(self, record: Mapping[str, Any]) -> str:
        """Insert one row and return the id the store assigned."""
        ...

    async def update_by_id(self, row_id: str, record: Mapping[str, Any]) -> int:
        """Overwrite the given columns; returns the number of rows affected."""
        ...

    async def delete_by_id(self, row_id: str) -> int:
        """Permanently delete; returns the number of rows affected."""
        ...

    async def aclose(self) -> None:
        ...


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the search term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
