"""SQLAlchemy implementation of the table client.

Serves the same contract as the PostgREST client against a local database
(SQLite by default). Session work is synchronous and runs in the threadpool,
so the event loop only waits at the call boundary, as it does for HTTP.
Sessions are short-lived and never shared between calls.
"""

from typing import Any, Mapping, Optional, Sequence
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.engine import Engine
from starlette.concurrency import run_in_threadpool

from shared.core import get_logger
from app.domain.errors import ConstraintViolation, StoreError
from app.domain.models import ORDER_COLUMNS, OrderRow, OrderStatus
from .db import make_session_factory
from .table_client import DEFAULT_SORT, EQ, ILIKE, Filter, PageRange, SelectResult, Sort, escape_like

logger = get_logger(__name__)


def _column(name: str):
    if name not in ORDER_COLUMNS:
        raise ValueError(f"Unknown column: {name}")
    return getattr(OrderRow, name)


class SqlTableClient:
    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = make_session_factory(engine)

    async def aclose(self) -> None:
        await run_in_threadpool(self.engine.dispose)

    @staticmethod
    def _where(stmt, filters: Sequence[Filter]):
        for f in filters:
            column = _column(f.field)
            if f.op == EQ:
                stmt = stmt.where(column == f.value)
            elif f.op == ILIKE:
                stmt = stmt.where(column.ilike(f"%{escape_like(str(f.value))}%", escape="\\"))
            else:
                raise ValueError(f"Unsupported filter operator: {f.op}")
        return stmt

    @staticmethod
    def _values(record: Mapping[str, Any]) -> dict:
        values = {}
        for key, value in record.items():
            _column(key)
            values[key] = value.value if isinstance(value, OrderStatus) else value
        return values

    async def select(
        self,
        filters: Sequence[Filter] = (),
        sort: Optional[Sort] = None,
        page_range: Optional[PageRange] = None,
        count: bool = False,
    ) -> SelectResult:
        sort = sort or DEFAULT_SORT
        base = self._where(select(OrderRow), filters)
        column = _column(sort.field)
        stmt = base.order_by(column.desc() if sort.descending else column.asc(), OrderRow.id)
        if page_range is not None:
            stmt = stmt.offset(page_range.offset).limit(page_range.limit)

        def run() -> SelectResult:
            with self.session_factory() as db:
                rows = [row.to_record() for row in db.scalars(stmt).all()]
                total = None
                if count:
                    total = db.scalar(select(func.count()).select_from(base.subquery()))
            return SelectResult(rows=rows, total_count=total)

        try:
            return await run_in_threadpool(run)
        except SQLAlchemyError as e:
            logger.error(f"Order select failed: {e}")
            raise StoreError(f"Could not load orders: {e}") from e

    async def insert(self, record: Mapping[str, Any]) -> str:
        values = self._values(record)
        values.setdefault("status", OrderStatus.CREATED.value)
        values.pop("id", None)
        values.pop("created_at", None)

        def run() -> str:
            with self.session_factory() as db:
                row = OrderRow(**values)
                db.add(row)
                db.commit()
                return row.id

        try:
            return await run_in_threadpool(run)
        except (IntegrityError, DataError) as e:
            raise ConstraintViolation(str(e.orig)) from e
        except SQLAlchemyError as e:
            logger.error(f"Order insert failed: {e}")
            raise StoreError(f"Could not create order: {e}") from e

    async def update_by_id(self, row_id: str, record: Mapping[str, Any]) -> int:
        values = self._values(record)
        values.pop("id", None)

        def run() -> int:
            with self.session_factory() as db:
                result = db.execute(update(OrderRow).where(OrderRow.id == row_id).values(**values))
                db.commit()
                return result.rowcount

        try:
            return await run_in_threadpool(run)
        except (IntegrityError, DataError) as e:
            raise ConstraintViolation(str(e.orig)) from e
        except SQLAlchemyError as e:
            logger.error(f"Order update failed: {e}")
            raise StoreError(f"Could not update order: {e}") from e

    async def delete_by_id(self, row_id: str) -> int:
        def run() -> int:
            with self.session_factory() as db:
                result = db.execute(delete(OrderRow).where(OrderRow.id == row_id))
                db.commit()
                return result.rowcount

        try:
            return await run_in_threadpool(run)
        except SQLAlchemyError as e:
            logger.error(f"Order delete failed: {e}")
            raise StoreError(f"Could not delete order: {e}") from e
