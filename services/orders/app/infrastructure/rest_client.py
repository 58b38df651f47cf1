"""Supabase / PostgREST implementation of the table client."""

from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence
import httpx

from shared.core import get_logger
from app.domain.errors import ConstraintViolation, StoreError
from app.domain.models import OrderStatus
from .table_client import DEFAULT_SORT, EQ, ILIKE, Filter, PageRange, SelectResult, Sort, escape_like

logger = get_logger(__name__)

# SQLSTATE classes 22 (data exception) and 23 (integrity constraint violation)
CONSTRAINT_SQLSTATE_PREFIXES = ("22", "23")


def _jsonable(record: Mapping[str, Any]) -> dict:
    return {k: float(v) if isinstance(v, Decimal) else v for k, v in record.items()}


def _ilike_term(value: Any) -> str:
    # PostgREST turns every `*` into `%` and offers no escape for it, so a
    # literal asterisk becomes the single-character wildcard instead
    return escape_like(str(value)).replace("*", "_")


def parse_content_range(header: Optional[str]) -> Optional[int]:
    """Total from a `Content-Range: 0-9/25` header; None when unknown."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1].strip()
    return int(total) if total.isdigit() else None


class RestTableClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        table: str = "orders",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.table = table
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @property
    def path(self) -> str:
        return f"/{self.table}"

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, *, params=None, json=None, headers=None) -> httpx.Response:
        try:
            resp = await self._client.request(method, self.path, params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Store request failed: {method} {self.table}: {e}")
            raise StoreError(f"Could not reach the order store: {e}") from e
        if resp.status_code >= 400:
            raise self._error_from_response(resp)
        return resp

    @staticmethod
    def _error_from_response(resp: httpx.Response) -> StoreError:
        code = ""
        message = resp.text or f"Store returned HTTP {resp.status_code}"
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = str(body.get("code") or "")
            message = body.get("message") or message
        logger.warning(
            f"Store rejected request: {message}",
            extra={'extra_fields': {'status_code': resp.status_code, 'code': code}}
        )
        if code.startswith(CONSTRAINT_SQLSTATE_PREFIXES):
            return ConstraintViolation(message, status_code=resp.status_code)
        return StoreError(message, status_code=resp.status_code)

    @staticmethod
    def _filter_params(filters: Sequence[Filter]) -> list[tuple[str, str]]:
        params = []
        for f in filters:
            if f.op == EQ:
                params.append((f.field, f"eq.{f.value}"))
            elif f.op == ILIKE:
                params.append((f.field, f"ilike.*{_ilike_term(f.value)}*"))
            else:
                raise ValueError(f"Unsupported filter operator: {f.op}")
        return params

    async def select(
        self,
        filters: Sequence[Filter] = (),
        sort: Optional[Sort] = None,
        page_range: Optional[PageRange] = None,
        count: bool = False,
    ) -> SelectResult:
        sort = sort or DEFAULT_SORT
        params = [("select", "*"), *self._filter_params(filters)]
        params.append(("order", f"{sort.field}.{'desc' if sort.descending else 'asc'}"))
        if page_range is not None:
            params.append(("offset", str(page_range.offset)))
            params.append(("limit", str(page_range.limit)))
        headers = {"Prefer": "count=exact"} if count else None

        resp = await self._request("GET", params=params, headers=headers)
        rows = resp.json()
        total = parse_content_range(resp.headers.get("content-range")) if count else None
        if count and total is None:
            total = len(rows)
        return SelectResult(rows=rows, total_count=total)

    async def insert(self, record: Mapping[str, Any]) -> str:
        payload = _jsonable(record)
        payload.setdefault("status", OrderStatus.CREATED.value)
        resp = await self._request(
            "POST", json=[payload], headers={"Prefer": "return=representation"}
        )
        rows = resp.json()
        if not rows:
            raise StoreError("Store did not return the created order")
        return str(rows[0]["id"])

    async def update_by_id(self, row_id: str, record: Mapping[str, Any]) -> int:
        resp = await self._request(
            "PATCH",
            params={"id": f"eq.{row_id}"},
            json=_jsonable(record),
            headers={"Prefer": "return=representation"},
        )
        return len(resp.json())

    async def delete_by_id(self, row_id: str) -> int:
        resp = await self._request(
            "DELETE",
            params={"id": f"eq.{row_id}"},
            headers={"Prefer": "return=representation"},
        )
        return len(resp.json())
