"""Column descriptors and value formatting for the order table and cards."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Optional

from app.application.schemas import Order
from app.domain.models import OrderStatus


@dataclass(frozen=True)
class StatusStyle:
    bg: str
    text: str
    border: str

STATUS_STYLES = {
    OrderStatus.CREATED.value: StatusStyle("#f1f5f9", "#475569", "#e2e8f0"),
    OrderStatus.PROCESSING.value: StatusStyle("#eff6ff", "#2563eb", "#bfdbfe"),
    OrderStatus.SHIPPED.value: StatusStyle("#fefce8", "#a16207", "#fde68a"),
    OrderStatus.DELIVERED.value: StatusStyle("#f0fdf4", "#15803d", "#bbf7d0"),
    OrderStatus.CANCELED.value: StatusStyle("#fef2f2", "#b91c1c", "#fecaca"),
}
UNKNOWN_STATUS_STYLE = StatusStyle("#f8fafc", "#64748b", "#e2e8f0")

STATUS_LABELS = {status.value: status.value.capitalize() for status in OrderStatus}


def status_style(status: Optional[str]) -> StatusStyle:
    return STATUS_STYLES.get((status or "").upper(), UNKNOWN_STATUS_STYLE)


def short_id(order_id: str) -> str:
    return f"#{order_id[:7].upper()}"


def format_money(value: Decimal) -> str:
    return f"${Decimal(value):,.2f}"


def format_date(value: Optional[datetime]) -> str:
    if not value:
        return ""
    return f"{value:%b} {value.day}, {value.year}"


@dataclass(frozen=True)
class Column:
    field: str
    header: str
    sortable: bool = False
    align: str = "left"
    render: Callable[[Order], Any] = None

    def value(self, order: Order) -> Any:
        if self.render is not None:
            return self.render(order)
        return getattr(order, self.field)


COLUMNS = (
    Column("id", "Order ID", render=lambda o: short_id(o.id)),
    Column("product_name", "Product", sortable=True),
    Column("customer_name", "Customer", sortable=True),
    Column("delivery_address", "Address", sortable=True, render=lambda o: o.delivery_address or "N/A"),
    Column("status", "Status", render=lambda o: (o.status or "").upper()),
    Column("created_at", "Date", sortable=True, render=lambda o: format_date(o.created_at)),
    Column("total_amount", "Amount", align="right", render=lambda o: format_money(o.total_amount)),
)


def order_row(order: Order) -> dict:
    """Template-ready cells for one order, keyed by column field."""
    row = {column.field: column.value(order) for column in COLUMNS}
    row["raw_id"] = order.id
    row["style"] = status_style(order.status)
    return row


def results_label(total_count: int) -> str:
    return f"{total_count} order found" if total_count == 1 else f"{total_count} orders found"


def page_window(page: int, page_count: int, radius: int = 2) -> list[int]:
    """Zero-based page numbers to show around the current page."""
    if page_count <= 0:
        return []
    start = max(0, page - radius)
    end = min(page_count - 1, page + radius)
    return list(range(start, end + 1))
