from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, Numeric, DateTime, Text
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
import uuid

class OrderStatus(str, Enum):
    CREATED = "CREATED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELED = "CANCELED"

# Columns of the remote `orders` table. total_amount is derived on read.
ORDER_COLUMNS = (
    "id",
    "product_name",
    "customer_name",
    "quantity",
    "price_per_unit",
    "delivery_address",
    "status",
    "created_at",
)

# Columns the user may edit through the create/edit forms
EDITABLE_COLUMNS = (
    "product_name",
    "customer_name",
    "quantity",
    "price_per_unit",
    "delivery_address",
    "status",
)

SORTABLE_COLUMNS = frozenset({
    "created_at",
    "customer_name",
    "product_name",
    "delivery_address",
    "quantity",
    "price_per_unit",
    "status",
})

DEFAULT_SORT_COLUMN = "created_at"


def compute_total(quantity, price_per_unit) -> Decimal:
    """quantity x price_per_unit, never read back from storage"""
    return Decimal(quantity) * Decimal(str(price_per_unit))


class Base(DeclarativeBase):
    pass

class OrderRow(Base):
    __tablename__ = "orders"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    product_name: Mapped[str] = mapped_column(String(200))
    customer_name: Mapped[str] = mapped_column(String(200), index=True)
    quantity: Mapped[int]
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    # Older rows were written without an address
    delivery_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=OrderStatus.CREATED.value, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )

    def to_record(self) -> dict:
        return {column: getattr(self, column) for column in ORDER_COLUMNS}
