from pydantic import BaseModel, Field, PlainSerializer, computed_field
from pydantic import ValidationError as PydanticValidationError
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Generic, Mapping, Optional, TypeVar
import math

from app.domain.models import EDITABLE_COLUMNS, OrderStatus, compute_total
from app.domain.errors import StoreError, ValidationError

# Decimal inside the app, plain JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(lambda v: float(v), return_type=float, when_used="json")]

T = TypeVar("T")

FIELD_MESSAGES = {
    "customer_name": "Customer name is required (at least 2 characters)",
    "product_name": "Product name is required",
    "quantity": "Quantity must be a whole number of at least 1",
    "price_per_unit": "Price must be greater than 0",
    "delivery_address": "Delivery address is required (at least 5 characters)",
    "status": "Status must be one of " + ", ".join(s.value for s in OrderStatus),
}

class OrderFormData(BaseModel):
    """Fields a user can submit through the create and edit forms."""
    customer_name: str = Field(min_length=2, max_length=200)
    product_name: str = Field(min_length=1, max_length=200)
    quantity: int = Field(ge=1)
    price_per_unit: Money = Field(gt=0, max_digits=10, decimal_places=2)
    delivery_address: str = Field(min_length=5)
    status: OrderStatus = OrderStatus.CREATED

    class Config:
        str_strip_whitespace = True

    def to_record(self) -> dict:
        """Row payload for the table client."""
        return {
            "customer_name": self.customer_name,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price_per_unit": self.price_per_unit,
            "delivery_address": self.delivery_address,
            "status": self.status.value,
        }

class Order(BaseModel):
    id: str
    product_name: str
    customer_name: str
    quantity: int
    price_per_unit: Money
    delivery_address: Optional[str] = None
    # The store accepts any text here; only the forms enforce OrderStatus
    status: str
    created_at: datetime

    class Config:
        from_attributes = True

    @computed_field
    @property
    def total_amount(self) -> Money:
        return compute_total(self.quantity, self.price_per_unit)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Order":
        # A stored total_amount column, if present, is ignored
        try:
            return cls.model_validate({k: v for k, v in row.items() if k != "total_amount"})
        except PydanticValidationError as exc:
            fields = ", ".join(sorted({str(e["loc"][0]) for e in exc.errors() if e["loc"]}))
            raise StoreError(f"Malformed order row {row.get('id')}: invalid {fields}") from exc

    def to_form(self) -> dict:
        """Current values for pre-filling the edit form."""
        return {
            "customer_name": self.customer_name,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price_per_unit": self.price_per_unit,
            "delivery_address": self.delivery_address or "",
            "status": self.status,
        }

class OrderPage(BaseModel):
    orders: list[Order] = []
    total_count: int = 0
    page: int = 0
    page_size: int = 10
    error: Optional[str] = None

    @computed_field
    @property
    def page_count(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0

class ActionResponse(BaseModel, Generic[T]):
    success: bool
    message: str
    data: Optional[T] = None
    # Cache scopes this action made stale
    invalidates: list[str] = []
    error_code: Optional[str] = None


def parse_order_form(data: Mapping[str, Any]) -> OrderFormData:
    """Validate raw form input, raising ValidationError with one message per field."""
    values = {key: data[key] for key in EDITABLE_COLUMNS if key in data}
    if values.get("status") in ("", None):
        values.pop("status", None)
    try:
        return OrderFormData.model_validate(values)
    except PydanticValidationError as exc:
        errors = {}
        for error in exc.errors():
            field = str(error["loc"][0]) if error["loc"] else "__all__"
            errors.setdefault(field, FIELD_MESSAGES.get(field, error["msg"]))
        raise ValidationError(errors) from exc
