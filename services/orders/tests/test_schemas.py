from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.application.schemas import ActionResponse, Order, OrderPage, parse_order_form
from app.domain.errors import ValidationError
from app.domain.models import OrderStatus, compute_total


def make_row(**overrides):
    row = {
        "id": "a1b2c3d4-0000-0000-0000-000000000000",
        "product_name": "Desk Lamp",
        "customer_name": "Ana Horvat",
        "quantity": 3,
        "price_per_unit": "9.99",
        "delivery_address": "Ilica 1, Zagreb",
        "status": "CREATED",
        "created_at": datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc),
    }
    row.update(overrides)
    return row


def test_parse_valid_form(valid_form):
    form = parse_order_form(valid_form)
    assert form.quantity == 3
    assert form.price_per_unit == Decimal("9.99")
    assert form.status == OrderStatus.CREATED


def test_parse_form_strips_whitespace(valid_form):
    valid_form["customer_name"] = "  Ana Horvat  "
    assert parse_order_form(valid_form).customer_name == "Ana Horvat"


def test_missing_status_defaults_to_created(valid_form):
    valid_form["status"] = ""
    assert parse_order_form(valid_form).status == OrderStatus.CREATED
    del valid_form["status"]
    assert parse_order_form(valid_form).status == OrderStatus.CREATED


@pytest.mark.parametrize("field,value", [
    ("customer_name", "A"),
    ("product_name", ""),
    ("quantity", "0"),
    ("quantity", "1.5"),
    ("price_per_unit", "0"),
    ("price_per_unit", "-3"),
    ("delivery_address", "abc"),
    ("status", "LOST"),
])
def test_invalid_field_is_reported(valid_form, field, value):
    valid_form[field] = value
    with pytest.raises(ValidationError) as exc_info:
        parse_order_form(valid_form)
    assert set(exc_info.value.errors) == {field}


def test_every_invalid_field_gets_one_message():
    with pytest.raises(ValidationError) as exc_info:
        parse_order_form({})
    errors = exc_info.value.errors
    assert set(errors) == {"customer_name", "product_name", "quantity", "price_per_unit", "delivery_address"}
    assert errors["delivery_address"].startswith("Delivery address is required")


def test_form_ignores_unknown_keys(valid_form):
    valid_form["total_amount"] = "1000"
    valid_form["id"] = "forged"
    record = parse_order_form(valid_form).to_record()
    assert "total_amount" not in record
    assert "id" not in record
    assert record["status"] == "CREATED"


def test_total_amount_is_computed():
    order = Order.from_row(make_row())
    assert order.total_amount == Decimal("29.97")
    assert compute_total(3, 9.99) == Decimal("29.97")


def test_stored_total_amount_is_ignored():
    order = Order.from_row(make_row(total_amount=5))
    assert order.total_amount == Decimal("29.97")


def test_order_json_uses_numbers():
    data = Order.from_row(make_row()).model_dump(mode="json")
    assert data["price_per_unit"] == 9.99
    assert data["total_amount"] == 29.97


def test_order_tolerates_missing_address_and_unknown_status():
    order = Order.from_row(make_row(delivery_address=None, status="RETURNED"))
    assert order.delivery_address is None
    assert order.status == "RETURNED"
    assert order.to_form()["delivery_address"] == ""


def test_page_count():
    assert OrderPage(total_count=25, page_size=10).page_count == 3
    assert OrderPage(total_count=0, page_size=10).page_count == 0


def test_action_response_defaults():
    response = ActionResponse[str](success=True, message="ok")
    assert response.data is None
    assert response.invalidates == []
    assert response.error_code is None
