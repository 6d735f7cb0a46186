# tests/test_orders_workflow.py
from decimal import Decimal

import pytest
from sqlalchemy import event, func, select

from estore import catalog, orders
from estore.database import orders as orders_table
from estore.errors import (
    ForbiddenError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)


def order_count(engine):
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(orders_table)).scalar_one()


def stock_of(engine, product_id):
    return catalog.get_product(engine, product_id).stock


def test_place_order_decrements_stock_and_freezes_total(engine, alice, product):
    summary = orders.create_order(engine, alice.id, product.id, 2, "221B Baker Street")

    assert summary.product == "Laptop"
    assert summary.quantity == 2
    assert summary.total_price == Decimal("200.00")
    assert summary.status == "Pending"
    assert stock_of(engine, product.id) == 3

    stored = orders.get_order(engine, summary.order_id)
    assert stored.user_id == alice.id
    assert stored.delivery_address == "221B Baker Street"


def test_insufficient_stock_leaves_state_unchanged(engine, alice):
    p = catalog.create_product(engine, {"name": "Last one", "price": Decimal("100"), "stock": 1})

    with pytest.raises(InsufficientStockError) as exc:
        orders.create_order(engine, alice.id, p.id, 2, "somewhere")

    assert exc.value.available == 1
    assert exc.value.status_code == 409
    assert stock_of(engine, p.id) == 1
    assert order_count(engine) == 0


def test_buying_exact_remaining_stock_reaches_zero(engine, alice, product):
    orders.create_order(engine, alice.id, product.id, 5, "somewhere")
    assert stock_of(engine, product.id) == 0

    with pytest.raises(InsufficientStockError):
        orders.create_order(engine, alice.id, product.id, 1, "somewhere")
    assert stock_of(engine, product.id) == 0


def test_unknown_product(engine, alice):
    with pytest.raises(NotFoundError) as exc:
        orders.create_order(engine, alice.id, 999, 1, "somewhere")
    assert exc.value.entity == "product"
    assert order_count(engine) == 0


def test_unknown_user_rolls_back(engine, product):
    with pytest.raises(NotFoundError) as exc:
        orders.create_order(engine, 999, product.id, 2, "somewhere")
    assert exc.value.entity == "user"
    assert stock_of(engine, product.id) == 5
    assert order_count(engine) == 0


@pytest.mark.parametrize("field", ["user_id", "product_id", "quantity", "delivery_address"])
def test_missing_fields_rejected(engine, alice, product, field):
    args = {
        "user_id": alice.id,
        "product_id": product.id,
        "quantity": 1,
        "delivery_address": "somewhere",
    }
    args[field] = None
    with pytest.raises(ValidationError):
        orders.create_order(engine, **args)

    args[field] = 0 if field != "delivery_address" else "   "
    with pytest.raises(ValidationError):
        orders.create_order(engine, **args)
    assert stock_of(engine, product.id) == 5


def test_negative_quantity_rejected(engine, alice, product):
    with pytest.raises(ValidationError):
        orders.create_order(engine, alice.id, product.id, -3, "somewhere")
    assert stock_of(engine, product.id) == 5


def test_total_price_is_not_recomputed_after_price_change(engine, alice, product):
    summary = orders.create_order(engine, alice.id, product.id, 2, "somewhere")
    catalog.update_product(engine, product.id, {"price": Decimal("150.00")})

    assert orders.get_order(engine, summary.order_id).total_price == Decimal("200.00")


def test_cancel_by_owner_restores_stock(engine, alice, product):
    summary = orders.create_order(engine, alice.id, product.id, 2, "somewhere")
    before = stock_of(engine, product.id)

    cancelled = orders.cancel_order(engine, summary.order_id, alice.id, "user")

    assert cancelled.quantity == 2
    assert stock_of(engine, product.id) == before + 2
    with pytest.raises(NotFoundError):
        orders.get_order(engine, summary.order_id)


def test_create_then_cancel_round_trip(engine, alice, product):
    summary = orders.create_order(engine, alice.id, product.id, 4, "somewhere")
    orders.cancel_order(engine, summary.order_id, alice.id, "user")
    assert stock_of(engine, product.id) == 5
    assert order_count(engine) == 0


def test_cancel_by_other_user_is_forbidden(engine, alice, bob, product):
    summary = orders.create_order(engine, alice.id, product.id, 2, "somewhere")

    with pytest.raises(ForbiddenError):
        orders.cancel_order(engine, summary.order_id, bob.id, "user")

    assert stock_of(engine, product.id) == 3
    assert orders.get_order(engine, summary.order_id).quantity == 2


def test_admin_can_cancel_any_order(engine, alice, admin, product):
    summary = orders.create_order(engine, alice.id, product.id, 2, "somewhere")
    orders.cancel_order(engine, summary.order_id, admin.id, "admin")
    assert stock_of(engine, product.id) == 5


def test_cancel_unknown_order(engine, alice):
    with pytest.raises(NotFoundError) as exc:
        orders.cancel_order(engine, 12345, alice.id, "user")
    assert exc.value.entity == "order"


def test_cancel_restores_even_after_stock_edit(engine, alice, product):
    summary = orders.create_order(engine, alice.id, product.id, 2, "somewhere")
    catalog.update_product(engine, product.id, {"stock": 10})

    orders.cancel_order(engine, summary.order_id, alice.id, "user")
    assert stock_of(engine, product.id) == 12


def test_status_update(engine, alice, product):
    summary = orders.create_order(engine, alice.id, product.id, 1, "somewhere")

    assert orders.update_order_status(engine, summary.order_id, "Shipped") == "Shipped"
    assert orders.get_order(engine, summary.order_id).status == "Shipped"


@pytest.mark.parametrize("status", ["Cancelled", "shipped", "", None])
def test_invalid_status_does_not_touch_row(engine, alice, product, status):
    summary = orders.create_order(engine, alice.id, product.id, 1, "somewhere")

    with pytest.raises(ValidationError):
        orders.update_order_status(engine, summary.order_id, status)
    assert orders.get_order(engine, summary.order_id).status == "Pending"


def test_status_update_unknown_order(engine):
    with pytest.raises(NotFoundError):
        orders.update_order_status(engine, 404, "Delivered")


def test_list_orders_by_role(engine, alice, bob, product):
    first = orders.create_order(engine, alice.id, product.id, 1, "a")
    second = orders.create_order(engine, alice.id, product.id, 1, "a")
    orders.create_order(engine, bob.id, product.id, 1, "b")

    mine = orders.list_orders(engine, alice.id, "user")
    assert [o.order_id for o in mine] == [second.order_id, first.order_id]
    assert all(o.customer is None for o in mine)
    assert mine[0].product == "Laptop"

    everything = orders.list_orders(engine, None, "admin")
    assert len(everything) == 3
    assert {o.customer for o in everything} == {"Alice", "Bob"}


def test_list_orders_requires_user_for_non_admin(engine):
    with pytest.raises(ValidationError):
        orders.list_orders(engine, None, "user")


def test_stock_taken_before_decrement_rolls_back(engine, alice, product):
    # Drain the stock inside the same transaction right after the order
    # row is written, so only the guarded decrement can catch it.
    def drain(conn, cursor, statement, parameters, context, executemany):
        if statement.startswith("INSERT INTO orders"):
            cursor.connection.execute("UPDATE products SET stock = 0 WHERE id = ?", (product.id,))

    event.listen(engine, "before_cursor_execute", drain)
    try:
        with pytest.raises(InsufficientStockError) as exc:
            orders.create_order(engine, alice.id, product.id, 2, "somewhere")
    finally:
        event.remove(engine, "before_cursor_execute", drain)

    assert exc.value.requested == 2
    assert exc.value.available == 0
    assert stock_of(engine, product.id) == 5
    assert order_count(engine) == 0
