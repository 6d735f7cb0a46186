# estore/orders.py
from decimal import Decimal
from typing import Any, List, Optional

import structlog
from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Engine

from .database import connection, orders, products, transaction, users
from .errors import (
    ForbiddenError,
    InsufficientStockError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from .models import ORDER_STATUSES, Order, OrderRow, OrderSummary

# Order workflow: placement, cancellation, status changes and listing.
# Placement and cancellation each run as a single transaction; any error
# raised inside the block rolls back every write made so far.

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return value == 0


def _same_user(a: Any, b: Any) -> bool:
    try:
        return a is not None and int(a) == int(b)
    except (TypeError, ValueError):
        return False


def create_order(
    engine: Engine,
    user_id: int,
    product_id: int,
    quantity: int,
    delivery_address: str,
) -> OrderSummary:
    if any(_is_blank(v) for v in (user_id, product_id, quantity, delivery_address)):
        raise ValidationError("All fields are required")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer")

    try:
        with transaction(engine) as conn:
            product = conn.execute(
                select(products).where(products.c.id == product_id).with_for_update()
            ).mappings().first()
            if product is None:
                raise NotFoundError("product")
            if product["stock"] < quantity:
                raise InsufficientStockError(product_id, quantity, product["stock"])

            user = conn.execute(select(users.c.id).where(users.c.id == user_id)).first()
            if user is None:
                raise NotFoundError("user")

            total_price = (Decimal(product["price"]) * quantity).quantize(CENT)
            result = conn.execute(
                insert(orders).values(
                    user_id=user_id,
                    product_id=product_id,
                    quantity=quantity,
                    total_price=total_price,
                    delivery_address=str(delivery_address).strip(),
                    status="Pending",
                )
            )
            order_id = result.inserted_primary_key[0]

            # Matches nothing if a concurrent order already took the stock.
            decremented = conn.execute(
                update(products)
                .where(products.c.id == product_id, products.c.stock >= quantity)
                .values(stock=products.c.stock - quantity)
            )
            if decremented.rowcount != 1:
                available = conn.execute(
                    select(products.c.stock).where(products.c.id == product_id)
                ).scalar_one()
                raise InsufficientStockError(product_id, quantity, available)
    except StoreError as exc:
        logger.warning(
            "Order rejected",
            user_id=user_id,
            product_id=product_id,
            quantity=quantity,
            reason=exc.message,
        )
        raise

    logger.info(
        "Order placed",
        order_id=order_id,
        user_id=user_id,
        product_id=product_id,
        quantity=quantity,
        total_price=str(total_price),
    )
    return OrderSummary(
        order_id=order_id,
        product=product["name"],
        quantity=quantity,
        total_price=total_price,
        status="Pending",
    )


def cancel_order(
    engine: Engine,
    order_id: int,
    requesting_user_id: Optional[int],
    requesting_role: Optional[str],
) -> Order:
    """Delete an order and give its quantity back to the product.

    Only the owner or an admin may cancel. Stock is restored even if the
    product was edited after the order was placed.
    """
    try:
        with transaction(engine) as conn:
            row = conn.execute(
                select(orders).where(orders.c.id == order_id).with_for_update()
            ).mappings().first()
            if row is None:
                raise NotFoundError("order")

            if requesting_role != "admin" and not _same_user(requesting_user_id, row["user_id"]):
                raise ForbiddenError("Only the order owner or an admin can cancel this order")

            conn.execute(
                update(products)
                .where(products.c.id == row["product_id"])
                .values(stock=products.c.stock + row["quantity"])
            )
            conn.execute(delete(orders).where(orders.c.id == order_id))
    except StoreError as exc:
        logger.warning(
            "Order cancellation rejected",
            order_id=order_id,
            user_id=requesting_user_id,
            reason=exc.message,
        )
        raise

    logger.info(
        "Order cancelled",
        order_id=order_id,
        user_id=requesting_user_id,
        product_id=row["product_id"],
        restored=row["quantity"],
    )
    return Order.model_validate(dict(row))


def update_order_status(engine: Engine, order_id: int, new_status: Optional[str]) -> str:
    if new_status not in ORDER_STATUSES:
        raise ValidationError("Invalid status value")

    with transaction(engine) as conn:
        result = conn.execute(
            update(orders).where(orders.c.id == order_id).values(status=new_status)
        )
        if result.rowcount == 0:
            raise NotFoundError("order")

    logger.info("Order status updated", order_id=order_id, status=new_status)
    return new_status


def get_order(engine: Engine, order_id: int) -> Order:
    with connection(engine) as conn:
        row = conn.execute(select(orders).where(orders.c.id == order_id)).mappings().first()
    if row is None:
        raise NotFoundError("order")
    return Order.model_validate(dict(row))


def list_orders(engine: Engine, user_id: Optional[int], role: Optional[str]) -> List[OrderRow]:
    """Admins see every order with the customer's name; users see their own."""
    columns = [
        orders.c.id.label("order_id"),
        products.c.name.label("product"),
        orders.c.quantity,
        orders.c.total_price,
        orders.c.status,
        orders.c.created_at,
    ]
    if role == "admin":
        stmt = (
            select(users.c.name.label("customer"), *columns)
            .select_from(
                orders.join(users, orders.c.user_id == users.c.id)
                .join(products, orders.c.product_id == products.c.id)
            )
        )
    else:
        if user_id is None:
            raise ValidationError("user_id is required")
        stmt = (
            select(*columns)
            .select_from(orders.join(products, orders.c.product_id == products.c.id))
            .where(orders.c.user_id == user_id)
        )
    stmt = stmt.order_by(orders.c.created_at.desc(), orders.c.id.desc())

    with connection(engine) as conn:
        rows = conn.execute(stmt).mappings().all()
    return [OrderRow.model_validate(dict(r)) for r in rows]
