# estore/catalog.py
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import delete, insert, or_, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from .database import connection, products, transaction
from .errors import ConflictError, NotFoundError, ValidationError
from .models import Product

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = ("name", "description", "price", "stock", "category")


def list_products(
    engine: Engine,
    search: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    category: Optional[str] = None,
) -> List[Product]:
    stmt = select(products)
    if search:
        term = f"%{search}%"
        stmt = stmt.where(or_(products.c.name.ilike(term), products.c.description.ilike(term)))
    if min_price is not None:
        stmt = stmt.where(products.c.price >= min_price)
    if max_price is not None:
        stmt = stmt.where(products.c.price <= max_price)
    if category:
        stmt = stmt.where(products.c.category == category)
    stmt = stmt.order_by(products.c.id)

    with connection(engine) as conn:
        rows = conn.execute(stmt).mappings().all()
    return [Product.model_validate(dict(r)) for r in rows]


def get_product(engine: Engine, product_id: int) -> Product:
    with connection(engine) as conn:
        row = conn.execute(select(products).where(products.c.id == product_id)).mappings().first()
    if row is None:
        raise NotFoundError("product")
    return Product.model_validate(dict(row))


def create_product(engine: Engine, values: Dict[str, Any]) -> Product:
    name, price, stock = values.get("name"), values.get("price"), values.get("stock")
    if not name or price is None or stock is None:
        raise ValidationError("name, price, stock required")
    if price < 0 or stock < 0:
        raise ValidationError("price and stock must be non-negative")

    row = {
        "name": name,
        "description": values.get("description") or "",
        "price": price,
        "stock": stock,
        "category": values.get("category") or "",
    }
    with transaction(engine) as conn:
        product_id = conn.execute(insert(products).values(**row)).inserted_primary_key[0]

    logger.info("Product created", product_id=product_id, name=name)
    return Product(id=product_id, **row)


def update_product(engine: Engine, product_id: int, changes: Dict[str, Any]) -> Product:
    """Apply only the supplied fields; columns left out keep their values."""
    changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS and v is not None}
    if "name" in changes and not changes["name"]:
        raise ValidationError("name cannot be empty")

    with transaction(engine) as conn:
        if changes:
            result = conn.execute(
                update(products).where(products.c.id == product_id).values(**changes)
            )
            if result.rowcount == 0:
                raise NotFoundError("product")
        row = conn.execute(select(products).where(products.c.id == product_id)).mappings().first()
        if row is None:
            raise NotFoundError("product")

    logger.info("Product updated", product_id=product_id, fields=sorted(changes))
    return Product.model_validate(dict(row))


def delete_product(engine: Engine, product_id: int) -> None:
    with transaction(engine) as conn:
        try:
            result = conn.execute(delete(products).where(products.c.id == product_id))
        except IntegrityError as exc:
            raise ConflictError("Product has orders and cannot be deleted") from exc
        if result.rowcount == 0:
            raise NotFoundError("product")

    logger.info("Product deleted", product_id=product_id)
