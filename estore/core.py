# estore/core.py
from decimal import Decimal
from typing import Annotated, Any, Dict, Optional

from fastapi import Path
from pydantic import BaseModel, EmailStr, Field

# Largest values the INTEGER and NUMERIC(10, 2) columns hold; anything
# beyond them is rejected before it reaches the database.
MAX_INT = 2**63 - 1
MAX_PRICE = Decimal("99999999.99")

RowId = Annotated[int, Path(ge=1, le=MAX_INT)]

# Request bodies. Required fields are Optional here on purpose so a missing
# field reaches the workflow and fails with the store's own ValidationError.


class SignupIn(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None


class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ProductIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = ""
    price: Optional[Decimal] = Field(default=None, ge=0, le=MAX_PRICE, decimal_places=2)
    stock: Optional[int] = Field(default=None, ge=0, le=MAX_INT)
    category: Optional[str] = ""


class ProductUpdateIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, le=MAX_PRICE, decimal_places=2)
    stock: Optional[int] = Field(default=None, ge=0, le=MAX_INT)
    category: Optional[str] = None


class OrderIn(BaseModel):
    product_id: Optional[int] = Field(default=None, ge=1, le=MAX_INT)
    quantity: Optional[int] = Field(default=None, le=MAX_INT)
    delivery_address: Optional[str] = None
    user_id: Optional[int] = Field(default=None, ge=1, le=MAX_INT)


class OrderStatusIn(BaseModel):
    status: Optional[str] = None


def _make_product_dict(p: ProductIn) -> Dict[str, Any]:
    return {
        "name": p.name,
        "description": p.description or "",
        "price": p.price,
        "stock": p.stock,
        "category": p.category or "",
    }


def _make_product_changes(p: ProductUpdateIn) -> Dict[str, Any]:
    return p.model_dump(exclude_none=True)
