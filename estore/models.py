# estore/models.py
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, PlainSerializer

# Money is kept as Decimal in Python and written to JSON as a number.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

ORDER_STATUSES = ("Pending", "Shipped", "Delivered")


class Product(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str = ""
    price: Money
    stock: int
    category: str = ""


class User(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class OrderSummary(BaseModel):
    order_id: int
    product: str
    quantity: int
    total_price: Money
    status: str


class OrderRow(BaseModel):
    order_id: int
    customer: Optional[str] = None
    product: str
    quantity: int
    total_price: Money
    status: str
    created_at: datetime


class Order(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    product_id: int
    quantity: int
    total_price: Money
    delivery_address: str
    status: str
    created_at: datetime
