"""
Pydantic schemas for order API.

Item fields are loosely typed here; completeness rules live in
``crm.orders.validation`` so every problem is reported at once.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class OrderItem(BaseModel):
    sku: str = ""
    name: str = ""
    qty: int = 1
    price: float = 0.0


class OrderItemPatch(BaseModel):
    sku: str | None = None
    name: str | None = None
    qty: int | None = None
    price: float | None = None


class OrderCreate(BaseModel):
    customer_id: UUID | None = None
    date: datetime | None = None
    items: list[OrderItem] = Field(default_factory=list)
    amount: float | None = Field(
        default=None,
        description="Ignored in favour of the total computed from items",
    )


class OrderUpdate(OrderCreate):
    pass


class OrderSortField(str, Enum):
    DATE = "date"
    AMOUNT = "amount"
    CUSTOMER = "customer"


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    customer_id: UUID
    customer_name: str | None = None
    amount: float
    items: list[OrderItem]
    date: datetime
    created_at: datetime
    updated_at: datetime | None = None
