"""
Pydantic schemas for customer API.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from crm.shared.schemas import SortDirection


class SpendTier(str, Enum):
    NEW = "New"
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"
    VIP = "VIP"


class CustomerSortField(str, Enum):
    NAME = "name"
    EMAIL = "email"
    SPEND = "spend"
    VISITS = "visits"
    LAST_ACTIVE = "last_active"
    CREATED_AT = "created_at"


class CustomerBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str | None = Field(default=None, max_length=50)
    spend: float = Field(default=0.0, ge=0)
    visits: int = Field(default=0, ge=0)
    last_active: datetime | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Customer name is required")
        return v


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    spend: float | None = Field(default=None, ge=0)
    visits: int | None = Field(default=None, ge=0)
    last_active: datetime | None = None


class CustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    phone: str | None = None
    spend: float
    visits: int
    last_active: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None
    tier: SpendTier | None = None


class CustomerWithCalculatedSpend(CustomerResponse):
    """Customer row with order-derived figures; they stay null unless requested."""

    calculated_spend: float | None = None
    order_count: int | None = None
    last_order_date: datetime | None = None


class CustomerStats(BaseModel):
    total_customers: int
    total_spend: float
    average_spend: float
    high_value_customers: int
    customers_with_orders: int


class RefreshSpendResponse(BaseModel):
    success: bool = True
    message: str
    updated_count: int
    total_customers: int


class CustomerIdsRequest(BaseModel):
    customer_ids: list[UUID] = Field(default_factory=list)


class BulkDeleteResponse(BaseModel):
    success: bool = True
    deleted_count: int
