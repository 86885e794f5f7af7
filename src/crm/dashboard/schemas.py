"""
Pydantic schemas for dashboard API.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class RevenuePoint(BaseModel):
    date: str
    revenue: float
    orders: int


class CustomerGrowthPoint(BaseModel):
    date: str
    customers: int
    new_customers: int


class RecentOrder(BaseModel):
    id: UUID
    customer_id: UUID
    customer_name: str
    amount: float
    date: datetime


class DashboardStats(BaseModel):
    total_customers: int
    total_orders: int
    total_campaigns: int
    active_campaigns: int
    total_revenue: float
    avg_order_value: float
    conversion_rate: float
    active_users: int
    revenue_series: list[RevenuePoint]
    customer_growth: list[CustomerGrowthPoint]
    recent_orders: list[RecentOrder]
    generated_at: datetime
