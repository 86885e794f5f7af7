"""
Spend tiers and spend aggregates for customers.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from crm.customers.schemas import CustomerStats, SpendTier
from crm.shared.database import as_utc

HIGH_VALUE_THRESHOLD = 1000.0

# Lower bound inclusive, upper bound exclusive; None means unbounded.
TIER_RANGES: dict[SpendTier, tuple[float, float | None]] = {
    SpendTier.BRONZE: (0.0, 1000.0),
    SpendTier.SILVER: (1000.0, 2500.0),
    SpendTier.GOLD: (2500.0, 5000.0),
    SpendTier.PLATINUM: (5000.0, None),
    SpendTier.VIP: (10000.0, None),
}


def get_spend_tier(amount: float) -> SpendTier:
    if amount >= 10000:
        return SpendTier.VIP
    if amount >= 5000:
        return SpendTier.PLATINUM
    if amount >= 2500:
        return SpendTier.GOLD
    if amount >= 1000:
        return SpendTier.SILVER
    if amount >= 0:
        return SpendTier.BRONZE
    return SpendTier.NEW


def in_spend_tier(amount: float, tier: SpendTier) -> bool:
    """Range filter used by the customer list.

    Platinum covers every spend from 5000 up, VIP included.
    """
    if tier is SpendTier.NEW:
        return amount < 0
    low, high = TIER_RANGES[tier]
    return amount >= low and (high is None or amount < high)


@dataclass(frozen=True)
class OrderTotals:
    calculated_spend: float = 0.0
    order_count: int = 0
    last_order_date: datetime | None = None


def summarize_orders(orders: Iterable[Any]) -> dict[UUID, OrderTotals]:
    """Group orders by customer into spend, count and latest order date."""
    totals: dict[UUID, OrderTotals] = {}
    for order in orders:
        current = totals.get(order.customer_id, OrderTotals())
        order_date = as_utc(order.date)
        last = current.last_order_date
        if order_date is not None and (last is None or order_date > last):
            last = order_date
        totals[order.customer_id] = OrderTotals(
            calculated_spend=round(current.calculated_spend + float(order.amount or 0), 2),
            order_count=current.order_count + 1,
            last_order_date=last,
        )
    return totals


def calculate_customer_stats(customers: Iterable[Any]) -> CustomerStats:
    """Aggregate spend figures for the customers page header.

    The average is taken over customers that have spent anything.
    """
    spends = [float(customer.spend or 0) for customer in customers]
    spenders = [spend for spend in spends if spend > 0]
    total_spend = sum(spends)
    return CustomerStats(
        total_customers=len(spends),
        total_spend=round(total_spend, 2),
        average_spend=round(total_spend / len(spenders), 2) if spenders else 0.0,
        high_value_customers=sum(1 for spend in spends if spend >= HIGH_VALUE_THRESHOLD),
        customers_with_orders=len(spenders),
    )
