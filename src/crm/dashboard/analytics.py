"""
Dashboard figures computed from full customer, order and campaign lists.

Every function takes ``now`` so the 30-day windows are reproducible.
"""

from collections.abc import Sequence
from datetime import date, datetime, timedelta

from crm.campaigns.analytics import round_half_up
from crm.campaigns.models import Campaign, CampaignStatus
from crm.customers.models import Customer
from crm.dashboard.schemas import CustomerGrowthPoint, DashboardStats, RecentOrder, RevenuePoint
from crm.orders.models import Order
from crm.orders.service import customer_label
from crm.shared.database import as_utc

WINDOW_DAYS = 30
RECENT_ORDER_COUNT = 5


def _window_days(now: datetime) -> list[date]:
    today = as_utc(now).date()
    return [today - timedelta(days=WINDOW_DAYS - 1 - offset) for offset in range(WINDOW_DAYS)]


def _label(day: date) -> str:
    return f"{day:%b} {day.day}"


def total_revenue(orders: Sequence[Order]) -> float:
    return round_half_up(sum(order.amount or 0.0 for order in orders), 2)


def avg_order_value(orders: Sequence[Order]) -> float:
    if not orders:
        return 0.0
    return round_half_up(sum(order.amount or 0.0 for order in orders) / len(orders), 2)


def conversion_rate(customers: Sequence[Customer], orders: Sequence[Order]) -> float:
    """Share of customers with at least one order, as a percentage."""
    if not customers:
        return 0.0
    ordering = {order.customer_id for order in orders}
    return round_half_up(len(ordering) / len(customers) * 100, 2)


def active_campaigns(campaigns: Sequence[Campaign], now: datetime) -> int:
    cutoff = as_utc(now) - timedelta(days=WINDOW_DAYS)
    return sum(
        1
        for campaign in campaigns
        if as_utc(campaign.created_at) >= cutoff or campaign.status == CampaignStatus.ACTIVE
    )


def active_users(customers: Sequence[Customer], now: datetime) -> int:
    cutoff = as_utc(now) - timedelta(days=WINDOW_DAYS)
    count = 0
    for customer in customers:
        last_activity = as_utc(customer.last_active or customer.created_at)
        if last_activity is not None and last_activity >= cutoff:
            count += 1
    return count


def revenue_series(orders: Sequence[Order], now: datetime) -> list[RevenuePoint]:
    by_day: dict[date, list[Order]] = {}
    for order in orders:
        by_day.setdefault(as_utc(order.date).date(), []).append(order)

    points = []
    for day in _window_days(now):
        day_orders = by_day.get(day, [])
        points.append(
            RevenuePoint(
                date=_label(day),
                revenue=round_half_up(sum(order.amount or 0.0 for order in day_orders), 2),
                orders=len(day_orders),
            )
        )
    return points


def customer_growth(customers: Sequence[Customer], now: datetime) -> list[CustomerGrowthPoint]:
    """Daily sign-ups; ``customers`` accumulates within the window only."""
    counts: dict[date, int] = {}
    for customer in customers:
        day = as_utc(customer.created_at).date()
        counts[day] = counts.get(day, 0) + 1

    points = []
    cumulative = 0
    for day in _window_days(now):
        new = counts.get(day, 0)
        cumulative += new
        points.append(CustomerGrowthPoint(date=_label(day), customers=cumulative, new_customers=new))
    return points


def recent_orders(orders: Sequence[Order], customers: Sequence[Customer]) -> list[RecentOrder]:
    names = {customer.id: customer.name for customer in customers}
    newest = sorted(orders, key=lambda order: as_utc(order.date), reverse=True)[:RECENT_ORDER_COUNT]
    return [
        RecentOrder(
            id=order.id,
            customer_id=order.customer_id,
            customer_name=customer_label(order.customer_id, names),
            amount=order.amount,
            date=order.date,
        )
        for order in newest
    ]


def build_dashboard(
    customers: Sequence[Customer],
    orders: Sequence[Order],
    campaigns: Sequence[Campaign],
    now: datetime,
) -> DashboardStats:
    return DashboardStats(
        total_customers=len(customers),
        total_orders=len(orders),
        total_campaigns=len(campaigns),
        active_campaigns=active_campaigns(campaigns, now),
        total_revenue=total_revenue(orders),
        avg_order_value=avg_order_value(orders),
        conversion_rate=conversion_rate(customers, orders),
        active_users=active_users(customers, now),
        revenue_series=revenue_series(orders, now),
        customer_growth=customer_growth(customers, now),
        recent_orders=recent_orders(orders, customers),
        generated_at=now,
    )
