"""
Tests for dashboard statistics.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi import status
from httpx import AsyncClient

from crm.campaigns.models import CampaignStatus
from crm.dashboard.analytics import (
    WINDOW_DAYS,
    active_campaigns,
    active_users,
    build_dashboard,
    conversion_rate,
    customer_growth,
    revenue_series,
)
from crm.dashboard.repository import DashboardRepository
from crm.dashboard.service import DashboardService

NOW = datetime(2024, 3, 15, 18, 0, tzinfo=timezone.utc)


def _customer(name="Ada", created_days_ago=100, active_days_ago=None):
    return SimpleNamespace(
        id=uuid4(),
        name=name,
        created_at=NOW - timedelta(days=created_days_ago),
        last_active=None if active_days_ago is None else NOW - timedelta(days=active_days_ago),
    )


def _order(customer_id, amount, days_ago=0):
    return SimpleNamespace(
        id=uuid4(),
        customer_id=customer_id,
        amount=amount,
        date=NOW - timedelta(days=days_ago),
    )


class TestDashboardFigures:
    def test_conversion_rate(self) -> None:
        customers = [_customer(), _customer(), _customer()]
        orders = [_order(customers[0].id, 10), _order(customers[0].id, 5)]

        assert conversion_rate(customers, orders) == 33.33
        assert conversion_rate([], orders) == 0.0

    def test_active_campaigns_counts_recent_or_active(self) -> None:
        campaigns = [
            SimpleNamespace(created_at=NOW - timedelta(days=2), status=CampaignStatus.COMPLETED),
            SimpleNamespace(created_at=NOW - timedelta(days=90), status=CampaignStatus.ACTIVE),
            SimpleNamespace(created_at=NOW - timedelta(days=90), status=CampaignStatus.PAUSED),
        ]

        assert active_campaigns(campaigns, NOW) == 2

    def test_active_users_fall_back_to_created_at(self) -> None:
        customers = [
            _customer(active_days_ago=3),
            _customer(created_days_ago=5),
            _customer(created_days_ago=5, active_days_ago=45),
        ]

        assert active_users(customers, NOW) == 2

    def test_revenue_series_covers_window(self) -> None:
        customer = _customer()
        orders = [
            _order(customer.id, 20.0),
            _order(customer.id, 5.5),
            _order(customer.id, 99.0, days_ago=WINDOW_DAYS + 1),
        ]

        series = revenue_series(orders, NOW)

        assert len(series) == WINDOW_DAYS
        assert series[-1].date == "Mar 15"
        assert (series[-1].revenue, series[-1].orders) == (25.5, 2)
        assert series[0].date == "Feb 15"
        assert sum(point.orders for point in series) == 2

    def test_customer_growth_accumulates(self) -> None:
        customers = [
            _customer(created_days_ago=1),
            _customer(created_days_ago=1),
            _customer(created_days_ago=0),
        ]

        growth = customer_growth(customers, NOW)

        assert [(p.customers, p.new_customers) for p in growth[-2:]] == [(2, 2), (3, 1)]
        assert growth[0].customers == 0

    def test_build_dashboard(self) -> None:
        ada = _customer("Ada")
        orders = [_order(ada.id, 30.0, days_ago=day) for day in range(7)]
        orders.append(_order(uuid4(), 10.0, days_ago=10))

        stats = build_dashboard([ada], orders, [], NOW)

        assert stats.total_orders == 8
        assert stats.total_revenue == 220.0
        assert stats.avg_order_value == 27.5
        assert len(stats.recent_orders) == 5
        assert stats.recent_orders[0].customer_name == "Ada"
        assert stats.generated_at == NOW


class TestDashboardService:
    @pytest.mark.asyncio
    async def test_uses_injected_clock(self) -> None:
        repository = AsyncMock(spec=DashboardRepository)
        repository.customers.return_value = []
        repository.orders.return_value = []
        repository.campaigns.return_value = []
        service = DashboardService(repository=repository, clock=lambda: NOW)

        stats = await service.get_stats()

        assert stats.generated_at == NOW
        assert stats.revenue_series[-1].date == "Mar 15"


class TestDashboardApi:
    @pytest.mark.asyncio
    async def test_stats_endpoint(
        self,
        async_client: AsyncClient,
        auth_headers: dict,
        make_customer,
        make_order,
    ) -> None:
        customer = await make_customer(name="Ada")
        await make_order(customer.id)
        await make_customer(name="Grace")

        response = await async_client.get("/api/dashboard/stats", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["total_customers"] == 2
        assert body["total_orders"] == 1
        assert body["total_revenue"] == 50.0
        assert body["conversion_rate"] == 50.0
        assert len(body["revenue_series"]) == WINDOW_DAYS
        assert body["recent_orders"][0]["customer_name"] == "Ada"

    @pytest.mark.asyncio
    async def test_requires_authentication(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/api/dashboard/stats")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
