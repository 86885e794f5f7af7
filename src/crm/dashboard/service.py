"""
Dashboard statistics service.
"""

from collections.abc import Callable
from datetime import datetime

from crm.dashboard.analytics import build_dashboard
from crm.dashboard.repository import DashboardRepository
from crm.dashboard.schemas import DashboardStats
from crm.shared.database import utcnow
from crm.shared.logging import get_logger

logger = get_logger(__name__)


class DashboardService:
    """Service for computing dashboard statistics."""

    def __init__(
        self,
        repository: DashboardRepository,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repository = repository
        self._clock = clock

    async def get_stats(self) -> DashboardStats:
        customers = await self._repository.customers()
        orders = await self._repository.orders()
        campaigns = await self._repository.campaigns()
        stats = build_dashboard(customers, orders, campaigns, now=self._clock())
        logger.debug(
            "Dashboard stats computed",
            extra={
                "customers": stats.total_customers,
                "orders": stats.total_orders,
                "campaigns": stats.total_campaigns,
            },
        )
        return stats
