"""
Dashboard repository: full-table reads for the aggregate figures.
"""

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.campaigns.models import Campaign
from crm.customers.models import Customer
from crm.orders.models import Order


class DashboardRepository:
    """Read-only access to the rows the dashboard aggregates."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def customers(self) -> Sequence[Customer]:
        result = await self._session.execute(select(Customer))
        return result.scalars().all()

    async def orders(self) -> Sequence[Order]:
        result = await self._session.execute(select(Order))
        return result.scalars().all()

    async def campaigns(self) -> Sequence[Campaign]:
        result = await self._session.execute(select(Campaign))
        return result.scalars().all()
