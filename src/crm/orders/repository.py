"""
Order repository for database operations.
"""

from collections.abc import Sequence
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.customers.models import Customer
from crm.orders.models import Order


class OrderRepositoryProtocol(Protocol):
    """Protocol for order repository operations."""

    async def get_by_id(self, order_id: UUID) -> Order | None: ...
    async def list_all(self, customer_id: UUID | None = None) -> Sequence[Order]: ...
    async def create(self, order: Order) -> Order: ...
    async def save(self, order: Order) -> Order: ...
    async def delete(self, order: Order) -> None: ...
    async def customer_names(self) -> dict[UUID, str]: ...
    async def customer_exists(self, customer_id: UUID) -> bool: ...


class OrderRepository:
    """Repository for order database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, order_id: UUID) -> Order | None:
        return await self._session.get(Order, order_id)

    async def list_all(self, customer_id: UUID | None = None) -> Sequence[Order]:
        stmt = select(Order)
        if customer_id is not None:
            stmt = stmt.where(Order.customer_id == customer_id)
        result = await self._session.execute(stmt.order_by(Order.date.desc()))
        return result.scalars().all()

    async def create(self, order: Order) -> Order:
        self._session.add(order)
        await self._session.flush()
        await self._session.refresh(order)
        return order

    async def save(self, order: Order) -> Order:
        await self._session.flush()
        await self._session.refresh(order)
        return order

    async def delete(self, order: Order) -> None:
        await self._session.delete(order)
        await self._session.flush()

    async def customer_names(self) -> dict[UUID, str]:
        result = await self._session.execute(select(Customer.id, Customer.name))
        return {customer_id: name for customer_id, name in result.all()}

    async def customer_exists(self, customer_id: UUID) -> bool:
        return await self._session.get(Customer, customer_id) is not None
