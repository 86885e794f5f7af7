"""
Customer repository for database operations.
"""

from collections.abc import Iterable, Sequence
from typing import Protocol
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.customers.models import Customer
from crm.orders.models import Order
from crm.segments.models import Segment


class CustomerRepositoryProtocol(Protocol):
    """Protocol for customer repository operations."""

    async def get_by_id(self, customer_id: UUID) -> Customer | None: ...
    async def get_by_email(self, email: str) -> Customer | None: ...
    async def list_all(self) -> Sequence[Customer]: ...
    async def get_many(self, customer_ids: Iterable[UUID]) -> Sequence[Customer]: ...
    async def count(self) -> int: ...
    async def create(self, customer: Customer) -> Customer: ...
    async def save(self, customer: Customer) -> Customer: ...
    async def delete(self, customer: Customer) -> None: ...
    async def order_totals(self) -> dict[UUID, float]: ...
    async def list_orders(self) -> Sequence[Order]: ...


class CustomerRepository:
    """Repository for customer database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, customer_id: UUID) -> Customer | None:
        return await self._session.get(Customer, customer_id)

    async def get_by_email(self, email: str) -> Customer | None:
        result = await self._session.execute(
            select(Customer).where(func.lower(Customer.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> Sequence[Customer]:
        """All customers, newest first."""
        result = await self._session.execute(
            select(Customer).order_by(Customer.created_at.desc())
        )
        return result.scalars().all()

    async def get_many(self, customer_ids: Iterable[UUID]) -> Sequence[Customer]:
        ids = list(customer_ids)
        if not ids:
            return []
        result = await self._session.execute(select(Customer).where(Customer.id.in_(ids)))
        return result.scalars().all()

    async def count(self) -> int:
        result = await self._session.execute(select(func.count(Customer.id)))
        return result.scalar() or 0

    async def create(self, customer: Customer) -> Customer:
        self._session.add(customer)
        await self._session.flush()
        await self._session.refresh(customer)
        return customer

    async def save(self, customer: Customer) -> Customer:
        await self._session.flush()
        await self._session.refresh(customer)
        return customer

    async def delete(self, customer: Customer) -> None:
        """Delete a customer together with their orders and segment memberships."""
        await self._session.execute(delete(Order).where(Order.customer_id == customer.id))
        member_id = str(customer.id)
        segments = await self._session.execute(select(Segment))
        for segment in segments.scalars():
            if member_id in segment.customer_ids:
                segment.customer_ids = [cid for cid in segment.customer_ids if cid != member_id]
                segment.customer_count = len(segment.customer_ids)
        await self._session.delete(customer)
        await self._session.flush()

    async def order_totals(self) -> dict[UUID, float]:
        """Sum of order amounts per customer."""
        result = await self._session.execute(
            select(Order.customer_id, func.sum(Order.amount)).group_by(Order.customer_id)
        )
        return {customer_id: float(total or 0) for customer_id, total in result.all()}

    async def list_orders(self) -> Sequence[Order]:
        result = await self._session.execute(select(Order))
        return result.scalars().all()
