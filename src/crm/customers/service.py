"""
Customer service layer for business logic.
"""

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from crm.customers.export import customers_to_csv
from crm.customers.models import Customer
from crm.customers.repository import CustomerRepositoryProtocol
from crm.customers.schemas import (
    CustomerCreate,
    CustomerResponse,
    CustomerSortField,
    CustomerStats,
    CustomerUpdate,
    CustomerWithCalculatedSpend,
    RefreshSpendResponse,
    SortDirection,
    SpendTier,
)
from crm.customers.spend import (
    OrderTotals,
    calculate_customer_stats,
    get_spend_tier,
    in_spend_tier,
    summarize_orders,
)
from crm.shared.database import as_utc
from crm.shared.exceptions import ConflictError, NotFoundError, ValidationError
from crm.shared.listing import ListView, Page
from crm.shared.logging import get_logger

logger = get_logger(__name__)


def customer_search_fields(customer: Customer) -> tuple[Any, ...]:
    return (customer.name, customer.email, customer.phone, str(customer.id), customer.spend)


def _sort_key(field: CustomerSortField):
    def key(customer: Customer) -> Any:
        value = getattr(customer, field.value)
        if field in (CustomerSortField.LAST_ACTIVE, CustomerSortField.CREATED_AT):
            return as_utc(value)
        return value

    return key


def to_response(customer: Customer) -> CustomerResponse:
    response = CustomerResponse.model_validate(customer)
    response.tier = get_spend_tier(customer.spend or 0)
    return response


class CustomerService:
    """Service for customer operations."""

    def __init__(self, repository: CustomerRepositoryProtocol) -> None:
        self._repository = repository

    async def list_customers(
        self,
        page: int = 1,
        limit: int = 12,
        search: str | None = None,
        spend_tier: SpendTier | None = None,
        sort_field: CustomerSortField | None = None,
        sort_direction: SortDirection = SortDirection.ASC,
        with_calculated_spend: bool = False,
    ) -> Page[CustomerWithCalculatedSpend]:
        """List customers with search, tier filter, sorting and pagination."""
        customers = list(await self._repository.list_all())
        if spend_tier is not None:
            customers = [c for c in customers if in_spend_tier(c.spend or 0, spend_tier)]

        view = ListView(
            items=customers,
            fields=customer_search_fields,
            key=lambda c: c.id,
            limit=limit,
            sort_key=_sort_key(sort_field) if sort_field else None,
            descending=sort_direction is SortDirection.DESC,
        )
        view.set_search(search or "")
        view.set_page(page)
        current = view.current()

        totals = (
            summarize_orders(await self._repository.list_orders())
            if with_calculated_spend
            else None
        )
        items: list[CustomerWithCalculatedSpend] = []
        for customer in current.items:
            item = CustomerWithCalculatedSpend.model_validate(customer)
            item.tier = get_spend_tier(customer.spend or 0)
            if totals is not None:
                summary = totals.get(customer.id, OrderTotals())
                item.calculated_spend = summary.calculated_spend
                item.order_count = summary.order_count
                item.last_order_date = summary.last_order_date
            items.append(item)

        return Page(
            items=items,
            page=current.page,
            limit=current.limit,
            total=current.total,
            pages=current.pages,
        )

    async def get_customer(self, customer_id: UUID) -> Customer:
        """Get a customer by ID.

        Raises:
            NotFoundError: If the customer does not exist.
        """
        customer = await self._repository.get_by_id(customer_id)
        if customer is None:
            raise NotFoundError(
                message=f"Customer with ID {customer_id} not found",
                code="CUSTOMER_NOT_FOUND",
            )
        return customer

    async def create_customer(self, data: CustomerCreate) -> Customer:
        if await self._repository.get_by_email(str(data.email)) is not None:
            raise ConflictError(
                message=f"A customer with email {data.email} already exists",
                code="CUSTOMER_EMAIL_EXISTS",
            )

        customer = await self._repository.create(
            Customer(
                name=data.name,
                email=str(data.email).lower(),
                phone=data.phone,
                spend=data.spend,
                visits=data.visits,
                last_active=data.last_active,
            )
        )
        logger.info("Customer created", extra={"customer_id": str(customer.id)})
        return customer

    async def update_customer(self, customer_id: UUID, data: CustomerUpdate) -> Customer:
        customer = await self.get_customer(customer_id)
        changes = data.model_dump(exclude_unset=True)

        if "email" in changes and changes["email"] is not None:
            email = str(changes["email"]).lower()
            existing = await self._repository.get_by_email(email)
            if existing is not None and existing.id != customer.id:
                raise ConflictError(
                    message=f"A customer with email {email} already exists",
                    code="CUSTOMER_EMAIL_EXISTS",
                )
            changes["email"] = email

        if "name" in changes:
            name = (changes["name"] or "").strip()
            if not name:
                raise ValidationError("Customer name is required", errors=["Customer name is required"])
            changes["name"] = name

        for field, value in changes.items():
            if value is None and field not in ("phone", "last_active"):
                continue
            setattr(customer, field, value)

        customer = await self._repository.save(customer)
        logger.info(
            "Customer updated",
            extra={"customer_id": str(customer_id), "updated_fields": list(changes.keys())},
        )
        return customer

    async def delete_customer(self, customer_id: UUID) -> None:
        customer = await self.get_customer(customer_id)
        await self._repository.delete(customer)
        logger.info("Customer deleted", extra={"customer_id": str(customer_id)})

    async def bulk_delete(self, customer_ids: Iterable[UUID]) -> int:
        customers = await self._repository.get_many(customer_ids)
        for customer in customers:
            await self._repository.delete(customer)
        logger.info("Customers deleted in bulk", extra={"deleted_count": len(customers)})
        return len(customers)

    async def get_stats(self) -> CustomerStats:
        return calculate_customer_stats(await self._repository.list_all())

    async def recalculate_spend(self, customer_ids: Iterable[UUID]) -> int:
        """Set ``spend`` from order totals for the given customers."""
        totals = await self._repository.order_totals()
        updated = 0
        for customer in await self._repository.get_many(customer_ids):
            spend = round(totals.get(customer.id, 0.0), 2)
            if customer.spend != spend:
                customer.spend = spend
                await self._repository.save(customer)
                updated += 1
        return updated

    async def refresh_spend(self, customer_id: UUID | None = None) -> RefreshSpendResponse:
        """Recalculate spend from orders for one customer or all of them."""
        if customer_id is not None:
            customer = await self.get_customer(customer_id)
            updated = await self.recalculate_spend([customer.id])
            logger.info("Customer spend refreshed", extra={"customer_id": str(customer_id)})
            return RefreshSpendResponse(
                message="Customer spend refreshed successfully",
                updated_count=updated,
                total_customers=1,
            )

        customers = await self._repository.list_all()
        updated = await self.recalculate_spend([c.id for c in customers])
        logger.info(
            "All customer spend refreshed",
            extra={"updated_count": updated, "total_customers": len(customers)},
        )
        return RefreshSpendResponse(
            message=f"Spend refreshed for {len(customers)} customers",
            updated_count=updated,
            total_customers=len(customers),
        )

    async def export_csv(self, customer_ids: list[UUID]) -> str:
        if not customer_ids:
            raise ValidationError(
                "No customers selected for export",
                errors=["No customers selected for export"],
            )
        customers = await self._repository.get_many(customer_ids)
        order = {customer_id: index for index, customer_id in enumerate(customer_ids)}
        rows = sorted(customers, key=lambda c: order.get(c.id, len(order)))
        return customers_to_csv(rows)
