"""
Order service layer for business logic.
"""

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from crm.orders.items import add_item, calculate_order_amount, remove_item, update_item
from crm.orders.models import Order
from crm.orders.repository import OrderRepositoryProtocol
from crm.orders.schemas import (
    OrderCreate,
    OrderItem,
    OrderItemPatch,
    OrderResponse,
    OrderSortField,
    OrderUpdate,
)
from crm.orders.validation import validate_items, validate_order
from crm.shared.database import as_utc
from crm.shared.exceptions import NotFoundError, ValidationError
from crm.shared.listing import ListView, Page
from crm.shared.logging import get_logger
from crm.shared.schemas import SortDirection

logger = get_logger(__name__)


class SpendRecalculator(Protocol):
    async def recalculate_spend(self, customer_ids: list[UUID]) -> int: ...


def format_order_date(value: datetime | None) -> str:
    """Display format used for search, e.g. "Jan 5, 2024, 10:30 AM"."""
    if value is None:
        return ""
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{value:%b} {value.day}, {value.year}, {hour}:{value.minute:02d} {meridiem}"


def customer_label(customer_id: UUID | None, names: dict[UUID, str]) -> str:
    if customer_id is None:
        return "Unknown Customer"
    return names.get(customer_id) or f"Customer {str(customer_id)[-6:]}"


class OrderService:
    """Service for order operations.

    Every write recomputes the order amount from its items and refreshes the
    owning customer's spend.
    """

    def __init__(
        self,
        repository: OrderRepositoryProtocol,
        spend: SpendRecalculator | None = None,
    ) -> None:
        self._repository = repository
        self._spend = spend

    async def _refresh_spend(self, *customer_ids: UUID) -> None:
        if self._spend is not None:
            await self._spend.recalculate_spend(list(dict.fromkeys(customer_ids)))

    def _to_response(self, order: Order, names: dict[UUID, str]) -> OrderResponse:
        response = OrderResponse.model_validate(order)
        response.customer_name = customer_label(order.customer_id, names)
        return response

    async def list_orders(
        self,
        page: int = 1,
        limit: int = 12,
        search: str | None = None,
        customer_id: UUID | None = None,
        sort_by: OrderSortField = OrderSortField.DATE,
        order: SortDirection = SortDirection.DESC,
    ) -> Page[OrderResponse]:
        orders = list(await self._repository.list_all(customer_id=customer_id))
        names = await self._repository.customer_names()

        def search_fields(row: Order) -> list[Any]:
            values: list[Any] = [
                str(row.id),
                customer_label(row.customer_id, names),
                str(row.customer_id),
                row.amount,
                format_order_date(as_utc(row.date)),
            ]
            for item in row.items or []:
                values.extend([item.get("name"), item.get("sku")])
            return values

        def sort_key(row: Order) -> Any:
            if sort_by is OrderSortField.AMOUNT:
                return row.amount
            if sort_by is OrderSortField.CUSTOMER:
                return customer_label(row.customer_id, names)
            return as_utc(row.date or row.created_at)

        view = ListView(
            items=orders,
            fields=search_fields,
            key=lambda row: row.id,
            limit=limit,
            sort_key=sort_key,
            descending=order is SortDirection.DESC,
        )
        view.set_search(search or "")
        view.set_page(page)
        current = view.current()
        return Page(
            items=[self._to_response(row, names) for row in current.items],
            page=current.page,
            limit=current.limit,
            total=current.total,
            pages=current.pages,
        )

    async def get_order(self, order_id: UUID) -> Order:
        """Get an order by ID.

        Raises:
            NotFoundError: If the order does not exist.
        """
        order = await self._repository.get_by_id(order_id)
        if order is None:
            raise NotFoundError(
                message=f"Order with ID {order_id} not found",
                code="ORDER_NOT_FOUND",
            )
        return order

    async def get_order_response(self, order_id: UUID) -> OrderResponse:
        order = await self.get_order(order_id)
        return self._to_response(order, await self._repository.customer_names())

    async def _checked_amount(self, data: OrderCreate) -> float:
        validate_order(data.customer_id, data.date, data.items).raise_if_invalid()
        if not await self._repository.customer_exists(data.customer_id):
            raise NotFoundError(
                message=f"Customer with ID {data.customer_id} not found",
                code="CUSTOMER_NOT_FOUND",
            )

        amount = calculate_order_amount(data.items)
        if data.amount is not None and round(data.amount, 2) != amount:
            logger.warning(
                "Client order amount differs from item total",
                extra={"client_amount": data.amount, "calculated_amount": amount},
            )
        return amount

    async def create_order(self, data: OrderCreate) -> Order:
        amount = await self._checked_amount(data)
        order = await self._repository.create(
            Order(
                customer_id=data.customer_id,
                date=data.date,
                items=[item.model_dump() for item in data.items],
                amount=amount,
            )
        )
        await self._refresh_spend(order.customer_id)
        logger.info(
            "Order created",
            extra={"order_id": str(order.id), "customer_id": str(order.customer_id), "amount": amount},
        )
        return order

    async def update_order(self, order_id: UUID, data: OrderUpdate) -> Order:
        order = await self.get_order(order_id)
        amount = await self._checked_amount(data)
        previous_customer = order.customer_id

        order.customer_id = data.customer_id
        order.date = data.date
        order.items = [item.model_dump() for item in data.items]
        order.amount = amount
        order = await self._repository.save(order)

        await self._refresh_spend(previous_customer, order.customer_id)
        logger.info("Order updated", extra={"order_id": str(order_id), "amount": amount})
        return order

    async def delete_order(self, order_id: UUID) -> None:
        order = await self.get_order(order_id)
        customer_id = order.customer_id
        await self._repository.delete(order)
        await self._refresh_spend(customer_id)
        logger.info("Order deleted", extra={"order_id": str(order_id)})

    async def _save_items(self, order: Order, items: list[OrderItem]) -> Order:
        validate_items(items).raise_if_invalid()
        order.items = [item.model_dump() for item in items]
        order.amount = calculate_order_amount(items)
        order = await self._repository.save(order)
        await self._refresh_spend(order.customer_id)
        return order

    async def add_order_item(self, order_id: UUID, item: OrderItem) -> Order:
        order = await self.get_order(order_id)
        items = add_item([OrderItem.model_validate(raw) for raw in order.items], item)
        return await self._save_items(order, items)

    async def update_order_item(self, order_id: UUID, index: int, patch: OrderItemPatch) -> Order:
        order = await self.get_order(order_id)
        current = [OrderItem.model_validate(raw) for raw in order.items]
        try:
            items = update_item(current, index, **patch.model_dump(exclude_unset=True))
        except IndexError as e:
            raise NotFoundError(str(e), code="ORDER_ITEM_NOT_FOUND") from e
        return await self._save_items(order, items)

    async def remove_order_item(self, order_id: UUID, index: int) -> Order:
        order = await self.get_order(order_id)
        current = [OrderItem.model_validate(raw) for raw in order.items]
        try:
            items = remove_item(current, index)
        except IndexError as e:
            raise NotFoundError(str(e), code="ORDER_ITEM_NOT_FOUND") from e
        except ValueError as e:
            raise ValidationError(str(e), errors=[str(e)]) from e
        return await self._save_items(order, items)
