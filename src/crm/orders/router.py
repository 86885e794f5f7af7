"""
Order API router.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.dependencies import CurrentUser
from crm.config import get_settings
from crm.customers.repository import CustomerRepository
from crm.customers.service import CustomerService
from crm.orders.repository import OrderRepository
from crm.orders.schemas import (
    OrderCreate,
    OrderItem,
    OrderItemPatch,
    OrderResponse,
    OrderSortField,
    OrderUpdate,
)
from crm.orders.service import OrderService
from crm.shared.database import get_db_session
from crm.shared.schemas import ApiResponse, PaginationMeta, SortDirection

router = APIRouter(prefix="/api/orders", tags=["orders"])


async def get_order_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> OrderService:
    return OrderService(
        repository=OrderRepository(session),
        spend=CustomerService(repository=CustomerRepository(session)),
    )


ServiceDep = Annotated[OrderService, Depends(get_order_service)]


@router.get("", response_model=ApiResponse[list[OrderResponse]])
async def list_orders(
    service: ServiceDep,
    _user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    search: str | None = Query(None),
    customer_id: UUID | None = Query(None),
    sort_by: OrderSortField = Query(OrderSortField.DATE),
    order: SortDirection = Query(SortDirection.DESC),
) -> ApiResponse:
    settings = get_settings()
    result = await service.list_orders(
        page=page,
        limit=min(limit or settings.default_page_size, settings.max_page_size),
        search=search,
        customer_id=customer_id,
        sort_by=sort_by,
        order=order,
    )
    return ApiResponse(data=result.items, pagination=PaginationMeta(**result.meta()))


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(data: OrderCreate, service: ServiceDep, _user: CurrentUser) -> OrderResponse:
    order = await service.create_order(data)
    return await service.get_order_response(order.id)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: UUID, service: ServiceDep, _user: CurrentUser) -> OrderResponse:
    return await service.get_order_response(order_id)


@router.put("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: UUID,
    data: OrderUpdate,
    service: ServiceDep,
    _user: CurrentUser,
) -> OrderResponse:
    await service.update_order(order_id, data)
    return await service.get_order_response(order_id)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(order_id: UUID, service: ServiceDep, _user: CurrentUser) -> Response:
    await service.delete_order(order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{order_id}/items", response_model=OrderResponse)
async def add_order_item(
    order_id: UUID,
    item: OrderItem,
    service: ServiceDep,
    _user: CurrentUser,
) -> OrderResponse:
    await service.add_order_item(order_id, item)
    return await service.get_order_response(order_id)


@router.patch("/{order_id}/items/{index}", response_model=OrderResponse)
async def update_order_item(
    order_id: UUID,
    index: int,
    patch: OrderItemPatch,
    service: ServiceDep,
    _user: CurrentUser,
) -> OrderResponse:
    await service.update_order_item(order_id, index, patch)
    return await service.get_order_response(order_id)


@router.delete("/{order_id}/items/{index}", response_model=OrderResponse)
async def remove_order_item(
    order_id: UUID,
    index: int,
    service: ServiceDep,
    _user: CurrentUser,
) -> OrderResponse:
    await service.remove_order_item(order_id, index)
    return await service.get_order_response(order_id)
