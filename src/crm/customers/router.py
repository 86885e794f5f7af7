"""
Customer API router.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.dependencies import CurrentUser
from crm.config import get_settings
from crm.customers.export import export_filename
from crm.customers.repository import CustomerRepository
from crm.customers.schemas import (
    BulkDeleteResponse,
    CustomerCreate,
    CustomerIdsRequest,
    CustomerResponse,
    CustomerSortField,
    CustomerStats,
    CustomerUpdate,
    CustomerWithCalculatedSpend,
    RefreshSpendResponse,
    SortDirection,
    SpendTier,
)
from crm.customers.service import CustomerService, to_response
from crm.shared.database import get_db_session
from crm.shared.schemas import ApiResponse, PaginationMeta

router = APIRouter(prefix="/api/customers", tags=["customers"])


async def get_customer_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> CustomerService:
    return CustomerService(repository=CustomerRepository(session))


ServiceDep = Annotated[CustomerService, Depends(get_customer_service)]


@router.get("", response_model=ApiResponse[list[CustomerWithCalculatedSpend]])
async def list_customers(
    service: ServiceDep,
    _user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    search: str | None = Query(None),
    spend_tier: SpendTier | None = Query(None),
    sort_field: CustomerSortField | None = Query(None),
    sort_direction: SortDirection = Query(SortDirection.ASC),
    calculated_spend: bool = Query(False, description="Attach spend calculated from orders"),
) -> ApiResponse:
    settings = get_settings()
    result = await service.list_customers(
        page=page,
        limit=min(limit or settings.default_page_size, settings.max_page_size),
        search=search,
        spend_tier=spend_tier,
        sort_field=sort_field,
        sort_direction=sort_direction,
        with_calculated_spend=calculated_spend,
    )
    return ApiResponse(data=result.items, pagination=PaginationMeta(**result.meta()))


@router.get("/stats", response_model=CustomerStats)
async def customer_stats(service: ServiceDep, _user: CurrentUser) -> CustomerStats:
    return await service.get_stats()


@router.post("/refresh-spend", response_model=RefreshSpendResponse)
async def refresh_all_spend(service: ServiceDep, _user: CurrentUser) -> RefreshSpendResponse:
    return await service.refresh_spend()


@router.post("/export")
async def export_customers(
    body: CustomerIdsRequest,
    service: ServiceDep,
    _user: CurrentUser,
) -> Response:
    content = await service.export_csv(body.customer_ids)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename("customers_export")}"'
        },
    )


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_customers(
    body: CustomerIdsRequest,
    service: ServiceDep,
    _user: CurrentUser,
) -> BulkDeleteResponse:
    deleted = await service.bulk_delete(body.customer_ids)
    return BulkDeleteResponse(deleted_count=deleted)


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    data: CustomerCreate,
    service: ServiceDep,
    _user: CurrentUser,
) -> CustomerResponse:
    return to_response(await service.create_customer(data))


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: UUID,
    service: ServiceDep,
    _user: CurrentUser,
) -> CustomerResponse:
    return to_response(await service.get_customer(customer_id))


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: UUID,
    data: CustomerUpdate,
    service: ServiceDep,
    _user: CurrentUser,
) -> CustomerResponse:
    return to_response(await service.update_customer(customer_id, data))


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: UUID,
    service: ServiceDep,
    _user: CurrentUser,
) -> Response:
    await service.delete_customer(customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{customer_id}/refresh-spend", response_model=RefreshSpendResponse)
async def refresh_customer_spend(
    customer_id: UUID,
    service: ServiceDep,
    _user: CurrentUser,
) -> RefreshSpendResponse:
    return await service.refresh_spend(customer_id)
