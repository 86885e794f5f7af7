"""
Campaign API router and the vendor delivery-receipt callback.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.dependencies import CurrentUser
from crm.campaigns.models import CampaignStatus
from crm.campaigns.repository import CampaignRepository
from crm.campaigns.schemas import (
    CampaignCreate,
    CampaignDeliveryRequest,
    CampaignDeliveryResponse,
    CampaignResponse,
    CampaignSegmentBreakdown,
    CampaignSuccessRatesResponse,
    CampaignUpdate,
    CommunicationLogResponse,
    DeliveryReceiptRequest,
    DeliveryReceiptResponse,
    DeliveryStats,
    StatsSummaryRequest,
    StatsSummaryResponse,
    StatusBreakdown,
    StatusUpdate,
)
from crm.campaigns.service import CampaignService
from crm.config import get_settings
from crm.customers.repository import CustomerRepository
from crm.messaging.factory import get_vendor_provider
from crm.messaging.interface import VendorProvider
from crm.segments.repository import SegmentRepository
from crm.segments.service import SegmentService
from crm.shared.database import get_db_session
from crm.shared.schemas import ApiResponse, PaginationMeta

router = APIRouter(prefix="/api/campaigns", tags=["campaigns"])
receipt_router = APIRouter(prefix="/api", tags=["delivery"])


async def get_campaign_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    vendor: Annotated[VendorProvider, Depends(get_vendor_provider)],
) -> CampaignService:
    return CampaignService(
        repository=CampaignRepository(session),
        segments=SegmentService(
            repository=SegmentRepository(session),
            customers=CustomerRepository(session),
        ),
        vendor=vendor,
        default_discount=get_settings().default_discount_percentage,
    )


ServiceDep = Annotated[CampaignService, Depends(get_campaign_service)]


@router.get("", response_model=ApiResponse[list[CampaignResponse]])
async def list_campaigns(
    service: ServiceDep,
    _user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    search: str | None = Query(None),
    status_filter: CampaignStatus | None = Query(None, alias="status"),
) -> ApiResponse:
    settings = get_settings()
    result = await service.list_campaigns(
        page=page,
        limit=min(limit or settings.default_page_size, settings.max_page_size),
        search=search,
        status=status_filter,
    )
    return ApiResponse(data=result.items, pagination=PaginationMeta(**result.meta()))


@router.get("/analytics", response_model=StatusBreakdown)
async def campaign_analytics(service: ServiceDep, _user: CurrentUser) -> StatusBreakdown:
    return await service.status_analytics()


@router.get("/success-rates", response_model=CampaignSuccessRatesResponse)
async def success_rates(service: ServiceDep, _user: CurrentUser) -> CampaignSuccessRatesResponse:
    return await service.success_rates()


@router.post("/deliver", response_model=CampaignDeliveryResponse)
async def deliver_campaign(
    body: CampaignDeliveryRequest,
    service: ServiceDep,
    _user: CurrentUser,
) -> CampaignDeliveryResponse:
    return await service.deliver(body)


@router.post("/stats/summary", response_model=StatsSummaryResponse)
async def stats_summary(
    body: StatsSummaryRequest,
    service: ServiceDep,
    _user: CurrentUser,
) -> StatsSummaryResponse:
    return await service.stats_summary(body.campaign_ids)


@router.post("", response_model=CampaignResponse, status_code=status.HTTP_201_CREATED)
async def create_campaign(
    data: CampaignCreate,
    service: ServiceDep,
    _user: CurrentUser,
) -> CampaignResponse:
    return await service.describe(await service.create_campaign(data))


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(campaign_id: UUID, service: ServiceDep, _user: CurrentUser) -> CampaignResponse:
    return await service.describe(await service.get_campaign(campaign_id))


@router.put("/{campaign_id}", response_model=CampaignResponse)
async def update_campaign(
    campaign_id: UUID,
    data: CampaignUpdate,
    service: ServiceDep,
    _user: CurrentUser,
) -> CampaignResponse:
    return await service.describe(await service.update_campaign(campaign_id, data))


@router.delete("/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_campaign(campaign_id: UUID, service: ServiceDep, _user: CurrentUser) -> Response:
    await service.delete_campaign(campaign_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{campaign_id}/status", response_model=CampaignResponse)
async def change_status(
    campaign_id: UUID,
    body: StatusUpdate,
    service: ServiceDep,
    _user: CurrentUser,
) -> CampaignResponse:
    return await service.describe(await service.change_status(campaign_id, body.status))


@router.post("/{campaign_id}/toggle", response_model=CampaignResponse)
async def toggle_campaign(campaign_id: UUID, service: ServiceDep, _user: CurrentUser) -> CampaignResponse:
    return await service.describe(await service.toggle_status(campaign_id))


@router.get("/{campaign_id}/logs", response_model=list[CommunicationLogResponse])
async def campaign_logs(
    campaign_id: UUID,
    service: ServiceDep,
    _user: CurrentUser,
) -> list[CommunicationLogResponse]:
    return [CommunicationLogResponse.model_validate(log) for log in await service.get_logs(campaign_id)]


@router.get("/{campaign_id}/stats", response_model=DeliveryStats)
async def campaign_stats(campaign_id: UUID, service: ServiceDep, _user: CurrentUser) -> DeliveryStats:
    return await service.get_stats(campaign_id)


@router.get("/{campaign_id}/stats/segment-breakdown", response_model=CampaignSegmentBreakdown)
async def campaign_segment_breakdown(
    campaign_id: UUID,
    service: ServiceDep,
    _user: CurrentUser,
) -> CampaignSegmentBreakdown:
    return await service.segment_breakdown(campaign_id)


@receipt_router.post("/delivery-receipt", response_model=DeliveryReceiptResponse)
async def delivery_receipt(body: DeliveryReceiptRequest, service: ServiceDep) -> DeliveryReceiptResponse:
    """Vendor callback; no user session is required."""
    return await service.apply_receipt(body)
