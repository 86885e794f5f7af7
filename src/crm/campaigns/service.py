"""
Campaign service layer: CRUD, delivery through the messaging vendor, and
delivery analytics.
"""

from collections import defaultdict
from collections.abc import Sequence
from typing import Any
from uuid import UUID

from crm.campaigns.analytics import (
    UNKNOWN_SEGMENT,
    campaign_success_rate,
    delivery_stats,
    delivery_summary,
    overall_stats,
    personalize_message,
    recent_activity,
    segment_breakdown,
    status_breakdown,
    toggled_status,
)
from crm.campaigns.models import Campaign, CampaignStatus, CommunicationLog, DeliveryStatus
from crm.campaigns.repository import CampaignRepositoryProtocol
from crm.campaigns.schemas import (
    CampaignCreate,
    CampaignDeliveryRequest,
    CampaignDeliveryResponse,
    CampaignResponse,
    CampaignSegmentBreakdown,
    CampaignStats,
    CampaignSuccessRatesResponse,
    CampaignUpdate,
    CommunicationLogResponse,
    DeliveryReceiptRequest,
    DeliveryReceiptResponse,
    DeliveryStats,
    StatusBreakdown,
    StatsSummaryResponse,
)
from crm.messaging.interface import VendorProvider, VendorSendRequest
from crm.segments.models import Segment
from crm.segments.service import SegmentService
from crm.shared.database import utcnow
from crm.shared.exceptions import DeliveryError, NotFoundError, ValidationError
from crm.shared.listing import ListView, Page
from crm.shared.logging import get_logger

logger = get_logger(__name__)


def _segment_name(segment_id: UUID | None, segments: dict[UUID, Segment]) -> str:
    segment = segments.get(segment_id) if segment_id else None
    return segment.name if segment else UNKNOWN_SEGMENT


def _logs_by_campaign(logs: Sequence[CommunicationLog]) -> dict[UUID, list[CommunicationLog]]:
    grouped: dict[UUID, list[CommunicationLog]] = defaultdict(list)
    for log in logs:
        grouped[log.campaign_id].append(log)
    return grouped


class CampaignService:
    """Service for campaign operations."""

    def __init__(
        self,
        repository: CampaignRepositoryProtocol,
        segments: SegmentService,
        vendor: VendorProvider,
        default_discount: int = 10,
    ) -> None:
        self._repository = repository
        self._segments = segments
        self._vendor = vendor
        self._default_discount = default_discount

    def to_response(
        self,
        campaign: Campaign,
        segments: dict[UUID, Segment],
        logs: Sequence[CommunicationLog] | None = None,
    ) -> CampaignResponse:
        return CampaignResponse(
            id=campaign.id,
            segment_id=campaign.segment_id,
            segment_name=_segment_name(campaign.segment_id, segments),
            subject=campaign.subject,
            message=campaign.message,
            status=campaign.status,
            created_at=campaign.created_at,
            updated_at=campaign.updated_at,
            delivery_stats=delivery_summary(delivery_stats(logs)) if logs else None,
        )

    async def describe(self, campaign: Campaign) -> CampaignResponse:
        segments = await self._repository.segments([campaign.segment_id])
        logs = await self._repository.list_logs([campaign.id])
        return self.to_response(campaign, segments, logs)

    async def list_campaigns(
        self,
        page: int = 1,
        limit: int = 12,
        search: str | None = None,
        status: CampaignStatus | None = None,
    ) -> Page[CampaignResponse]:
        campaigns = list(await self._repository.list_all())
        if status is not None:
            campaigns = [campaign for campaign in campaigns if campaign.status == status]

        segments = await self._repository.segments(campaign.segment_id for campaign in campaigns)
        logs = _logs_by_campaign(
            await self._repository.list_logs(campaign.id for campaign in campaigns)
        )
        rows = [self.to_response(campaign, segments, logs.get(campaign.id)) for campaign in campaigns]

        def search_fields(row: CampaignResponse) -> tuple[Any, ...]:
            return (row.subject, row.message, row.segment_name)

        view = ListView(items=rows, fields=search_fields, key=lambda row: row.id, limit=limit)
        view.set_search(search or "")
        view.set_page(page)
        return view.current()

    async def get_campaign(self, campaign_id: UUID) -> Campaign:
        """Get a campaign by ID.

        Raises:
            NotFoundError: If the campaign does not exist.
        """
        campaign = await self._repository.get_by_id(campaign_id)
        if campaign is None:
            raise NotFoundError(
                message=f"Campaign with ID {campaign_id} not found",
                code="CAMPAIGN_NOT_FOUND",
            )
        return campaign

    async def create_campaign(self, data: CampaignCreate) -> Campaign:
        await self._segments.get_segment(data.segment_id)
        campaign = await self._repository.create(
            Campaign(
                segment_id=data.segment_id,
                subject=data.subject,
                message=data.message,
                status=data.status,
            )
        )
        logger.info(
            "Campaign created",
            extra={"campaign_id": str(campaign.id), "segment_id": str(data.segment_id)},
        )
        return campaign

    async def update_campaign(self, campaign_id: UUID, data: CampaignUpdate) -> Campaign:
        campaign = await self.get_campaign(campaign_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "segment_id" in changes:
            await self._segments.get_segment(changes["segment_id"])
        for field, value in changes.items():
            setattr(campaign, field, value)

        campaign = await self._repository.save(campaign)
        logger.info(
            "Campaign updated",
            extra={"campaign_id": str(campaign_id), "fields": sorted(changes)},
        )
        return campaign

    async def delete_campaign(self, campaign_id: UUID) -> None:
        campaign = await self.get_campaign(campaign_id)
        await self._repository.delete(campaign)
        logger.info("Campaign deleted", extra={"campaign_id": str(campaign_id)})

    async def change_status(self, campaign_id: UUID, status: CampaignStatus) -> Campaign:
        campaign = await self.get_campaign(campaign_id)
        previous = campaign.status
        campaign.status = status
        campaign = await self._repository.save(campaign)
        logger.info(
            "Campaign status changed",
            extra={
                "campaign_id": str(campaign_id),
                "from_status": CampaignStatus(previous).value,
                "to_status": status.value,
            },
        )
        return campaign

    async def toggle_status(self, campaign_id: UUID) -> Campaign:
        campaign = await self.get_campaign(campaign_id)
        return await self.change_status(campaign_id, toggled_status(CampaignStatus(campaign.status)))

    async def status_analytics(self) -> StatusBreakdown:
        total, breakdown = status_breakdown(await self._repository.list_all())
        return StatusBreakdown(total=total, breakdown=breakdown)

    async def deliver(self, data: CampaignDeliveryRequest) -> CampaignDeliveryResponse:
        """Create a completed campaign and send it to every customer in the segment.

        Raises:
            NotFoundError: If the segment does not exist.
            ValidationError: If the segment has no customers.
        """
        segment = await self._segments.get_segment(data.segment_id)
        customers = await self._segments.segment_customers(segment)
        if not customers:
            raise ValidationError(
                "Segment has no customers to deliver to",
                code="EMPTY_SEGMENT",
                errors=["Segment has no customers to deliver to"],
            )

        campaign = await self._repository.create(
            Campaign(
                segment_id=segment.id,
                subject=data.subject,
                message=data.message,
                status=CampaignStatus.COMPLETED,
            )
        )
        discount = (
            data.discount_percentage
            if data.discount_percentage is not None
            else self._default_discount
        )
        logs = await self._repository.add_logs(
            [
                CommunicationLog(
                    campaign_id=campaign.id,
                    customer_id=customer.id,
                    customer_name=customer.name,
                    customer_email=customer.email,
                    message=personalize_message(data.message, customer.name, discount),
                    status=DeliveryStatus.PENDING,
                )
                for customer in customers
            ]
        )

        for log in logs:
            await self._send(log, data.subject)
        logs = await self._repository.save_logs(logs)

        sent = sum(1 for log in logs if log.status == DeliveryStatus.SENT)
        failed = sum(1 for log in logs if log.status == DeliveryStatus.FAILED)
        logger.info(
            "Campaign delivered",
            extra={
                "campaign_id": str(campaign.id),
                "segment_id": str(segment.id),
                "total": len(logs),
                "sent": sent,
                "failed": failed,
            },
        )
        return CampaignDeliveryResponse(
            success=True,
            campaign_id=campaign.id,
            message=f"Campaign delivered successfully! {sent} sent, {failed} failed",
            total_messages=len(logs),
            sent_count=sent,
            failed_count=failed,
            communication_logs=[CommunicationLogResponse.model_validate(log) for log in logs],
        )

    async def _send(self, log: CommunicationLog, subject: str) -> None:
        request = VendorSendRequest(
            log_id=log.id,
            customer_email=log.customer_email,
            customer_name=log.customer_name,
            subject=subject,
            message=log.message,
            metadata={"campaign_id": str(log.campaign_id)},
        )
        try:
            result = await self._vendor.send(request)
        except DeliveryError as exc:
            logger.warning(
                "Vendor rejected message",
                extra={"log_id": str(log.id), "error": exc.message},
            )
            log.status = DeliveryStatus.FAILED
            log.error_message = exc.message
            return

        if result.success:
            log.status = DeliveryStatus.SENT
            log.sent_at = result.sent_at
            log.vendor_message_id = result.vendor_message_id
        else:
            log.status = DeliveryStatus.FAILED
            log.error_message = result.error_message

    async def apply_receipt(self, receipt: DeliveryReceiptRequest) -> DeliveryReceiptResponse:
        log = await self._repository.get_log(receipt.log_id)
        if log is None:
            raise NotFoundError(
                message=f"Communication log with ID {receipt.log_id} not found",
                code="COMMUNICATION_LOG_NOT_FOUND",
            )

        log.status = receipt.status
        if receipt.vendor_message_id:
            log.vendor_message_id = receipt.vendor_message_id
        if receipt.error_message:
            log.error_message = receipt.error_message
        if receipt.status == DeliveryStatus.DELIVERED:
            log.delivered_at = receipt.delivered_at or utcnow()
        if receipt.status in (DeliveryStatus.SENT, DeliveryStatus.DELIVERED) and log.sent_at is None:
            log.sent_at = utcnow()
        await self._repository.save_logs([log])

        logger.info(
            "Delivery receipt applied",
            extra={"log_id": str(log.id), "status": receipt.status.value},
        )
        return DeliveryReceiptResponse(
            success=True,
            message="Delivery status updated successfully",
            updated_count=1,
        )

    async def get_logs(self, campaign_id: UUID) -> Sequence[CommunicationLog]:
        await self.get_campaign(campaign_id)
        return await self._repository.list_logs([campaign_id])

    async def get_stats(self, campaign_id: UUID) -> DeliveryStats:
        return delivery_stats(await self.get_logs(campaign_id))

    async def stats_summary(self, campaign_ids: list[UUID]) -> StatsSummaryResponse:
        campaigns = [await self.get_campaign(campaign_id) for campaign_id in dict.fromkeys(campaign_ids)]
        logs = await self._repository.list_logs(campaign.id for campaign in campaigns)
        grouped = _logs_by_campaign(logs)
        return StatsSummaryResponse(
            campaigns=[
                CampaignStats(
                    campaign_id=campaign.id,
                    subject=campaign.subject,
                    stats=delivery_stats(grouped.get(campaign.id, [])),
                )
                for campaign in campaigns
            ],
            totals=delivery_stats(logs),
        )

    async def success_rates(self) -> CampaignSuccessRatesResponse:
        campaigns = await self._repository.list_all()
        segments = await self._repository.segments(campaign.segment_id for campaign in campaigns)
        grouped = _logs_by_campaign(
            await self._repository.list_logs(campaign.id for campaign in campaigns)
        )
        entries = [
            campaign_success_rate(
                campaign,
                _segment_name(campaign.segment_id, segments),
                grouped.get(campaign.id, []),
            )
            for campaign in campaigns
        ]
        return CampaignSuccessRatesResponse(
            campaigns=entries,
            overall_stats=overall_stats(entries),
            segment_breakdown=segment_breakdown(
                entries,
                {segment_id: segment.customer_count for segment_id, segment in segments.items()},
            ),
        )

    async def segment_breakdown(self, campaign_id: UUID) -> CampaignSegmentBreakdown:
        campaign = await self.get_campaign(campaign_id)
        segments = await self._repository.segments([campaign.segment_id])
        segment_name = _segment_name(campaign.segment_id, segments)
        logs = await self._repository.list_logs([campaign.id])
        entry = campaign_success_rate(campaign, segment_name, logs)
        return CampaignSegmentBreakdown(
            campaign_id=campaign.id,
            overall_stats=delivery_stats(logs),
            segment_breakdown=segment_breakdown(
                [entry],
                {segment_id: segment.customer_count for segment_id, segment in segments.items()},
            ),
            recent_activity=recent_activity(campaign, segment_name, logs),
        )
