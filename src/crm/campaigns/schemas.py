"""
Pydantic schemas for campaign API.
"""

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from crm.campaigns.models import CampaignStatus, DeliveryStatus


def _not_blank(value: str, label: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{label} is required")
    return value


class CampaignCreate(BaseModel):
    segment_id: UUID
    subject: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    status: CampaignStatus = CampaignStatus.DRAFT

    @field_validator("subject")
    @classmethod
    def subject_not_blank(cls, v: str) -> str:
        return _not_blank(v, "Subject")

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, v: str) -> str:
        return _not_blank(v, "Message")


class CampaignUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    segment_id: UUID | None = None
    subject: str | None = Field(default=None, max_length=255)
    message: str | None = None
    status: CampaignStatus | None = None

    @field_validator("subject")
    @classmethod
    def subject_not_blank(cls, v: str | None) -> str | None:
        return None if v is None else _not_blank(v, "Subject")

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, v: str | None) -> str | None:
        return None if v is None else _not_blank(v, "Message")


class StatusUpdate(BaseModel):
    status: CampaignStatus


class CampaignDeliverySummary(BaseModel):
    total_sent: int
    total_delivered: int
    total_failed: int
    success_rate: float


class CampaignResponse(BaseModel):
    id: UUID
    segment_id: UUID | None
    segment_name: str
    subject: str
    message: str
    status: CampaignStatus
    created_at: datetime
    updated_at: datetime
    delivery_stats: CampaignDeliverySummary | None = None


class StatusCount(BaseModel):
    status: CampaignStatus
    count: int
    percentage: int


class StatusBreakdown(BaseModel):
    total: int
    breakdown: list[StatusCount]


class CommunicationLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    campaign_id: UUID
    customer_id: UUID
    customer_name: str
    customer_email: str
    message: str
    status: DeliveryStatus
    vendor_message_id: str | None = None
    error_message: str | None = None
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class CampaignDeliveryRequest(BaseModel):
    segment_id: UUID
    subject: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    discount_percentage: int | None = Field(default=None, ge=0, le=100)

    @field_validator("subject")
    @classmethod
    def subject_not_blank(cls, v: str) -> str:
        return _not_blank(v, "Subject")

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, v: str) -> str:
        return _not_blank(v, "Message")


class CampaignDeliveryResponse(BaseModel):
    success: bool
    campaign_id: UUID
    message: str
    total_messages: int
    sent_count: int
    failed_count: int
    communication_logs: list[CommunicationLogResponse]


class DeliveryReceiptRequest(BaseModel):
    """Vendor callback; the log id is also accepted as ``message_id``."""

    log_id: UUID = Field(validation_alias=AliasChoices("log_id", "message_id"))
    vendor_message_id: str | None = None
    status: DeliveryStatus
    error_message: str | None = None
    delivered_at: datetime | None = None


class DeliveryReceiptResponse(BaseModel):
    success: bool
    message: str
    updated_count: int = 0


class DeliveryStats(BaseModel):
    """Counts by status. ``sent`` includes delivered messages."""

    total: int = 0
    sent: int = 0
    delivered: int = 0
    failed: int = 0
    pending: int = 0
    success_rate: float = 0.0
    delivery_rate: float = 0.0


class StatsSummaryRequest(BaseModel):
    campaign_ids: list[UUID] = Field(..., min_length=1)


class CampaignStats(BaseModel):
    campaign_id: UUID
    subject: str
    stats: DeliveryStats


class StatsSummaryResponse(BaseModel):
    campaigns: list[CampaignStats]
    totals: DeliveryStats


class CampaignSuccessRate(BaseModel):
    campaign_id: UUID
    campaign_name: str
    segment_id: UUID | None
    segment_name: str
    total_messages: int
    sent_messages: int
    delivered_messages: int
    failed_messages: int
    success_rate: float
    delivery_rate: float
    created_at: datetime
    status: CampaignStatus


class OverallStats(BaseModel):
    total_campaigns: int
    average_success_rate: float
    average_delivery_rate: float
    total_messages_sent: int
    total_messages_delivered: int
    total_messages_failed: int


class SegmentBreakdownEntry(BaseModel):
    segment_id: UUID | None
    segment_name: str
    customer_count: int = 0
    campaign_count: int
    average_success_rate: float
    total_messages_sent: int


class CampaignSuccessRatesResponse(BaseModel):
    campaigns: list[CampaignSuccessRate]
    overall_stats: OverallStats
    segment_breakdown: list[SegmentBreakdownEntry]


class ActivityEntry(BaseModel):
    timestamp: datetime
    action: str
    details: str


class CampaignSegmentBreakdown(BaseModel):
    campaign_id: UUID
    overall_stats: DeliveryStats
    segment_breakdown: list[SegmentBreakdownEntry]
    recent_activity: list[ActivityEntry]
