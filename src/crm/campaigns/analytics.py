"""
Campaign delivery analytics.

Pure functions over campaigns and their communication logs. Rates are
percentages rounded to two decimals and are 0 whenever their denominator is 0.
"""

from collections.abc import Iterable, Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from crm.campaigns.models import Campaign, CampaignStatus, CommunicationLog, DeliveryStatus
from crm.campaigns.schemas import (
    ActivityEntry,
    CampaignDeliverySummary,
    CampaignSuccessRate,
    DeliveryStats,
    OverallStats,
    SegmentBreakdownEntry,
    StatusCount,
)
from crm.shared.database import as_utc

UNKNOWN_SEGMENT = "Unknown Segment"

_PLACEHOLDERS_NAME = ("{name}", "{customerName}")
_PLACEHOLDERS_DISCOUNT = ("{discount}", "{discountPercentage}")


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero, unlike the built-in banker's rounding."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _rate(part: int, whole: int) -> float:
    if whole == 0:
        return 0.0
    return round_half_up(part / whole * 100, 2)


def _average(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return round_half_up(sum(values) / len(values), 2)


def status_breakdown(campaigns: Iterable[Campaign]) -> tuple[int, list[StatusCount]]:
    """Count campaigns per status, in enum order, with whole-number percentages."""
    counts = {status: 0 for status in CampaignStatus}
    for campaign in campaigns:
        counts[CampaignStatus(campaign.status)] += 1
    total = sum(counts.values())
    return total, [
        StatusCount(
            status=status,
            count=count,
            percentage=int(round_half_up(count / total * 100)) if total else 0,
        )
        for status, count in counts.items()
    ]


def delivery_stats(logs: Iterable[CommunicationLog]) -> DeliveryStats:
    counts = {status: 0 for status in DeliveryStatus}
    for log in logs:
        counts[DeliveryStatus(log.status)] += 1

    total = sum(counts.values())
    delivered = counts[DeliveryStatus.DELIVERED]
    sent = counts[DeliveryStatus.SENT] + delivered
    return DeliveryStats(
        total=total,
        sent=sent,
        delivered=delivered,
        failed=counts[DeliveryStatus.FAILED],
        pending=counts[DeliveryStatus.PENDING],
        success_rate=_rate(sent, total),
        delivery_rate=_rate(delivered, sent),
    )


def delivery_summary(stats: DeliveryStats) -> CampaignDeliverySummary:
    return CampaignDeliverySummary(
        total_sent=stats.sent,
        total_delivered=stats.delivered,
        total_failed=stats.failed,
        success_rate=stats.success_rate,
    )


def campaign_success_rate(
    campaign: Campaign,
    segment_name: str,
    logs: Iterable[CommunicationLog],
) -> CampaignSuccessRate:
    stats = delivery_stats(logs)
    return CampaignSuccessRate(
        campaign_id=campaign.id,
        campaign_name=campaign.subject,
        segment_id=campaign.segment_id,
        segment_name=segment_name,
        total_messages=stats.total,
        sent_messages=stats.sent,
        delivered_messages=stats.delivered,
        failed_messages=stats.failed,
        success_rate=stats.success_rate,
        delivery_rate=stats.delivery_rate,
        created_at=campaign.created_at,
        status=campaign.status,
    )


def overall_stats(entries: Sequence[CampaignSuccessRate]) -> OverallStats:
    return OverallStats(
        total_campaigns=len(entries),
        average_success_rate=_average([entry.success_rate for entry in entries]),
        average_delivery_rate=_average([entry.delivery_rate for entry in entries]),
        total_messages_sent=sum(entry.sent_messages for entry in entries),
        total_messages_delivered=sum(entry.delivered_messages for entry in entries),
        total_messages_failed=sum(entry.failed_messages for entry in entries),
    )


def segment_breakdown(
    entries: Sequence[CampaignSuccessRate],
    customer_counts: Mapping[UUID, int] | None = None,
) -> list[SegmentBreakdownEntry]:
    """Group campaign rates by segment, keeping first-seen order."""
    customer_counts = customer_counts or {}
    groups: dict[UUID | None, list[CampaignSuccessRate]] = {}
    for entry in entries:
        groups.setdefault(entry.segment_id, []).append(entry)

    return [
        SegmentBreakdownEntry(
            segment_id=segment_id,
            segment_name=group[0].segment_name,
            customer_count=customer_counts.get(segment_id, 0) if segment_id else 0,
            campaign_count=len(group),
            average_success_rate=_average([entry.success_rate for entry in group]),
            total_messages_sent=sum(entry.sent_messages for entry in group),
        )
        for segment_id, group in groups.items()
    ]


def recent_activity(
    campaign: Campaign,
    segment_name: str,
    logs: Sequence[CommunicationLog],
) -> list[ActivityEntry]:
    """Timeline from stored timestamps, newest first."""
    created = as_utc(campaign.created_at)
    updated = as_utc(campaign.updated_at)
    activity = [
        ActivityEntry(
            timestamp=created,
            action="Campaign created",
            details=f'Campaign "{campaign.subject}" was created for segment "{segment_name}"',
        )
    ]
    if updated and created and updated > created:
        activity.append(
            ActivityEntry(
                timestamp=updated,
                action="Campaign updated",
                details=f'Campaign "{campaign.subject}" is now {CampaignStatus(campaign.status).value}',
            )
        )

    stats = delivery_stats(logs)
    sent_times = [as_utc(log.sent_at) for log in logs if log.sent_at is not None]
    if sent_times:
        activity.append(
            ActivityEntry(
                timestamp=max(sent_times),
                action="Messages sent",
                details=f"{stats.sent} of {stats.total} messages sent to {segment_name}",
            )
        )
    delivered_times = [as_utc(log.delivered_at) for log in logs if log.delivered_at is not None]
    if delivered_times:
        activity.append(
            ActivityEntry(
                timestamp=max(delivered_times),
                action="Messages delivered",
                details=f"{stats.delivered} messages delivered",
            )
        )

    return sorted(activity, key=lambda entry: entry.timestamp, reverse=True)


def personalize_message(template: str, customer_name: str, discount: int) -> str:
    message = template
    for placeholder in _PLACEHOLDERS_NAME:
        message = message.replace(placeholder, customer_name)
    for placeholder in _PLACEHOLDERS_DISCOUNT:
        message = message.replace(placeholder, str(discount))
    return message


def toggled_status(status: CampaignStatus) -> CampaignStatus:
    if status == CampaignStatus.ACTIVE:
        return CampaignStatus.PAUSED
    return CampaignStatus.ACTIVE
