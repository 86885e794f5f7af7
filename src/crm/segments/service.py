"""
Segment service layer for business logic.
"""

from collections.abc import Sequence
from typing import Any
from uuid import UUID

from crm.customers.export import customers_to_csv
from crm.customers.models import Customer
from crm.customers.repository import CustomerRepositoryProtocol
from crm.customers.service import to_response
from crm.segments.models import Segment
from crm.segments.repository import SegmentRepositoryProtocol
from crm.segments.rules import matching_customers, rule_errors
from crm.segments.schemas import (
    OffsetPagination,
    RuleGroup,
    SegmentCreate,
    SegmentCustomersResponse,
    SegmentStats,
    SegmentSummary,
    SegmentUpdate,
)
from crm.shared.database import as_utc, utcnow
from crm.shared.exceptions import NotFoundError, ValidationError
from crm.shared.listing import ListView, Page
from crm.shared.logging import get_logger

logger = get_logger(__name__)


def segment_search_fields(segment: Segment) -> tuple[Any, ...]:
    created = as_utc(segment.created_at)
    created_label = f"{created.month}/{created.day}/{created.year}" if created else None
    return (segment.name, str(segment.id), segment.customer_count, created_label)


def calculate_segment_stats(segments: Sequence[Segment]) -> SegmentStats:
    return SegmentStats(
        total_segments=len(segments),
        total_customers=sum(segment.customer_count or 0 for segment in segments),
        active_segments=sum(1 for segment in segments if (segment.customer_count or 0) > 0),
    )


def _check_rules(rules: RuleGroup) -> None:
    errors = rule_errors(rules)
    if errors:
        raise ValidationError("Segment rules are invalid", code="INVALID_SEGMENT_RULES", errors=errors)


class SegmentService:
    """Service for segment operations."""

    def __init__(
        self,
        repository: SegmentRepositoryProtocol,
        customers: CustomerRepositoryProtocol,
    ) -> None:
        self._repository = repository
        self._customers = customers

    async def list_segments(
        self,
        page: int = 1,
        limit: int = 12,
        search: str | None = None,
    ) -> Page[Segment]:
        view = ListView(
            items=list(await self._repository.list_all()),
            fields=segment_search_fields,
            key=lambda segment: segment.id,
            limit=limit,
        )
        view.set_search(search or "")
        view.set_page(page)
        return view.current()

    async def get_segment(self, segment_id: UUID) -> Segment:
        """Get a segment by ID.

        Raises:
            NotFoundError: If the segment does not exist.
        """
        segment = await self._repository.get_by_id(segment_id)
        if segment is None:
            raise NotFoundError(
                message=f"Segment with ID {segment_id} not found",
                code="SEGMENT_NOT_FOUND",
            )
        return segment

    async def preview(self, rules: RuleGroup) -> int:
        """Count customers the rules would select, without saving anything."""
        _check_rules(rules)
        return len(matching_customers(rules, await self._customers.list_all()))

    async def _populate(self, segment: Segment) -> None:
        rules = RuleGroup.model_validate(segment.rules_json)
        matched = matching_customers(rules, await self._customers.list_all())
        segment.customer_ids = [str(customer.id) for customer in matched]
        segment.customer_count = len(matched)
        segment.last_populated_at = utcnow()

    async def create_segment(self, data: SegmentCreate, created_by: str) -> Segment:
        name = (data.name or "").strip()
        if not name:
            raise ValidationError("Segment name is required", errors=["Segment name is required"])
        _check_rules(data.rules_json)

        segment = Segment(
            name=name,
            rules_json=data.rules_json.to_json(),
            created_by=data.created_by or created_by,
        )
        await self._populate(segment)
        segment = await self._repository.create(segment)
        logger.info(
            "Segment created",
            extra={"segment_id": str(segment.id), "customer_count": segment.customer_count},
        )
        return segment

    async def update_segment(self, segment_id: UUID, data: SegmentUpdate) -> Segment:
        segment = await self.get_segment(segment_id)
        if data.name is not None:
            name = data.name.strip()
            if not name:
                raise ValidationError("Segment name is required", errors=["Segment name is required"])
            segment.name = name
        if data.rules_json is not None:
            _check_rules(data.rules_json)
            segment.rules_json = data.rules_json.to_json()
            await self._populate(segment)

        segment = await self._repository.save(segment)
        logger.info("Segment updated", extra={"segment_id": str(segment_id)})
        return segment

    async def populate_segment(self, segment_id: UUID) -> Segment:
        segment = await self.get_segment(segment_id)
        await self._populate(segment)
        segment = await self._repository.save(segment)
        logger.info(
            "Segment populated",
            extra={"segment_id": str(segment_id), "customer_count": segment.customer_count},
        )
        return segment

    async def delete_segment(self, segment_id: UUID) -> None:
        segment = await self.get_segment(segment_id)
        await self._repository.delete(segment)
        logger.info("Segment deleted", extra={"segment_id": str(segment_id)})

    async def segment_customers(self, segment: Segment) -> list[Customer]:
        """Customers stored on the segment, in stored order; deleted ones are skipped."""
        ids = [UUID(raw) for raw in segment.customer_ids or []]
        by_id = {customer.id: customer for customer in await self._customers.get_many(ids)}
        return [by_id[customer_id] for customer_id in ids if customer_id in by_id]

    async def get_customers(
        self,
        segment_id: UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> SegmentCustomersResponse:
        segment = await self.get_segment(segment_id)
        customers = await self.segment_customers(segment)
        window = customers[offset:offset + limit]
        return SegmentCustomersResponse(
            customers=[to_response(customer) for customer in window],
            pagination=OffsetPagination(
                limit=limit,
                offset=offset,
                total=len(customers),
                has_more=offset + len(window) < len(customers),
            ),
            segment=SegmentSummary(
                id=segment.id,
                name=segment.name,
                customer_count=segment.customer_count,
                last_populated_at=segment.last_populated_at,
            ),
        )

    async def export_customers_csv(self, segment_id: UUID) -> tuple[Segment, str]:
        segment = await self.get_segment(segment_id)
        return segment, customers_to_csv(await self.segment_customers(segment))

    async def get_stats(self) -> SegmentStats:
        return calculate_segment_stats(await self._repository.list_all())
