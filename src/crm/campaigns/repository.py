"""
Campaign repository for database operations.
"""

from collections.abc import Iterable, Sequence
from typing import Protocol
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.campaigns.models import Campaign, CommunicationLog
from crm.segments.models import Segment


class CampaignRepositoryProtocol(Protocol):
    """Protocol for campaign repository operations."""

    async def get_by_id(self, campaign_id: UUID) -> Campaign | None: ...
    async def list_all(self) -> Sequence[Campaign]: ...
    async def get_many(self, campaign_ids: Iterable[UUID]) -> Sequence[Campaign]: ...
    async def create(self, campaign: Campaign) -> Campaign: ...
    async def save(self, campaign: Campaign) -> Campaign: ...
    async def delete(self, campaign: Campaign) -> None: ...
    async def segments(self, segment_ids: Iterable[UUID]) -> dict[UUID, Segment]: ...
    async def add_logs(self, logs: list[CommunicationLog]) -> list[CommunicationLog]: ...
    async def save_logs(self, logs: list[CommunicationLog]) -> list[CommunicationLog]: ...
    async def get_log(self, log_id: UUID) -> CommunicationLog | None: ...
    async def list_logs(self, campaign_ids: Iterable[UUID]) -> Sequence[CommunicationLog]: ...


class CampaignRepository:
    """Repository for campaign and communication log database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, campaign_id: UUID) -> Campaign | None:
        return await self._session.get(Campaign, campaign_id)

    async def list_all(self) -> Sequence[Campaign]:
        result = await self._session.execute(select(Campaign).order_by(Campaign.created_at.desc()))
        return result.scalars().all()

    async def get_many(self, campaign_ids: Iterable[UUID]) -> Sequence[Campaign]:
        ids = list(campaign_ids)
        if not ids:
            return []
        result = await self._session.execute(select(Campaign).where(Campaign.id.in_(ids)))
        return result.scalars().all()

    async def create(self, campaign: Campaign) -> Campaign:
        self._session.add(campaign)
        await self._session.flush()
        await self._session.refresh(campaign)
        return campaign

    async def save(self, campaign: Campaign) -> Campaign:
        await self._session.flush()
        await self._session.refresh(campaign)
        return campaign

    async def delete(self, campaign: Campaign) -> None:
        await self._session.execute(
            delete(CommunicationLog).where(CommunicationLog.campaign_id == campaign.id)
        )
        await self._session.delete(campaign)
        await self._session.flush()

    async def segments(self, segment_ids: Iterable[UUID]) -> dict[UUID, Segment]:
        """Segments by id; ids that no longer exist are absent."""
        ids = {segment_id for segment_id in segment_ids if segment_id is not None}
        if not ids:
            return {}
        result = await self._session.execute(select(Segment).where(Segment.id.in_(ids)))
        return {segment.id: segment for segment in result.scalars().all()}

    async def add_logs(self, logs: list[CommunicationLog]) -> list[CommunicationLog]:
        self._session.add_all(logs)
        await self._session.flush()
        return logs

    async def save_logs(self, logs: list[CommunicationLog]) -> list[CommunicationLog]:
        await self._session.flush()
        for log in logs:
            await self._session.refresh(log)
        return logs

    async def get_log(self, log_id: UUID) -> CommunicationLog | None:
        return await self._session.get(CommunicationLog, log_id)

    async def list_logs(self, campaign_ids: Iterable[UUID]) -> Sequence[CommunicationLog]:
        ids = list(campaign_ids)
        if not ids:
            return []
        result = await self._session.execute(
            select(CommunicationLog)
            .where(CommunicationLog.campaign_id.in_(ids))
            .order_by(CommunicationLog.created_at, CommunicationLog.customer_name)
        )
        return result.scalars().all()
