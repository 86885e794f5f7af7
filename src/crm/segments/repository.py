"""
Segment repository for database operations.
"""

from collections.abc import Sequence
from typing import Protocol
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crm.campaigns.models import Campaign
from crm.segments.models import Segment


class SegmentRepositoryProtocol(Protocol):
    """Protocol for segment repository operations."""

    async def get_by_id(self, segment_id: UUID) -> Segment | None: ...
    async def list_all(self) -> Sequence[Segment]: ...
    async def create(self, segment: Segment) -> Segment: ...
    async def save(self, segment: Segment) -> Segment: ...
    async def delete(self, segment: Segment) -> None: ...


class SegmentRepository:
    """Repository for segment database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, segment_id: UUID) -> Segment | None:
        return await self._session.get(Segment, segment_id)

    async def list_all(self) -> Sequence[Segment]:
        result = await self._session.execute(select(Segment).order_by(Segment.created_at.desc()))
        return result.scalars().all()

    async def create(self, segment: Segment) -> Segment:
        self._session.add(segment)
        await self._session.flush()
        await self._session.refresh(segment)
        return segment

    async def save(self, segment: Segment) -> Segment:
        await self._session.flush()
        await self._session.refresh(segment)
        return segment

    async def delete(self, segment: Segment) -> None:
        """Delete a segment; its campaigns keep running without one."""
        await self._session.execute(
            update(Campaign).where(Campaign.segment_id == segment.id).values(segment_id=None)
        )
        await self._session.delete(segment)
        await self._session.flush()
