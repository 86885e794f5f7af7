"""
Repository for user persistence.
"""

from typing import Protocol
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.models import User


class UserRepositoryProtocol(Protocol):
    """Protocol for user repository operations."""

    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def find_by_google_id_or_email(self, google_id: str, email: str) -> User | None: ...
    async def create(self, user: User) -> User: ...
    async def save(self, user: User) -> User: ...


class UserRepository:
    """Repository for user database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        return await self._session.get(User, user_id)

    async def find_by_google_id_or_email(self, google_id: str, email: str) -> User | None:
        """Prefer a google_id match over an email match."""
        result = await self._session.execute(
            select(User).where(or_(User.google_id == google_id, User.email == email))
        )
        users = list(result.scalars().all())
        for user in users:
            if user.google_id == google_id:
                return user
        return users[0] if users else None

    async def create(self, user: User) -> User:
        self._session.add(user)
        await self._session.flush()
        await self._session.refresh(user)
        return user

    async def save(self, user: User) -> User:
        await self._session.flush()
        await self._session.refresh(user)
        return user
