"""
Dashboard API router.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.dependencies import CurrentUser
from crm.dashboard.repository import DashboardRepository
from crm.dashboard.schemas import DashboardStats
from crm.dashboard.service import DashboardService
from crm.shared.database import get_db_session

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


async def get_dashboard_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> DashboardService:
    return DashboardService(repository=DashboardRepository(session))


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    service: Annotated[DashboardService, Depends(get_dashboard_service)],
    _user: CurrentUser,
) -> DashboardStats:
    return await service.get_stats()
