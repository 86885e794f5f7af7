"""
Segment API router.
"""

import re
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.dependencies import CurrentUser
from crm.config import get_settings
from crm.customers.export import export_filename
from crm.customers.repository import CustomerRepository
from crm.segments.repository import SegmentRepository
from crm.segments.schemas import (
    PreviewRequest,
    PreviewResponse,
    SegmentCreate,
    SegmentCustomersResponse,
    SegmentResponse,
    SegmentStats,
    SegmentUpdate,
)
from crm.segments.service import SegmentService
from crm.shared.database import get_db_session
from crm.shared.schemas import ApiResponse, PaginationMeta

router = APIRouter(prefix="/api/segments", tags=["segments"])


async def get_segment_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> SegmentService:
    return SegmentService(
        repository=SegmentRepository(session),
        customers=CustomerRepository(session),
    )


ServiceDep = Annotated[SegmentService, Depends(get_segment_service)]


@router.get("", response_model=ApiResponse[list[SegmentResponse]])
async def list_segments(
    service: ServiceDep,
    _user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    search: str | None = Query(None),
) -> ApiResponse:
    settings = get_settings()
    result = await service.list_segments(
        page=page,
        limit=min(limit or settings.default_page_size, settings.max_page_size),
        search=search,
    )
    return ApiResponse(
        data=[SegmentResponse.model_validate(segment) for segment in result.items],
        pagination=PaginationMeta(**result.meta()),
    )


@router.get("/stats", response_model=SegmentStats)
async def segment_stats(service: ServiceDep, _user: CurrentUser) -> SegmentStats:
    return await service.get_stats()


@router.post("/preview", response_model=PreviewResponse)
async def preview_segment(
    body: PreviewRequest,
    service: ServiceDep,
    _user: CurrentUser,
) -> PreviewResponse:
    return PreviewResponse(count=await service.preview(body.rules_json))


@router.post("", response_model=SegmentResponse, status_code=status.HTTP_201_CREATED)
async def create_segment(
    data: SegmentCreate,
    service: ServiceDep,
    user: CurrentUser,
) -> SegmentResponse:
    segment = await service.create_segment(data, created_by=user.email)
    return SegmentResponse.model_validate(segment)


@router.get("/{segment_id}", response_model=SegmentResponse)
async def get_segment(segment_id: UUID, service: ServiceDep, _user: CurrentUser) -> SegmentResponse:
    return SegmentResponse.model_validate(await service.get_segment(segment_id))


@router.put("/{segment_id}", response_model=SegmentResponse)
async def update_segment(
    segment_id: UUID,
    data: SegmentUpdate,
    service: ServiceDep,
    _user: CurrentUser,
) -> SegmentResponse:
    return SegmentResponse.model_validate(await service.update_segment(segment_id, data))


@router.delete("/{segment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_segment(segment_id: UUID, service: ServiceDep, _user: CurrentUser) -> Response:
    await service.delete_segment(segment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{segment_id}/populate", response_model=SegmentResponse)
async def populate_segment(
    segment_id: UUID,
    service: ServiceDep,
    _user: CurrentUser,
) -> SegmentResponse:
    return SegmentResponse.model_validate(await service.populate_segment(segment_id))


@router.get("/{segment_id}/customers", response_model=SegmentCustomersResponse)
async def segment_customers(
    segment_id: UUID,
    service: ServiceDep,
    _user: CurrentUser,
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> SegmentCustomersResponse:
    return await service.get_customers(segment_id, limit=limit, offset=offset)


@router.get("/{segment_id}/customers/download")
async def download_segment_customers(
    segment_id: UUID,
    service: ServiceDep,
    _user: CurrentUser,
) -> Response:
    segment, content = await service.export_customers_csv(segment_id)
    slug = re.sub(r"[^A-Za-z0-9]+", "_", segment.name).strip("_") or "segment"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename(f"{slug}_customers")}"'
        },
    )
