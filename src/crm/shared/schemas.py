"""
Response envelopes shared by the list endpoints.
"""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class PaginationMeta(BaseModel):
    """Pagination metadata for list responses."""

    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    pages: int = Field(..., ge=0)


class ApiResponse(BaseModel, Generic[T]):
    """Standard ``{data, pagination}`` envelope."""

    data: T
    pagination: PaginationMeta | None = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str
