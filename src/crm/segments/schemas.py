"""
Pydantic schemas for segments and their rule groups.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from crm.customers.schemas import CustomerResponse


class RuleOperator(str, Enum):
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="
    EQ = "="
    NEQ = "!="
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"


class Rule(BaseModel):
    field: str = Field(..., min_length=1)
    op: RuleOperator
    value: int | float | str


class RuleGroup(BaseModel):
    """``and`` rules must all hold; at least one ``or`` rule must hold when any exist."""

    model_config = ConfigDict(populate_by_name=True)

    and_: list[Rule] = Field(default_factory=list, alias="and")
    or_: list[Rule] = Field(default_factory=list, alias="or")

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class SegmentCreate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    rules_json: RuleGroup = Field(default_factory=RuleGroup)
    created_by: str | None = None


class SegmentUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    rules_json: RuleGroup | None = None


class SegmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    rules_json: RuleGroup
    created_by: str
    customer_ids: list[UUID] = Field(default_factory=list)
    customer_count: int = 0
    last_populated_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None


class PreviewRequest(BaseModel):
    rules_json: RuleGroup


class PreviewResponse(BaseModel):
    count: int


class SegmentSummary(BaseModel):
    id: UUID
    name: str
    customer_count: int
    last_populated_at: datetime | None = None


class OffsetPagination(BaseModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class SegmentCustomersResponse(BaseModel):
    customers: list[CustomerResponse]
    pagination: OffsetPagination
    segment: SegmentSummary


class SegmentStats(BaseModel):
    total_segments: int
    total_customers: int
    active_segments: int
