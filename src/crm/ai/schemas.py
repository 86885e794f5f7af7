"""
Pydantic schemas for the AI helper endpoints.
"""

from pydantic import BaseModel, Field, model_validator

from crm.segments.schemas import RuleGroup


class DescriptionRequest(BaseModel):
    """Accepts the text as either ``input`` or ``description``."""

    input: str | None = None
    description: str | None = None

    @model_validator(mode="after")
    def require_text(self) -> "DescriptionRequest":
        if not (self.text or "").strip():
            raise ValueError("A segment description is required")
        return self

    @property
    def text(self) -> str:
        return self.input or self.description or ""


class ParseSegmentResponse(BaseModel):
    rules_json: RuleGroup


class CreateSegmentFromTextRequest(DescriptionRequest):
    name: str = Field(..., min_length=1, max_length=255)
    created_by: str | None = None


class CreateSegmentFromRulesRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    rules_json: RuleGroup
    created_by: str | None = None


class MessageSuggestionRequest(BaseModel):
    goal: str = Field(..., min_length=1)
    segment_type: str | None = Field(default=None, alias="segmentType")
    customer_type: str | None = Field(default=None, alias="customerType")


class MessageSuggestionResponse(BaseModel):
    suggestions: list[str]


class SummaryRequest(BaseModel):
    sent: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)


class SummaryResponse(BaseModel):
    summary: str
