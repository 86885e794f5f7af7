"""
AI helper API router: rule parsing, segment creation from text, message copy.
"""

from fastapi import APIRouter, status

from crm.ai.messages import suggest_messages, summarize_delivery
from crm.ai.parser import parse_segment_description
from crm.ai.schemas import (
    CreateSegmentFromRulesRequest,
    CreateSegmentFromTextRequest,
    DescriptionRequest,
    MessageSuggestionRequest,
    MessageSuggestionResponse,
    ParseSegmentResponse,
    SummaryRequest,
    SummaryResponse,
)
from crm.auth.dependencies import CurrentUser
from crm.segments.router import ServiceDep as SegmentServiceDep
from crm.segments.schemas import SegmentCreate, SegmentResponse
from crm.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])


@router.post("/parse-segment", response_model=ParseSegmentResponse)
async def parse_segment(body: DescriptionRequest, _user: CurrentUser) -> ParseSegmentResponse:
    rules = parse_segment_description(body.text)
    logger.info("Segment description parsed", extra={"rule_count": len(rules.and_) + len(rules.or_)})
    return ParseSegmentResponse(rules_json=rules)


@router.post("/create-segment", response_model=SegmentResponse, status_code=status.HTTP_201_CREATED)
async def create_segment_from_text(
    body: CreateSegmentFromTextRequest,
    service: SegmentServiceDep,
    user: CurrentUser,
) -> SegmentResponse:
    segment = await service.create_segment(
        SegmentCreate(
            name=body.name,
            rules_json=parse_segment_description(body.text),
            created_by=body.created_by,
        ),
        created_by=user.email,
    )
    return SegmentResponse.model_validate(segment)


@router.post(
    "/create-segment-from-rules",
    response_model=SegmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_segment_from_rules(
    body: CreateSegmentFromRulesRequest,
    service: SegmentServiceDep,
    user: CurrentUser,
) -> SegmentResponse:
    segment = await service.create_segment(
        SegmentCreate(name=body.name, rules_json=body.rules_json, created_by=body.created_by),
        created_by=user.email,
    )
    return SegmentResponse.model_validate(segment)


@router.post("/generate-message", response_model=MessageSuggestionResponse)
async def generate_message(
    body: MessageSuggestionRequest,
    _user: CurrentUser,
) -> MessageSuggestionResponse:
    return MessageSuggestionResponse(suggestions=suggest_messages(body.goal))


@router.post("/summary", response_model=SummaryResponse)
async def delivery_summary(body: SummaryRequest, _user: CurrentUser) -> SummaryResponse:
    return SummaryResponse(summary=summarize_delivery(body.sent, body.failed))
