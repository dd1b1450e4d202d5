"""
Timeline API.

POST /api/v1/network/timeline - timeline from supplied records
GET  /api/v1/network/timeline - timeline from live registry data
    ?entityType=company|person|director&entityId=...&startDate=...&endDate=...
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from kybintel.api.deps import get_intelligence_service, get_timeline_aggregator
from kybintel.engine.dates import ensure_utc
from kybintel.engine.timeline import TimelineAggregator
from kybintel.exceptions import InvalidRequestError
from kybintel.schemas.common import parse_entity_kind
from kybintel.schemas.timeline import TimelineRequest, TimelineResponse
from kybintel.services.intelligence import IntelligenceService

router = APIRouter(prefix="/network", tags=["timeline"])


def _check_range(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is not None and end is not None and ensure_utc(start) > ensure_utc(end):
        raise InvalidRequestError("startDate must not be after endDate", field="startDate")


@router.post("/timeline", response_model=TimelineResponse)
async def build_timeline(
    body: TimelineRequest,
    aggregator: TimelineAggregator = Depends(get_timeline_aggregator),
):
    _check_range(body.start_date, body.end_date)
    return aggregator.aggregate(body)


@router.get("/timeline", response_model=TimelineResponse)
async def registry_timeline(
    entity_type: Optional[str] = Query(default=None, alias="entityType"),
    entity_id: Optional[str] = Query(default=None, alias="entityId"),
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    service: IntelligenceService = Depends(get_intelligence_service),
):
    """Validated before any registry call is made."""
    if not entity_type or not entity_id or not entity_id.strip():
        raise InvalidRequestError("EntityType and entityId are required")

    kind = parse_entity_kind(entity_type)
    if kind is None:
        raise InvalidRequestError(f"Unsupported entityType: {entity_type}", field="entityType")

    _check_range(start_date, end_date)
    return await service.timeline(kind, entity_id.strip(), start_date, end_date)
