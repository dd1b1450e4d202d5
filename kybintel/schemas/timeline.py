"""
Timeline schemas.

Response: {events, dateRange, stats: {totalEvents, eventsByType, activeYears, significantEvents}}
"""

from datetime import datetime
from enum import StrEnum
from typing import Any, Literal, Optional

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from kybintel.schemas.common import CamelModel, EntityKind, parse_entity_kind
from kybintel.schemas.entity import CompanyProfile, Filing, Officer, Shareholding


class EventType(StrEnum):
    APPOINTMENT = "appointment"
    RESIGNATION = "resignation"
    FILING = "filing"
    SHAREHOLDING = "shareholding"
    COMPANY_STATUS = "company_status"


class EventImpact(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TimelineEvent(CamelModel):
    """A single dated event. Immutable: the aggregator only sorts and counts."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    entity_id: str
    date: datetime
    type: EventType
    title: str
    description: str
    entity_name: str
    entity_type: Literal["person", "company", "filing"]
    impact: EventImpact
    category: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class DateRange(CamelModel):
    start: datetime
    end: datetime


class TimelineStats(CamelModel):
    total_events: int
    events_by_type: dict[str, int]
    active_years: int
    significant_events: int


class TimelineResponse(CamelModel):
    events: list[TimelineEvent]
    date_range: DateRange
    stats: TimelineStats


class TimelineRequest(CamelModel):
    """
    Pre-fetched records for a timeline.

    A category left as None is treated as a failed fetch and contributes nothing.
    """
    entity_type: EntityKind
    entity_id: str = Field(min_length=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    company: Optional[CompanyProfile] = None
    person_name: Optional[str] = None
    officers: Optional[list[Officer]] = None
    shareholdings: Optional[list[Shareholding]] = None
    filings: Optional[list[Filing]] = None

    @field_validator("entity_type", mode="before")
    @classmethod
    def _entity_type_synonyms(cls, value: Any) -> Any:
        # Unknown values fall through to enum validation
        return parse_entity_kind(value) or value
