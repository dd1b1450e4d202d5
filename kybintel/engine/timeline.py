"""
Timeline Event Aggregator.

Merges per-category registry records into one dated event list:
- company: incorporation, officer appointments/resignations,
  shareholding notifications, filings
- person: appointments/resignations across companies

Rules:
- An event exists only when its date is non-null and inside the inclusive
  [start, end] range. Everything else is skipped silently.
- A category passed as None (fetch failed) contributes nothing; the other
  categories are still processed.
- Output is sorted by date descending; ties keep construction order.
- Events are never modified after construction.
"""

from collections import Counter
from datetime import datetime
from typing import Optional

import structlog

from kybintel.engine.dates import as_utc_midnight, ensure_utc, utc_now
from kybintel.schemas.common import EntityKind
from kybintel.schemas.entity import CompanyProfile, Filing, Officer, Shareholding
from kybintel.schemas.timeline import (
    DateRange,
    EventImpact,
    EventType,
    TimelineEvent,
    TimelineRequest,
    TimelineResponse,
    TimelineStats,
)

logger = structlog.get_logger(__name__)


# ── Configuration ─────────────────────────────────────────────────────────

DEFAULT_LOOKBACK_YEARS: int = 10
SIGNIFICANT_SHAREHOLDING_PCT: float = 25.0

CATEGORY_CORPORATE = "Corporate Structure"
CATEGORY_MANAGEMENT = "Management Changes"
CATEGORY_CAREER = "Career Events"
CATEGORY_OWNERSHIP = "Ownership Changes"
CATEGORY_COMPLIANCE = "Regulatory Compliance"


def officer_impact(officer: Officer) -> EventImpact:
    return EventImpact.HIGH if officer.is_chief else EventImpact.MEDIUM


class TimelineAggregator:
    """Builds timelines from already-fetched records. Holds configuration only."""

    def __init__(
        self,
        lookback_years: int = DEFAULT_LOOKBACK_YEARS,
        significant_pct: float = SIGNIFICANT_SHAREHOLDING_PCT,
    ):
        self.lookback_years = lookback_years
        self.significant_pct = significant_pct

    # ── Range ─────────────────────────────────────────────────────────

    def resolve_range(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> tuple[datetime, datetime]:
        """Fill missing bounds: 1 January of (current year - lookback) to now."""
        now = ensure_utc(now) if now is not None else utc_now()
        if start is None:
            start = now.replace(
                year=now.year - self.lookback_years, month=1, day=1,
                hour=0, minute=0, second=0, microsecond=0,
            )
        if end is None:
            end = now
        return ensure_utc(start), ensure_utc(end)

    # ── Company events ────────────────────────────────────────────────

    def company_events(
        self,
        company_number: str,
        start: datetime,
        end: datetime,
        company: Optional[CompanyProfile] = None,
        officers: Optional[list[Officer]] = None,
        shareholdings: Optional[list[Shareholding]] = None,
        filings: Optional[list[Filing]] = None,
    ) -> list[TimelineEvent]:
        events: list[TimelineEvent] = []
        company_name = (company.company_name if company else "") or company_number

        def in_range(moment: datetime) -> bool:
            return start <= moment <= end

        if company is not None and company.date_of_creation is not None:
            when = as_utc_midnight(company.date_of_creation)
            if in_range(when):
                kind = company.company_type or "company"
                events.append(TimelineEvent(
                    id=f"incorporation-{company.company_number or company_number}",
                    entity_id=company_number,
                    date=when,
                    type=EventType.COMPANY_STATUS,
                    title="Company Incorporated",
                    description=f"{company_name} was incorporated as a {kind}",
                    entity_name=company_name,
                    entity_type="company",
                    impact=EventImpact.HIGH,
                    category=CATEGORY_CORPORATE,
                    metadata={"companyNumber": company_number, "companyType": company.company_type},
                ))

        for index, officer in enumerate(officers or []):
            ref = officer.appointment_id or officer.officer_id or str(index)
            role = officer.officer_role or "officer"
            metadata = {
                "officerId": officer.officer_id,
                "role": officer.officer_role,
                "companyNumber": company_number,
            }
            if officer.appointed_on is not None:
                when = as_utc_midnight(officer.appointed_on)
                if in_range(when):
                    events.append(TimelineEvent(
                        id=f"appointment-{ref}",
                        entity_id=company_number,
                        date=when,
                        type=EventType.APPOINTMENT,
                        title=f"Director Appointed: {officer.name}",
                        description=f"{officer.name} was appointed as {role} of {company_name}",
                        entity_name=officer.name,
                        entity_type="person",
                        impact=officer_impact(officer),
                        category=CATEGORY_MANAGEMENT,
                        metadata=metadata,
                    ))
            if officer.resigned_on is not None:
                when = as_utc_midnight(officer.resigned_on)
                if in_range(when):
                    events.append(TimelineEvent(
                        id=f"resignation-{ref}",
                        entity_id=company_number,
                        date=when,
                        type=EventType.RESIGNATION,
                        title=f"Director Resigned: {officer.name}",
                        description=f"{officer.name} resigned as {role} of {company_name}",
                        entity_name=officer.name,
                        entity_type="person",
                        impact=officer_impact(officer),
                        category=CATEGORY_MANAGEMENT,
                        metadata=metadata,
                    ))

        for index, holding in enumerate(shareholdings or []):
            if holding.notified_on is None:
                continue
            when = as_utc_midnight(holding.notified_on)
            if not in_range(when):
                continue
            name = holding.name or "Unknown Shareholder"
            pct = holding.percentage_held
            share_text = f"{pct:g}%" if pct is not None else "an undisclosed"
            events.append(TimelineEvent(
                id=f"shareholding-{holding.id or index}",
                entity_id=company_number,
                date=when,
                type=EventType.SHAREHOLDING,
                title=f"Shareholding Change: {name}",
                description=f"{name} reported {share_text} shareholding in {company_name}",
                entity_name=name,
                entity_type="person" if holding.is_individual else "company",
                impact=EventImpact.HIGH if (pct or 0) > self.significant_pct else EventImpact.MEDIUM,
                category=CATEGORY_OWNERSHIP,
                metadata={
                    "shareholding": pct,
                    "shareholderType": holding.kind,
                    "companyNumber": company_number,
                },
            ))

        for index, filing in enumerate(filings or []):
            if filing.filed_on is None:
                continue
            when = as_utc_midnight(filing.filed_on)
            if not in_range(when):
                continue
            events.append(TimelineEvent(
                id=f"filing-{filing.transaction_id or index}",
                entity_id=company_number,
                date=when,
                type=EventType.FILING,
                title=f"Filing: {filing.category}" if filing.category else "Company Filing",
                description=filing.description or f"{company_name} filed updated company information",
                entity_name=company_name,
                entity_type="filing",
                impact=EventImpact.LOW,
                category=CATEGORY_COMPLIANCE,
                metadata={
                    "companyNumber": company_number,
                    "filingType": filing.type,
                    "filingCategory": filing.category,
                },
            ))

        return events

    # ── Person events ─────────────────────────────────────────────────

    def person_events(
        self,
        person_id: str,
        start: datetime,
        end: datetime,
        person_name: Optional[str] = None,
        appointments: Optional[list[Officer]] = None,
    ) -> list[TimelineEvent]:
        events: list[TimelineEvent] = []

        for index, appointment in enumerate(appointments or []):
            name = person_name or appointment.name
            company_name = appointment.company_name or appointment.company_number or "Unknown Company"
            ref = appointment.appointment_id or f"{appointment.company_number or 'company'}-{index}"
            role = appointment.officer_role or "officer"
            metadata = {
                "companyNumber": appointment.company_number,
                "role": appointment.officer_role,
                "personId": person_id,
            }
            if appointment.appointed_on is not None:
                when = as_utc_midnight(appointment.appointed_on)
                if start <= when <= end:
                    events.append(TimelineEvent(
                        id=f"appointment-{ref}",
                        entity_id=person_id,
                        date=when,
                        type=EventType.APPOINTMENT,
                        title=f"Appointed at {company_name}",
                        description=f"{name} was appointed as {role} at {company_name}",
                        entity_name=company_name,
                        entity_type="company",
                        impact=officer_impact(appointment),
                        category=CATEGORY_CAREER,
                        metadata=metadata,
                    ))
            if appointment.resigned_on is not None:
                when = as_utc_midnight(appointment.resigned_on)
                if start <= when <= end:
                    events.append(TimelineEvent(
                        id=f"resignation-{ref}",
                        entity_id=person_id,
                        date=when,
                        type=EventType.RESIGNATION,
                        title=f"Resigned from {company_name}",
                        description=f"{name} resigned as {role} from {company_name}",
                        entity_name=company_name,
                        entity_type="company",
                        impact=officer_impact(appointment),
                        category=CATEGORY_CAREER,
                        metadata=metadata,
                    ))

        return events

    # ── Assembly ──────────────────────────────────────────────────────

    @staticmethod
    def build(events: list[TimelineEvent], start: datetime, end: datetime) -> TimelineResponse:
        """Sort descending and summarize. An empty list echoes the requested range."""
        ordered = sorted(events, key=lambda e: e.date, reverse=True)

        if ordered:
            date_range = DateRange(start=ordered[-1].date, end=ordered[0].date)
        else:
            date_range = DateRange(start=start, end=end)

        stats = TimelineStats(
            total_events=len(ordered),
            events_by_type=dict(Counter(e.type.value for e in ordered)),
            active_years=len({e.date.year for e in ordered}),
            significant_events=sum(1 for e in ordered if e.impact == EventImpact.HIGH),
        )
        return TimelineResponse(events=ordered, date_range=date_range, stats=stats)

    def aggregate(self, request: TimelineRequest, now: Optional[datetime] = None) -> TimelineResponse:
        """Full timeline for one company or person."""
        start, end = self.resolve_range(request.start_date, request.end_date, now)

        if request.entity_type == EntityKind.COMPANY:
            events = self.company_events(
                request.entity_id, start, end,
                company=request.company,
                officers=request.officers,
                shareholdings=request.shareholdings,
                filings=request.filings,
            )
        else:
            events = self.person_events(
                request.entity_id, start, end,
                person_name=request.person_name,
                appointments=request.officers,
            )

        response = self.build(events, start, end)
        logger.debug(
            "timeline_aggregated",
            entity_type=request.entity_type.value,
            entity_id=request.entity_id,
            events=response.stats.total_events,
        )
        return response
