"""
Intelligence Service: fetch registry records, run an engine component.

Registry categories (profile, officers, PSCs, filings, appointments) are
fetched concurrently. Each fetch fails on its own: a registry error,
timeout or open circuit degrades that category to None and the engine
treats it as missing. Programming errors are NOT swallowed.
"""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from kybintel.config import Settings
from kybintel.engine.clustering import ProximityClusteringEngine
from kybintel.engine.graph_metrics import GraphMetricsCalculator, build_company_network
from kybintel.engine.risk_scoring import RiskScoringModel
from kybintel.engine.timeline import TimelineAggregator
from kybintel.exceptions import RegistryError, RegistryUnavailable
from kybintel.schemas.common import EntityKind
from kybintel.schemas.network import NetworkGraph
from kybintel.schemas.risk import RiskAssessment
from kybintel.schemas.timeline import TimelineRequest, TimelineResponse
from kybintel.services.registry_client import RegistryClient
from kybintel.services.resilience import CircuitOpenError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


# ── Engine factories ──────────────────────────────────────────────────────


def build_clustering_engine(settings: Settings) -> ProximityClusteringEngine:
    return ProximityClusteringEngine(
        radius_km=settings.cluster_radius_km,
        padding_deg=settings.bounding_box_padding_deg,
        thresholds=settings.cluster_thresholds,
        strategy=settings.cluster_strategy,
    )


def build_risk_model(settings: Settings) -> RiskScoringModel:
    return RiskScoringModel(
        weights=settings.risk_weights,
        max_factors=settings.risk_max_factors,
        established_years=settings.risk_established_years,
        recent_years=settings.risk_recent_years,
        turnover_months=settings.risk_turnover_months,
        turnover_min_resignations=settings.risk_turnover_min_resignations,
    )


def build_graph_calculator(settings: Settings) -> GraphMetricsCalculator:
    return GraphMetricsCalculator(
        mode=settings.centrality_mode,
        sample_size=settings.centrality_sample_size,
        seed=settings.centrality_seed,
    )


def build_timeline_aggregator(settings: Settings) -> TimelineAggregator:
    return TimelineAggregator(
        lookback_years=settings.timeline_default_years,
        significant_pct=settings.significant_shareholding_pct,
    )


# ── Degrading fetch ───────────────────────────────────────────────────────


async def fetch_or_none(category: str, fn: Callable[[], Awaitable[T]]) -> Optional[T]:
    """Run one category fetch; registry failures become None."""
    try:
        return await fn()
    except (RegistryError, CircuitOpenError) as exc:
        logger.warning(
            "registry_category_degraded",
            category=category,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return None


class IntelligenceService:
    """Registry-backed entry points for the risk, network and timeline routes."""

    def __init__(self, client: RegistryClient, settings: Settings):
        self.client = client
        self.settings = settings
        self.risk_model = build_risk_model(settings)
        self.graph_calculator = build_graph_calculator(settings)
        self.timeline_aggregator = build_timeline_aggregator(settings)

    async def assess_company(
        self, company_number: str, now: Optional[datetime] = None
    ) -> RiskAssessment:
        """Risk score from live registry data. A failed profile lookup yields the default."""
        profile, officers = await asyncio.gather(
            fetch_or_none("profile", lambda: self.client.get_company_profile(company_number)),
            fetch_or_none("officers", lambda: self.client.get_company_officers(company_number)),
        )
        assessment = self.risk_model.score(profile, officers, now)
        logger.info(
            "company_risk_assessed",
            company_number=company_number,
            risk_score=assessment.risk_score,
            risk_level=assessment.risk_level.value,
            profile_available=profile is not None,
            officers_available=officers is not None,
        )
        return assessment

    async def _required_profile(self, company_number: str):
        try:
            return await self.client.get_company_profile(company_number)
        except CircuitOpenError as exc:
            raise RegistryUnavailable("Registry temporarily unavailable", status_code=503) from exc

    async def company_network(self, company_number: str, depth: int) -> NetworkGraph:
        """
        Company-centred network.

        The profile is required (its failure is raised); a failed officer
        fetch yields a graph with only the centre node.
        """
        profile_task = self._required_profile(company_number)
        if depth > 0:
            profile, officers = await asyncio.gather(
                profile_task,
                fetch_or_none("officers", lambda: self.client.get_company_officers(company_number)),
            )
        else:
            profile, officers = await profile_task, []

        if not profile.company_number:
            profile = profile.model_copy(update={"company_number": company_number})

        graph = build_company_network(profile, officers, depth, self.graph_calculator)
        logger.info(
            "company_network_built",
            company_number=company_number,
            depth=depth,
            nodes=graph.metrics.total_nodes,
            edges=graph.metrics.total_edges,
        )
        return graph

    async def timeline(
        self,
        entity_type: EntityKind,
        entity_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> TimelineResponse:
        """Timeline from live registry data; each category degrades on its own."""
        if entity_type == EntityKind.COMPANY:
            company, officers, shareholdings, filings = await asyncio.gather(
                fetch_or_none("profile", lambda: self.client.get_company_profile(entity_id)),
                fetch_or_none("officers", lambda: self.client.get_company_officers(entity_id)),
                fetch_or_none("pscs", lambda: self.client.get_pscs(entity_id)),
                fetch_or_none("filings", lambda: self.client.get_filing_history(entity_id)),
            )
            request = TimelineRequest(
                entity_type=entity_type,
                entity_id=entity_id,
                start_date=start,
                end_date=end,
                company=company,
                officers=officers,
                shareholdings=shareholdings,
                filings=filings,
            )
        else:
            fetched = await fetch_or_none(
                "appointments", lambda: self.client.get_officer_appointments(entity_id),
            )
            person_name, appointments = fetched if fetched is not None else (None, None)
            request = TimelineRequest(
                entity_type=entity_type,
                entity_id=entity_id,
                start_date=start,
                end_date=end,
                person_name=person_name,
                officers=appointments,
            )

        return self.timeline_aggregator.aggregate(request, now)
