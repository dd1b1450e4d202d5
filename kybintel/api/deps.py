"""
FastAPI dependencies for the API routes.

Engines are cheap, stateless and built from settings per request. Tests
swap the registry with app.dependency_overrides[get_registry_client].
"""

from fastapi import Depends

from kybintel.config import settings
from kybintel.engine.clustering import ProximityClusteringEngine
from kybintel.engine.graph_metrics import GraphMetricsCalculator
from kybintel.engine.risk_scoring import RiskScoringModel
from kybintel.engine.timeline import TimelineAggregator
from kybintel.services.intelligence import (
    IntelligenceService,
    build_clustering_engine,
    build_graph_calculator,
    build_risk_model,
    build_timeline_aggregator,
)
from kybintel.services.registry_client import RegistryClient


def get_registry_client() -> RegistryClient:
    return RegistryClient.from_settings(settings)


def get_intelligence_service(
    client: RegistryClient = Depends(get_registry_client),
) -> IntelligenceService:
    return IntelligenceService(client, settings)


def get_clustering_engine() -> ProximityClusteringEngine:
    return build_clustering_engine(settings)


def get_risk_model() -> RiskScoringModel:
    return build_risk_model(settings)


def get_graph_calculator() -> GraphMetricsCalculator:
    return build_graph_calculator(settings)


def get_timeline_aggregator() -> TimelineAggregator:
    return build_timeline_aggregator(settings)
