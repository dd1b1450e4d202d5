"""
Relationship Network API.

POST /api/v1/network/graph                     - metrics for a supplied graph
GET  /api/v1/network/company/{company_number}  - company + directors graph
"""

from fastapi import APIRouter, Depends, Query

from kybintel.api.deps import get_graph_calculator, get_intelligence_service
from kybintel.engine.graph_metrics import GraphMetricsCalculator
from kybintel.exceptions import InvalidRequestError
from kybintel.schemas.network import GraphRequest, NetworkGraph
from kybintel.services.intelligence import IntelligenceService

router = APIRouter(prefix="/network", tags=["network"])


@router.post("/graph", response_model=NetworkGraph)
async def graph_metrics(
    body: GraphRequest,
    calculator: GraphMetricsCalculator = Depends(get_graph_calculator),
):
    """Degree, density, betweenness estimate and aggregate risk."""
    return calculator.compute(body.nodes, body.edges, body.risk_score)


@router.get("/company/{company_number}", response_model=NetworkGraph)
async def company_network(
    company_number: str,
    depth: int = Query(default=2),
    service: IntelligenceService = Depends(get_intelligence_service),
):
    if depth < 0:
        raise InvalidRequestError("depth must be zero or positive", field="depth")
    return await service.company_network(company_number.strip().upper(), depth)
