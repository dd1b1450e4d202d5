"""
Geographic Analysis API.

POST /api/v1/network/geographic - proximity clusters, heatmap, bounding box
"""

from fastapi import APIRouter, Depends

from kybintel.api.deps import get_clustering_engine
from kybintel.engine.clustering import ProximityClusteringEngine
from kybintel.schemas.geographic import GeographicAnalysis, GeographicRequest

router = APIRouter(prefix="/network", tags=["geographic"])


@router.post("/geographic", response_model=GeographicAnalysis)
async def analyze_geography(
    body: GeographicRequest,
    engine: ProximityClusteringEngine = Depends(get_clustering_engine),
):
    """Cluster the supplied address points. Addresses without coordinates are echoed only."""
    return engine.analyze(body.address_points, body.regions)
