"""
Relationship graph schemas.

Response: {nodes, edges, metrics: {totalNodes, totalEdges, density, riskScore, ...}}
"""

from datetime import date
from typing import Any, Literal, Optional

from pydantic import Field

from kybintel.schemas.common import CamelModel, RiskBand


class GraphNode(CamelModel):
    id: str
    type: Literal["company", "director", "shareholder", "address", "person"] = "company"
    label: str = ""
    size: float = Field(default=10.0, ge=0)
    risk_level: RiskBand = RiskBand.LOW  # carried through for visual emphasis
    risk_score: Optional[float] = Field(default=None, ge=0, le=100)
    degree: int = 0
    betweenness: float = 0.0  # estimate, ranking only
    data: dict[str, Any] = Field(default_factory=dict)


class GraphEdge(CamelModel):
    id: Optional[str] = None
    source: str
    target: str
    type: Literal["directorship", "ownership", "address_shared", "subsidiary"] = "directorship"
    label: str = ""
    strength: float = Field(default=0.5, ge=0, le=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool = True


class NetworkMetrics(CamelModel):
    total_nodes: int
    total_edges: int
    density: float
    risk_score: float
    avg_degree: float
    max_degree: int
    connected_components: int
    centrality_method: str


class CenterEntity(CamelModel):
    type: str
    id: str
    label: str


class NetworkGraph(CamelModel):
    nodes: list[GraphNode]
    edges: list[GraphEdge]
    metrics: NetworkMetrics
    center_entity: Optional[CenterEntity] = None
    depth: Optional[int] = None


class GraphRequest(CamelModel):
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    risk_score: Optional[float] = Field(default=None, ge=0, le=100)
