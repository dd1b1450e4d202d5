"""
Relationship Graph Metrics Calculator.

Annotates an already-resolved node/edge list with structural metrics:
- degree: edges touching the node (as source or target)
- density: E / (N * (N - 1)), 0 for N <= 1, clamped to [0, 1]
- betweenness: ESTIMATE for ranking only (see below)
- aggregate risk: caller value, else mean of node risk scores

Betweenness uses networkx over an undirected view of the edges whose
endpoints are both known. Above `sample_size` nodes it samples that many
pivots with a fixed seed (Brandes-Pich estimate); the result is
deterministic but not the exact shortest-path betweenness. Set
mode="exact" when exact values are required.

Also builds the company-centred network (company + directors) from
registry records.
"""

from typing import Optional

import networkx as nx
import structlog

from kybintel.engine.numeric import clamp, safe_mean
from kybintel.schemas.common import RiskBand
from kybintel.schemas.entity import CompanyProfile, Officer
from kybintel.schemas.network import (
    CenterEntity,
    GraphEdge,
    GraphNode,
    NetworkGraph,
    NetworkMetrics,
)

logger = structlog.get_logger(__name__)


# ── Configuration ─────────────────────────────────────────────────────────

DEFAULT_SAMPLE_SIZE: int = 64
DEFAULT_SEED: int = 42
CENTRALITY_MODES = ("approximate", "exact")

COMPANY_NODE_SIZE: float = 20.0
DIRECTOR_NODE_SIZE: float = 12.0
DIRECTORSHIP_STRENGTH: float = 0.8

# Company node risk points
COMPANY_RISK_POINTS: dict[str, int] = {
    "liquidated": 3,
    "insolvency": 2,
    "charges": 1,
    "not_active": 2,
}
COMPANY_HIGH_POINTS: int = 4
COMPANY_MEDIUM_POINTS: int = 2


class GraphMetricsCalculator:
    """Stateless metrics over a node/edge list. Inputs are never mutated."""

    def __init__(
        self,
        mode: str = "approximate",
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        seed: int = DEFAULT_SEED,
    ):
        if mode not in CENTRALITY_MODES:
            raise ValueError(f"Unknown centrality mode: {mode!r}")
        self.mode = mode
        self.sample_size = sample_size
        self.seed = seed

    # ── Individual metrics ────────────────────────────────────────────

    @staticmethod
    def degrees(nodes: list[GraphNode], edges: list[GraphEdge]) -> dict[str, int]:
        """Degree per known node. Edges to unknown ids still count for the known end."""
        degree = {node.id: 0 for node in nodes}
        for edge in edges:
            for endpoint in {edge.source, edge.target}:
                if endpoint in degree:
                    degree[endpoint] += 1
        return degree

    @staticmethod
    def density(total_nodes: int, total_edges: int) -> float:
        if total_nodes <= 1:
            return 0.0
        return clamp(total_edges / (total_nodes * (total_nodes - 1)), 0.0, 1.0)

    @staticmethod
    def aggregate_risk(nodes: list[GraphNode], supplied: Optional[float] = None) -> float:
        if supplied is not None:
            return supplied
        return safe_mean(n.risk_score for n in nodes if n.risk_score is not None)

    @staticmethod
    def to_networkx(nodes: list[GraphNode], edges: list[GraphEdge]) -> nx.Graph:
        """Undirected simple graph over known endpoints; parallel edges collapse."""
        graph = nx.Graph()
        graph.add_nodes_from(node.id for node in nodes)
        known = set(graph.nodes)
        graph.add_edges_from(
            (e.source, e.target)
            for e in edges
            if e.source in known and e.target in known and e.source != e.target
        )
        return graph

    def centrality_method(self, total_nodes: int) -> str:
        if self.mode == "exact" or total_nodes <= self.sample_size:
            return "exact"
        return "approximate"

    def betweenness(self, graph: nx.Graph) -> dict[str, float]:
        if graph.number_of_nodes() == 0:
            return {}
        if self.centrality_method(graph.number_of_nodes()) == "exact":
            return nx.betweenness_centrality(graph, normalized=True)
        return nx.betweenness_centrality(
            graph, k=self.sample_size, normalized=True, seed=self.seed,
        )

    # ── Entry point ───────────────────────────────────────────────────

    def compute(
        self,
        nodes: list[GraphNode],
        edges: list[GraphEdge],
        risk_score: Optional[float] = None,
    ) -> NetworkGraph:
        """
        Annotate nodes with degree/betweenness and compute aggregate metrics.

        Edges referencing unknown node ids are kept and counted in
        totalEdges; they never create nodes.
        """
        degree = self.degrees(nodes, edges)
        graph = self.to_networkx(nodes, edges)
        betweenness = self.betweenness(graph)

        annotated = [
            node.model_copy(update={
                "degree": degree[node.id],
                "betweenness": round(betweenness.get(node.id, 0.0), 6),
            })
            for node in nodes
        ]

        total_nodes = len(nodes)
        total_edges = len(edges)
        degree_values = [n.degree for n in annotated]
        method = self.centrality_method(graph.number_of_nodes())

        metrics = NetworkMetrics(
            total_nodes=total_nodes,
            total_edges=total_edges,
            density=self.density(total_nodes, total_edges),
            risk_score=self.aggregate_risk(nodes, risk_score),
            avg_degree=safe_mean(degree_values),
            max_degree=max(degree_values, default=0),
            connected_components=nx.number_connected_components(graph) if total_nodes else 0,
            centrality_method=method,
        )

        dangling = sum(1 for e in edges if e.source not in degree or e.target not in degree)
        if dangling:
            logger.debug("graph_dangling_edges", count=dangling)

        logger.debug(
            "graph_metrics_computed",
            nodes=total_nodes,
            edges=total_edges,
            density=metrics.density,
            centrality_method=method,
        )

        return NetworkGraph(nodes=annotated, edges=list(edges), metrics=metrics)


# ── Company network builder ───────────────────────────────────────────────


def company_risk_level(profile: CompanyProfile) -> RiskBand:
    points = 0
    if profile.has_been_liquidated:
        points += COMPANY_RISK_POINTS["liquidated"]
    if profile.has_insolvency_history:
        points += COMPANY_RISK_POINTS["insolvency"]
    if profile.has_charges:
        points += COMPANY_RISK_POINTS["charges"]
    if profile.status != "active":
        points += COMPANY_RISK_POINTS["not_active"]

    if points >= COMPANY_HIGH_POINTS:
        return RiskBand.HIGH
    if points >= COMPANY_MEDIUM_POINTS:
        return RiskBand.MEDIUM
    return RiskBand.LOW


def director_risk_level(officer: Officer) -> RiskBand:
    if not officer.is_active:
        return RiskBand.MEDIUM
    if "shadow" in (officer.officer_role or "").lower():
        return RiskBand.HIGH
    return RiskBand.LOW


def build_company_network(
    profile: CompanyProfile,
    officers: Optional[list[Officer]],
    depth: int = 2,
    calculator: Optional[GraphMetricsCalculator] = None,
) -> NetworkGraph:
    """
    Company-centred graph: the company plus one director node per officer.

    depth <= 0 yields only the centre node. officers=None (fetch failed)
    is treated as an empty roster.
    """
    calculator = calculator or GraphMetricsCalculator()
    number = profile.company_number
    center_id = f"company_{number}"

    nodes = [
        GraphNode(
            id=center_id,
            type="company",
            label=profile.company_name,
            size=COMPANY_NODE_SIZE,
            risk_level=company_risk_level(profile),
            data=profile.model_dump(mode="json"),
        )
    ]
    edges: list[GraphEdge] = []

    if depth > 0:
        seen: set[str] = {center_id}
        for index, officer in enumerate(officers or []):
            key = officer.appointment_id or officer.officer_id or officer.name
            node_id = f"director_{key}_{number}"
            if node_id in seen:
                node_id = f"{node_id}_{index}"
            seen.add(node_id)

            nodes.append(GraphNode(
                id=node_id,
                type="director",
                label=officer.name,
                size=DIRECTOR_NODE_SIZE,
                risk_level=director_risk_level(officer),
                data=officer.model_dump(mode="json"),
            ))
            edges.append(GraphEdge(
                id=f"directorship_{node_id}",
                source=node_id,
                target=center_id,
                type="directorship",
                label=officer.officer_role or "Director",
                strength=DIRECTORSHIP_STRENGTH,
                start_date=officer.appointed_on,
                end_date=officer.resigned_on,
                is_active=officer.is_active,
            ))

    result = calculator.compute(nodes, edges)
    return result.model_copy(update={
        "center_entity": CenterEntity(type="company", id=number, label=profile.company_name),
        "depth": depth,
    })
