"""
Proximity Clustering Engine.

Groups geocoded registered addresses by physical distance and flags
concentration patterns that are typical of formation agents, virtual offices
and shell-company factories.

Grouping strategies:
- anchor (default): single pass in input order. Each unprocessed address
  seeds a group and pulls in every other unprocessed address within the
  radius OF THE SEED. Not transitive, order-sensitive, reproducible.
- connected: connected components of the "within radius" graph. Order only
  affects which member is reported as the seed.

Suspicious-pattern rules run per group and are independent of each other:
- High entity concentration: many entities on very few addresses
- High risk cluster: mean address risk above threshold
- Shell density: shell/nominee-named or very high risk entities
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from kybintel.engine.geo import haversine_km
from kybintel.engine.numeric import round_half_up, safe_mean
from kybintel.schemas.common import RiskBand
from kybintel.schemas.geographic import (
    AddressPoint,
    BoundingBox,
    GeographicAnalysis,
    GeographicCluster,
    GeographicStats,
    HeatmapPoint,
    RegionDefinition,
)

logger = structlog.get_logger(__name__)


# ── Configuration ─────────────────────────────────────────────────────────

DEFAULT_RADIUS_KM: float = 1.0
DEFAULT_PADDING_DEG: float = 0.1

# Heuristic, uncalibrated. Overridable via Settings.cluster_thresholds.
DEFAULT_THRESHOLDS: dict[str, float] = {
    "concentration_entities": 10,       # entities > this ...
    "concentration_max_addresses": 2,   # ... on <= this many addresses
    "high_risk_cluster": 70.0,          # mean address risk > this
    "shell_entity_risk": 80.0,          # entity risk > this counts as shell-like
    "shell_min_count": 2,               # shell-like entities > this
    "address_critical": 85.0,
    "address_high": 70.0,
    "address_medium": 40.0,
}

SHELL_NAME_MARKERS: tuple[str, ...] = ("shell", "nominee")

STRATEGIES = ("anchor", "connected")


@dataclass(frozen=True)
class ProximityGroup:
    """Addresses grouped around a seed. members[0] is always the seed."""
    members: tuple[AddressPoint, ...]

    @property
    def seed(self) -> AddressPoint:
        return self.members[0]

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def entity_count(self) -> int:
        return sum(len(m.entities) for m in self.members)

    @property
    def mean_risk(self) -> float:
        return safe_mean(m.risk_score or 0.0 for m in self.members)


class ProximityClusteringEngine:
    """
    Stateless clustering over address points.

    One instance can serve concurrent requests: every working set
    (processed indices, groups) is local to the call.
    """

    def __init__(
        self,
        radius_km: float = DEFAULT_RADIUS_KM,
        padding_deg: float = DEFAULT_PADDING_DEG,
        thresholds: Optional[dict[str, float]] = None,
        strategy: str = "anchor",
    ):
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown clustering strategy: {strategy!r}")
        self.radius_km = radius_km
        self.padding_deg = padding_deg
        self.thresholds = {**DEFAULT_THRESHOLDS, **(thresholds or {})}
        self.strategy = strategy

    # ── Normalization ─────────────────────────────────────────────────

    def address_risk_level(self, score: float) -> RiskBand:
        if score >= self.thresholds["address_critical"]:
            return RiskBand.CRITICAL
        if score >= self.thresholds["address_high"]:
            return RiskBand.HIGH
        if score >= self.thresholds["address_medium"]:
            return RiskBand.MEDIUM
        return RiskBand.LOW

    def normalize(self, point: AddressPoint) -> AddressPoint:
        """Fill derived fields the caller left out. Returns a new object."""
        score = point.risk_score
        if score is None:
            score = float(round_half_up(safe_mean(e.risk_score for e in point.entities)))
        return point.model_copy(update={
            "risk_score": score,
            "risk_level": point.risk_level or self.address_risk_level(score),
            "cluster_size": point.cluster_size if point.cluster_size is not None else len(point.entities),
            "registrations": point.registrations if point.registrations is not None else len(point.entities),
        })

    # ── Grouping ──────────────────────────────────────────────────────

    def _within(self, a: AddressPoint, b: AddressPoint) -> bool:
        return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude) <= self.radius_km

    def group(self, points: list[AddressPoint]) -> list[ProximityGroup]:
        """
        Partition geocoded points into groups (singletons included).

        Points without coordinates are skipped entirely. Every geocoded
        point lands in exactly one group.
        """
        geocoded = [p for p in points if p.has_coordinates]
        if self.strategy == "connected":
            return self._group_connected(geocoded)
        return self._group_anchor(geocoded)

    def _group_anchor(self, points: list[AddressPoint]) -> list[ProximityGroup]:
        processed: set[int] = set()
        groups: list[ProximityGroup] = []
        for i, seed in enumerate(points):
            if i in processed:
                continue
            processed.add(i)
            members = [seed]
            for j, other in enumerate(points):
                if j in processed:
                    continue
                if self._within(seed, other):
                    members.append(other)
                    processed.add(j)
            groups.append(ProximityGroup(members=tuple(members)))
        return groups

    def _group_connected(self, points: list[AddressPoint]) -> list[ProximityGroup]:
        parent = list(range(len(points)))

        def find(i: int) -> int:
            while parent[i] != i:
                parent[i] = parent[parent[i]]
                i = parent[i]
            return i

        for i in range(len(points)):
            for j in range(i + 1, len(points)):
                if self._within(points[i], points[j]):
                    ri, rj = find(i), find(j)
                    if ri != rj:
                        # Lower index stays root so the earliest point is the seed
                        parent[max(ri, rj)] = min(ri, rj)

        buckets: dict[int, list[AddressPoint]] = {}
        for i, point in enumerate(points):
            buckets.setdefault(find(i), []).append(point)
        return [ProximityGroup(members=tuple(buckets[root])) for root in sorted(buckets)]

    # ── Pattern detection ─────────────────────────────────────────────

    def _is_shell_like(self, name: str, risk_score: float) -> bool:
        lowered = name.lower()
        if any(marker in lowered for marker in SHELL_NAME_MARKERS):
            return True
        return risk_score > self.thresholds["shell_entity_risk"]

    def detect_patterns(self, group: ProximityGroup) -> list[str]:
        """Evaluate every suspicious-pattern rule for a group."""
        patterns: list[str] = []
        anchor = group.seed.address

        if (
            group.entity_count > self.thresholds["concentration_entities"]
            and group.size <= self.thresholds["concentration_max_addresses"]
        ):
            patterns.append(f"High entity concentration at {anchor}")

        if group.mean_risk > self.thresholds["high_risk_cluster"]:
            patterns.append(f"High risk cluster near {anchor}")

        shell_count = sum(
            1
            for member in group.members
            for entity in member.entities
            if self._is_shell_like(entity.name, entity.risk_score)
        )
        if shell_count > self.thresholds["shell_min_count"]:
            patterns.append(f"Potential shell company cluster at {anchor}")

        return patterns

    # ── Cluster materialization ───────────────────────────────────────

    def _proximity_cluster(self, index: int, group: ProximityGroup) -> GeographicCluster:
        return GeographicCluster(
            id=f"cluster-{index}",
            kind="proximity",
            center_latitude=safe_mean(m.latitude for m in group.members),
            center_longitude=safe_mean(m.longitude for m in group.members),
            addresses=[m.address for m in group.members],
            address_ids=[m.id for m in group.members],
            entity_count=group.entity_count,
            risk_score=round_half_up(group.mean_risk),
            description=(
                f"Geographic cluster with {group.size} addresses "
                f"and {group.entity_count} entities"
            ),
            suspicious_patterns=self.detect_patterns(group),
        )

    def _region_cluster(
        self, region: RegionDefinition, by_id: dict[str, AddressPoint]
    ) -> GeographicCluster:
        members = [by_id[aid] for aid in region.address_ids if aid in by_id]
        geocoded = [m for m in members if m.has_coordinates]

        center_lat = region.center_latitude
        center_lon = region.center_longitude
        if (center_lat is None or center_lon is None) and geocoded:
            center_lat = safe_mean(m.latitude for m in geocoded)
            center_lon = safe_mean(m.longitude for m in geocoded)

        group = ProximityGroup(members=tuple(members)) if members else None
        entity_count = group.entity_count if group else 0
        return GeographicCluster(
            id=region.id,
            kind="region",
            center_latitude=center_lat,
            center_longitude=center_lon,
            addresses=[m.address for m in members],
            address_ids=[m.id for m in members],
            entity_count=entity_count,
            risk_score=round_half_up(group.mean_risk) if group else 0,
            description=region.description or (
                f"Regional cluster with {len(members)} addresses and {entity_count} entities"
            ),
            suspicious_patterns=self.detect_patterns(group) if group else [],
        )

    # ── Map outputs ───────────────────────────────────────────────────

    def bounding_box(self, points: list[AddressPoint]) -> BoundingBox:
        geocoded = [p for p in points if p.has_coordinates]
        if not geocoded:
            return BoundingBox()
        lats = [p.latitude for p in geocoded]
        lons = [p.longitude for p in geocoded]
        return BoundingBox(
            north=max(lats) + self.padding_deg,
            south=min(lats) - self.padding_deg,
            east=max(lons) + self.padding_deg,
            west=min(lons) - self.padding_deg,
        )

    @staticmethod
    def heatmap(points: list[AddressPoint]) -> list[HeatmapPoint]:
        return [
            HeatmapPoint(
                latitude=p.latitude,
                longitude=p.longitude,
                intensity=(p.risk_score or 0.0) / 100,
                risk_score=p.risk_score or 0.0,
            )
            for p in points
            if p.has_coordinates
        ]

    # ── Entry point ───────────────────────────────────────────────────

    def analyze(
        self,
        points: list[AddressPoint],
        regions: Optional[list[RegionDefinition]] = None,
    ) -> GeographicAnalysis:
        """
        Full geographic analysis.

        Proximity clusters (groups of 2+) come first, then one cluster per
        caller-defined region.
        """
        normalized = [self.normalize(p) for p in points]

        clusters: list[GeographicCluster] = []
        for group in self.group(normalized):
            if group.size < 2:
                continue
            clusters.append(self._proximity_cluster(len(clusters), group))

        suspicious = [pattern for c in clusters for pattern in c.suspicious_patterns]

        if regions:
            by_id = {p.id: p for p in normalized}
            clusters.extend(self._region_cluster(r, by_id) for r in regions)

        total = len(normalized)
        stats = GeographicStats(
            total_addresses=total,
            high_risk_addresses=sum(
                1 for p in normalized if p.risk_level in (RiskBand.HIGH, RiskBand.CRITICAL)
            ),
            address_clusters=len(clusters),
            average_entities_per_address=(
                sum(len(p.entities) for p in normalized) / total if total else 0.0
            ),
        )

        logger.debug(
            "geographic_analysis_completed",
            addresses=total,
            geocoded=sum(1 for p in normalized if p.has_coordinates),
            clusters=len(clusters),
            suspicious_patterns=len(suspicious),
            strategy=self.strategy,
        )

        return GeographicAnalysis(
            address_points=normalized,
            clusters=clusters,
            heatmap_data=self.heatmap(normalized),
            bounding_box=self.bounding_box(normalized),
            stats=stats,
            suspicious_patterns=suspicious,
        )
