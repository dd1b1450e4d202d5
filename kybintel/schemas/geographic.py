"""
Geographic analysis schemas.

Response: {addressPoints, clusters, heatmapData, boundingBox, stats, suspiciousPatterns}
"""

from typing import Literal, Optional

from pydantic import Field

from kybintel.schemas.common import CamelModel, RiskBand


class AddressEntity(CamelModel):
    """An entity registered at an address."""
    id: str
    name: str
    type: Literal["company", "director", "shareholder"] = "company"
    risk_score: float = Field(default=0.0, ge=0, le=100)


class AddressPoint(CamelModel):
    """
    A geocoded (or not) address and the entities registered there.

    risk_score / risk_level are derived from the entities when omitted.
    """
    id: str
    address: str
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    entities: list[AddressEntity] = Field(default_factory=list)
    cluster_size: Optional[int] = None
    risk_level: Optional[RiskBand] = None
    risk_score: Optional[float] = Field(default=None, ge=0, le=100)
    registrations: Optional[int] = None
    business_type: list[str] = Field(default_factory=list)
    suspicious_indicators: list[str] = Field(default_factory=list)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class RegionDefinition(CamelModel):
    """Caller-defined regional aggregate (always materialized as a cluster)."""
    id: str
    description: str = ""
    address_ids: list[str] = Field(default_factory=list)
    center_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    center_longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class GeographicCluster(CamelModel):
    id: str
    kind: Literal["proximity", "region"] = "proximity"
    center_latitude: Optional[float] = None
    center_longitude: Optional[float] = None
    addresses: list[str]
    address_ids: list[str]
    entity_count: int
    risk_score: int
    description: str
    suspicious_patterns: list[str] = Field(default_factory=list)


class HeatmapPoint(CamelModel):
    latitude: float
    longitude: float
    intensity: float
    risk_score: float


class BoundingBox(CamelModel):
    """Padded bounds. All None when no address carries coordinates."""
    north: Optional[float] = None
    south: Optional[float] = None
    east: Optional[float] = None
    west: Optional[float] = None


class GeographicStats(CamelModel):
    total_addresses: int
    high_risk_addresses: int
    address_clusters: int
    average_entities_per_address: float


class GeographicAnalysis(CamelModel):
    address_points: list[AddressPoint]
    clusters: list[GeographicCluster]
    heatmap_data: list[HeatmapPoint]
    bounding_box: BoundingBox
    stats: GeographicStats
    suspicious_patterns: list[str] = Field(default_factory=list)


class GeographicRequest(CamelModel):
    address_points: list[AddressPoint] = Field(default_factory=list)
    regions: list[RegionDefinition] = Field(default_factory=list)
