"""Pydantic schemas for the composite risk assessment."""

from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import Field

from kybintel.schemas.common import CamelModel
from kybintel.schemas.entity import CompanyProfile, Officer


class RiskLevel(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class RiskAssessment(CamelModel):
    risk_score: int = Field(ge=1, le=10)
    risk_level: RiskLevel
    summary: str
    factors: list[str]


class RiskScoreRequest(CamelModel):
    """Score an already-fetched profile. profile=None means the lookup failed."""
    profile: Optional[CompanyProfile] = None
    officers: Optional[list[Officer]] = None
    as_of: Optional[datetime] = None
