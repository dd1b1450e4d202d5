"""
Risk Assessment API.

POST /api/v1/risk/score                                  - score supplied records
POST /api/v1/companies/{company_number}/risk-assessment  - score live registry data
"""

from fastapi import APIRouter, Depends

from kybintel.api.deps import get_intelligence_service, get_risk_model
from kybintel.engine.risk_scoring import RiskScoringModel
from kybintel.schemas.risk import RiskAssessment, RiskScoreRequest
from kybintel.services.intelligence import IntelligenceService

router = APIRouter(tags=["risk"])


@router.post("/risk/score", response_model=RiskAssessment)
async def score_records(
    body: RiskScoreRequest,
    model: RiskScoringModel = Depends(get_risk_model),
):
    """Composite 1-10 score. A missing profile yields the insufficient-data default."""
    return model.score(body.profile, body.officers, body.as_of)


@router.post("/companies/{company_number}/risk-assessment", response_model=RiskAssessment)
async def assess_company(
    company_number: str,
    service: IntelligenceService = Depends(get_intelligence_service),
):
    """Fetch profile + officers concurrently, then score."""
    return await service.assess_company(company_number.strip().upper())
