"""
Composite Risk Scoring Model.

Additive score on a 1-10 scale: start from a baseline, apply a fixed delta
per signal in a fixed order, clamp, round half up.

Signals (evaluation order):
1. Company status (active / dissolved)
2. Accounts next-due date (overdue / up to date)
3. Confirmation statement next-due date (overdue / current)
4. Liquidation history
5. Registered charges (neutral factor when absent)
6. Insolvency history
7. Company age (established / recently incorporated)
8. Officer roster (stable management / high turnover), only when supplied

The factor list keeps the FIRST N labels in evaluation order, not the N most
impactful. A missing profile short-circuits to a fixed default; there is no
random fallback anywhere.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog

from kybintel.engine.dates import as_utc_midnight, ensure_utc, subtract_months, utc_now
from kybintel.engine.numeric import clamp, round_half_up
from kybintel.schemas.entity import CompanyProfile, Officer
from kybintel.schemas.risk import RiskAssessment, RiskLevel

logger = structlog.get_logger(__name__)


# ── Configuration ─────────────────────────────────────────────────────────

# Heuristic deltas, uncalibrated. Overridable via Settings.risk_weights.
DEFAULT_WEIGHTS: dict[str, float] = {
    "baseline": 5.0,
    "active": -1.0,
    "dissolved": 3.0,
    "accounts_overdue": 2.0,
    "accounts_current": -0.5,
    "confirmation_overdue": 1.0,
    "confirmation_current": -0.5,
    "liquidated": 3.0,
    "charges": 1.0,
    "insolvency": 2.0,
    "established": -1.0,
    "recent": 1.0,
    "stable_management": -0.5,
    "officer_turnover": 1.0,
}

MIN_SCORE: int = 1
MAX_SCORE: int = 10
DEFAULT_MAX_FACTORS: int = 6
DAYS_PER_YEAR: float = 365.25

# Upper bound (inclusive) of each level
LEVEL_CEILINGS: tuple[tuple[int, RiskLevel], ...] = (
    (3, RiskLevel.LOW),
    (6, RiskLevel.MEDIUM),
    (8, RiskLevel.HIGH),
    (10, RiskLevel.CRITICAL),
)

SUMMARIES: dict[RiskLevel, str] = {
    RiskLevel.LOW: (
        "This company demonstrates low risk characteristics with stable operations, "
        "compliant filing patterns, and good corporate governance indicators."
    ),
    RiskLevel.MEDIUM: (
        "This company shows moderate risk factors. Some areas require attention "
        "but overall maintains acceptable business practices."
    ),
    RiskLevel.HIGH: (
        "This company exhibits several risk factors that warrant careful "
        "consideration before engaging in business relationships."
    ),
    RiskLevel.CRITICAL: (
        "This company presents significant risk factors. Thorough due diligence "
        "is strongly recommended before any business engagement."
    ),
}

INSUFFICIENT_DATA = RiskAssessment(
    risk_score=6,
    risk_level=RiskLevel.MEDIUM,
    summary="Limited company data available for comprehensive risk assessment.",
    factors=["Insufficient data for full analysis"],
)


@dataclass(frozen=True)
class RiskFactor:
    """A signal that fired, its contribution and its display label."""
    signal: str
    delta: float
    label: str


def risk_level_for(score: int) -> RiskLevel:
    for ceiling, level in LEVEL_CEILINGS:
        if score <= ceiling:
            return level
    return RiskLevel.CRITICAL


# ── Model ─────────────────────────────────────────────────────────────────


class RiskScoringModel:
    """
    Deterministic additive scorer.

    The same (profile, officers, now) always produces the same assessment.
    """

    def __init__(
        self,
        weights: Optional[dict[str, float]] = None,
        max_factors: int = DEFAULT_MAX_FACTORS,
        established_years: float = 5.0,
        recent_years: float = 1.0,
        turnover_months: int = 6,
        turnover_min_resignations: int = 2,
    ):
        self.weights = {**DEFAULT_WEIGHTS, **(weights or {})}
        self.max_factors = max_factors
        self.established_years = established_years
        self.recent_years = recent_years
        self.turnover_months = turnover_months
        self.turnover_min_resignations = turnover_min_resignations

    def _factor(self, signal: str, label: str) -> RiskFactor:
        return RiskFactor(signal=signal, delta=self.weights.get(signal, 0.0), label=label)

    def evaluate(
        self,
        profile: CompanyProfile,
        officers: Optional[list[Officer]],
        now: datetime,
    ) -> list[RiskFactor]:
        """Every factor that fires, in evaluation order (uncapped)."""
        factors: list[RiskFactor] = []

        status = profile.status
        if status == "active":
            factors.append(self._factor("active", "Active company status"))
        elif status == "dissolved":
            factors.append(self._factor("dissolved", "Company is dissolved"))

        accounts_due = profile.accounts.next_due if profile.accounts else None
        if accounts_due is not None:
            if as_utc_midnight(accounts_due) < now:
                factors.append(self._factor("accounts_overdue", "Accounts filing overdue"))
            else:
                factors.append(self._factor("accounts_current", "Accounts filings up to date"))

        confirmation = profile.confirmation_statement
        confirmation_due = confirmation.next_due if confirmation else None
        if confirmation_due is not None:
            if as_utc_midnight(confirmation_due) < now:
                factors.append(self._factor("confirmation_overdue", "Confirmation statement overdue"))
            else:
                factors.append(self._factor("confirmation_current", "Confirmation statement current"))

        if profile.has_been_liquidated:
            factors.append(self._factor("liquidated", "Company has liquidation history"))

        if profile.has_charges:
            factors.append(self._factor("charges", "Company has registered charges"))
        else:
            factors.append(RiskFactor(signal="no_charges", delta=0.0, label="No registered charges"))

        if profile.has_insolvency_history:
            factors.append(self._factor("insolvency", "Insolvency history present"))

        if profile.date_of_creation is not None:
            age_days = (now - as_utc_midnight(profile.date_of_creation)).total_seconds() / 86400
            age_years = age_days / DAYS_PER_YEAR
            if age_years > self.established_years:
                factors.append(self._factor("established", "Established company (5+ years)"))
            elif age_years < self.recent_years:
                factors.append(self._factor("recent", "Recently incorporated company"))

        if officers is not None:
            if any(o.is_active for o in officers):
                factors.append(self._factor("stable_management", "Stable management team"))

            cutoff = subtract_months(now, self.turnover_months)
            recent_resignations = sum(
                1 for o in officers
                if o.resigned_on is not None and as_utc_midnight(o.resigned_on) > cutoff
            )
            if recent_resignations > self.turnover_min_resignations:
                factors.append(self._factor("officer_turnover", "High officer turnover recently"))

        return factors

    def score(
        self,
        profile: Optional[CompanyProfile],
        officers: Optional[list[Officer]] = None,
        now: Optional[datetime] = None,
    ) -> RiskAssessment:
        """Score one company. profile=None means the lookup failed."""
        if profile is None:
            logger.info("risk_score_insufficient_data")
            return INSUFFICIENT_DATA.model_copy(deep=True)

        now = ensure_utc(now) if now is not None else utc_now()

        factors = self.evaluate(profile, officers, now)
        raw = self.weights["baseline"] + sum(f.delta for f in factors)
        score = round_half_up(clamp(raw, MIN_SCORE, MAX_SCORE))
        level = risk_level_for(score)

        logger.debug(
            "risk_score_computed",
            company_number=profile.company_number or None,
            raw=raw,
            score=score,
            level=level.value,
            signals=[f.signal for f in factors],
        )

        return RiskAssessment(
            risk_score=score,
            risk_level=level,
            summary=SUMMARIES[level],
            factors=[f.label for f in factors[: self.max_factors]],
        )
