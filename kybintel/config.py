"""
KYB Intel Configuration.

Pydantic Settings v2: loads from .env, environment variables.

The clustering thresholds and risk deltas below are heuristics carried over
from the product's first release. They are NOT calibrated against outcomes;
treat any change as a product decision, not a bug fix.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────────────────
    app_name: str = "KYB Intel"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # ── API ───────────────────────────────────────────────────────────────
    api_prefix: str = Field(default="/api/v1", alias="API_PREFIX")
    allowed_origins: List[str] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )

    # ── Registry (external data provider) ─────────────────────────────────
    registry_url: str = Field(
        default="https://api.company-information.service.gov.uk",
        alias="REGISTRY_URL",
    )
    registry_api_key: str = Field(default="", alias="REGISTRY_API_KEY")
    registry_fetch_timeout_seconds: float = Field(default=10.0, alias="REGISTRY_FETCH_TIMEOUT_SECONDS")
    registry_retry_attempts: int = Field(default=2, alias="REGISTRY_RETRY_ATTEMPTS")
    registry_retry_base_delay: float = Field(default=0.5, alias="REGISTRY_RETRY_BASE_DELAY")
    registry_officers_page_size: int = Field(default=35, alias="REGISTRY_OFFICERS_PAGE_SIZE")
    registry_filings_page_size: int = Field(default=25, alias="REGISTRY_FILINGS_PAGE_SIZE")

    # ── Proximity Clustering ──────────────────────────────────────────────
    cluster_radius_km: float = Field(default=1.0, alias="CLUSTER_RADIUS_KM")
    cluster_strategy: str = Field(
        default="anchor", alias="CLUSTER_STRATEGY",
        description="'anchor' (single-pass seed radius) or 'connected' (connected components)",
    )
    bounding_box_padding_deg: float = Field(default=0.1, alias="BOUNDING_BOX_PADDING_DEG")
    concentration_entity_threshold: int = Field(default=10, alias="CONCENTRATION_ENTITY_THRESHOLD")
    concentration_max_addresses: int = Field(default=2, alias="CONCENTRATION_MAX_ADDRESSES")
    high_risk_cluster_threshold: float = Field(default=70.0, alias="HIGH_RISK_CLUSTER_THRESHOLD")
    shell_entity_risk_threshold: float = Field(default=80.0, alias="SHELL_ENTITY_RISK_THRESHOLD")
    shell_cluster_min_count: int = Field(default=2, alias="SHELL_CLUSTER_MIN_COUNT")

    # Address risk levels (0-100 scale)
    address_critical_threshold: float = Field(default=85.0, alias="ADDRESS_CRITICAL_THRESHOLD")
    address_high_threshold: float = Field(default=70.0, alias="ADDRESS_HIGH_THRESHOLD")
    address_medium_threshold: float = Field(default=40.0, alias="ADDRESS_MEDIUM_THRESHOLD")

    # ── Composite Risk Scoring (1-10 scale) ───────────────────────────────
    risk_baseline: float = Field(default=5.0, alias="RISK_BASELINE")
    risk_delta_active: float = Field(default=-1.0, alias="RISK_DELTA_ACTIVE")
    risk_delta_dissolved: float = Field(default=3.0, alias="RISK_DELTA_DISSOLVED")
    risk_delta_accounts_overdue: float = Field(default=2.0, alias="RISK_DELTA_ACCOUNTS_OVERDUE")
    risk_delta_accounts_current: float = Field(default=-0.5, alias="RISK_DELTA_ACCOUNTS_CURRENT")
    risk_delta_confirmation_overdue: float = Field(default=1.0, alias="RISK_DELTA_CONFIRMATION_OVERDUE")
    risk_delta_confirmation_current: float = Field(default=-0.5, alias="RISK_DELTA_CONFIRMATION_CURRENT")
    risk_delta_liquidated: float = Field(default=3.0, alias="RISK_DELTA_LIQUIDATED")
    risk_delta_charges: float = Field(default=1.0, alias="RISK_DELTA_CHARGES")
    risk_delta_insolvency: float = Field(default=2.0, alias="RISK_DELTA_INSOLVENCY")
    risk_delta_established: float = Field(default=-1.0, alias="RISK_DELTA_ESTABLISHED")
    risk_delta_recent: float = Field(default=1.0, alias="RISK_DELTA_RECENT")
    risk_delta_stable_management: float = Field(default=-0.5, alias="RISK_DELTA_STABLE_MANAGEMENT")
    risk_delta_officer_turnover: float = Field(default=1.0, alias="RISK_DELTA_OFFICER_TURNOVER")
    risk_established_years: float = Field(default=5.0, alias="RISK_ESTABLISHED_YEARS")
    risk_recent_years: float = Field(default=1.0, alias="RISK_RECENT_YEARS")
    risk_turnover_months: int = Field(default=6, alias="RISK_TURNOVER_MONTHS")
    risk_turnover_min_resignations: int = Field(default=2, alias="RISK_TURNOVER_MIN_RESIGNATIONS")
    risk_max_factors: int = Field(default=6, alias="RISK_MAX_FACTORS")

    # ── Graph Metrics ─────────────────────────────────────────────────────
    centrality_mode: str = Field(
        default="approximate", alias="CENTRALITY_MODE",
        description="'approximate' (sampled pivots) or 'exact' (Brandes)",
    )
    centrality_sample_size: int = Field(default=64, alias="CENTRALITY_SAMPLE_SIZE")
    centrality_seed: int = Field(default=42, alias="CENTRALITY_SEED")

    # ── Timeline ──────────────────────────────────────────────────────────
    timeline_default_years: int = Field(default=10, alias="TIMELINE_DEFAULT_YEARS")
    significant_shareholding_pct: float = Field(default=25.0, alias="SIGNIFICANT_SHAREHOLDING_PCT")

    # ── Operational ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def risk_weights(self) -> dict[str, float]:
        """Risk scoring weights table, keyed as the scoring model expects."""
        return {
            "baseline": self.risk_baseline,
            "active": self.risk_delta_active,
            "dissolved": self.risk_delta_dissolved,
            "accounts_overdue": self.risk_delta_accounts_overdue,
            "accounts_current": self.risk_delta_accounts_current,
            "confirmation_overdue": self.risk_delta_confirmation_overdue,
            "confirmation_current": self.risk_delta_confirmation_current,
            "liquidated": self.risk_delta_liquidated,
            "charges": self.risk_delta_charges,
            "insolvency": self.risk_delta_insolvency,
            "established": self.risk_delta_established,
            "recent": self.risk_delta_recent,
            "stable_management": self.risk_delta_stable_management,
            "officer_turnover": self.risk_delta_officer_turnover,
        }

    @property
    def cluster_thresholds(self) -> dict[str, float]:
        """Suspicious-pattern and address-level thresholds for clustering."""
        return {
            "concentration_entities": self.concentration_entity_threshold,
            "concentration_max_addresses": self.concentration_max_addresses,
            "high_risk_cluster": self.high_risk_cluster_threshold,
            "shell_entity_risk": self.shell_entity_risk_threshold,
            "shell_min_count": self.shell_cluster_min_count,
            "address_critical": self.address_critical_threshold,
            "address_high": self.address_high_threshold,
            "address_medium": self.address_medium_threshold,
        }


settings = Settings()
