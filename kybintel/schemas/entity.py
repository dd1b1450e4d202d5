"""
Registry input records.

Field names follow the registry's own JSON (snake_case). Every date the
registry may omit is Optional and every consumer must handle None.
"""

from datetime import date
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ShareholderKind(StrEnum):
    INDIVIDUAL = "individual"
    CORPORATE = "corporate"
    LEGAL_PERSON = "legal_person"
    OTHER = "other"


class RegistryRecord(BaseModel):
    """Base for registry payloads: unknown upstream fields are dropped."""

    model_config = ConfigDict(extra="ignore")


class AccountsInfo(RegistryRecord):
    next_due: Optional[date] = None
    last_made_up_to: Optional[date] = None


class ConfirmationStatementInfo(RegistryRecord):
    next_due: Optional[date] = None
    last_made: Optional[date] = None


class CompanyProfile(RegistryRecord):
    """Company profile as returned by the registry."""
    company_number: str = ""
    company_name: str = ""
    company_status: Optional[str] = None
    company_type: Optional[str] = None
    date_of_creation: Optional[date] = None
    date_of_cessation: Optional[date] = None
    accounts: Optional[AccountsInfo] = None
    confirmation_statement: Optional[ConfirmationStatementInfo] = None
    has_been_liquidated: bool = False
    has_charges: bool = False
    has_insolvency_history: bool = False
    sic_codes: list[str] = Field(default_factory=list)

    @property
    def status(self) -> str:
        return (self.company_status or "").strip().lower()


class Officer(RegistryRecord):
    """
    One officer appointment.

    For company rosters company_number/company_name are the company being
    queried; for person histories they identify the appointing company.
    """
    name: str
    officer_role: Optional[str] = None
    appointed_on: Optional[date] = None
    resigned_on: Optional[date] = None
    officer_id: Optional[str] = None
    appointment_id: Optional[str] = None
    company_number: Optional[str] = None
    company_name: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.resigned_on is None

    @property
    def is_chief(self) -> bool:
        return "chief" in (self.officer_role or "").lower()


class Shareholding(RegistryRecord):
    """Ownership/PSC notification for a company."""
    id: Optional[str] = None
    name: Optional[str] = None
    kind: str = ShareholderKind.OTHER.value
    percentage_held: Optional[float] = Field(default=None, ge=0, le=100)
    notified_on: Optional[date] = None

    @property
    def is_individual(self) -> bool:
        return self.kind == ShareholderKind.INDIVIDUAL


class Filing(RegistryRecord):
    """Filing-history item (accounts, confirmation statement, officer change...)."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    transaction_id: Optional[str] = None
    filed_on: Optional[date] = Field(default=None, alias="date")
    category: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
