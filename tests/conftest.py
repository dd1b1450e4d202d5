"""
Test fixtures for KYB Intel.

Provides:
- A fixed evaluation time
- FakeRegistry: in-memory registry with per-category failure injection
- Record factories (profiles, officers, address points)
- Async FastAPI test client with the registry dependency overridden
"""

from datetime import date, datetime, timezone
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from kybintel.api.deps import get_registry_client
from kybintel.exceptions import RegistryError, RegistryNotFound
from kybintel.main import app
from kybintel.schemas.entity import (
    AccountsInfo,
    CompanyProfile,
    ConfirmationStatementInfo,
    Filing,
    Officer,
    Shareholding,
)
from kybintel.schemas.geographic import AddressEntity, AddressPoint

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


# ── Factories ────────────────────────────────────────────────────────────


def make_profile(
    number: str = "01234567",
    status: str = "active",
    created: Optional[date] = date(2010, 3, 1),
    accounts_due: Optional[date] = None,
    confirmation_due: Optional[date] = None,
    **flags,
) -> CompanyProfile:
    return CompanyProfile(
        company_number=number,
        company_name=f"Company {number} Ltd",
        company_status=status,
        company_type="ltd",
        date_of_creation=created,
        accounts=AccountsInfo(next_due=accounts_due) if accounts_due else None,
        confirmation_statement=(
            ConfirmationStatementInfo(next_due=confirmation_due) if confirmation_due else None
        ),
        **flags,
    )


def make_officer(
    name: str = "SMITH, Jane",
    role: str = "director",
    appointed: Optional[date] = date(2015, 1, 1),
    resigned: Optional[date] = None,
    appointment_id: Optional[str] = None,
    **extra,
) -> Officer:
    return Officer(
        name=name,
        officer_role=role,
        appointed_on=appointed,
        resigned_on=resigned,
        appointment_id=appointment_id,
        **extra,
    )


def make_point(
    point_id: str,
    lat: Optional[float],
    lon: Optional[float],
    entity_risks: tuple = (10.0,),
    names: Optional[tuple] = None,
    **extra,
) -> AddressPoint:
    names = names or tuple(f"Entity {point_id}-{i}" for i in range(len(entity_risks)))
    return AddressPoint(
        id=point_id,
        address=f"{point_id} High Street",
        latitude=lat,
        longitude=lon,
        entities=[
            AddressEntity(id=f"{point_id}-{i}", name=name, risk_score=risk)
            for i, (name, risk) in enumerate(zip(names, entity_risks))
        ],
        **extra,
    )


# ── Fake registry ────────────────────────────────────────────────────────


class FakeRegistry:
    """
    Duck-typed stand-in for RegistryClient.

    `fail` holds category names ("profile", "officers", "pscs", "filings",
    "appointments") whose calls raise RegistryError.
    """

    def __init__(self):
        self.profiles: dict[str, CompanyProfile] = {}
        self.officers: dict[str, list[Officer]] = {}
        self.pscs: dict[str, list[Shareholding]] = {}
        self.filings: dict[str, list[Filing]] = {}
        self.appointments: dict[str, tuple[str, list[Officer]]] = {}
        self.fail: set[str] = set()
        self.calls: list[str] = []

    def _check(self, category: str) -> None:
        self.calls.append(category)
        if category in self.fail:
            raise RegistryError(f"{category} fetch failed")

    async def get_company_profile(self, company_number: str) -> CompanyProfile:
        self._check("profile")
        if company_number not in self.profiles:
            raise RegistryNotFound(f"Company {company_number}")
        return self.profiles[company_number]

    async def get_company_officers(self, company_number: str) -> list[Officer]:
        self._check("officers")
        return self.officers.get(company_number, [])

    async def get_pscs(self, company_number: str) -> list[Shareholding]:
        self._check("pscs")
        return self.pscs.get(company_number, [])

    async def get_filing_history(self, company_number: str) -> list[Filing]:
        self._check("filings")
        return self.filings.get(company_number, [])

    async def get_officer_appointments(self, officer_id: str):
        self._check("appointments")
        if officer_id not in self.appointments:
            raise RegistryNotFound(f"Officer {officer_id}")
        return self.appointments[officer_id]


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest_asyncio.fixture
async def client(registry):
    """API client whose registry dependency is the in-memory fake."""
    app.dependency_overrides[get_registry_client] = lambda: registry
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
