"""
Intelligence Service Tests.

Runs the service against the in-memory FakeRegistry and checks that each
registry category degrades on its own.
"""

from datetime import date, datetime, timezone

import httpx
import pytest

from conftest import NOW, FakeRegistry, make_officer, make_profile
from kybintel.config import Settings
from kybintel.exceptions import RegistryError, RegistryNotFound, RegistryUnavailable
from kybintel.schemas.common import EntityKind
from kybintel.schemas.entity import Filing, Shareholding
from kybintel.schemas.risk import RiskLevel
from kybintel.schemas.timeline import EventType
from kybintel.services.intelligence import (
    IntelligenceService,
    build_clustering_engine,
    build_graph_calculator,
    build_risk_model,
    fetch_or_none,
)
from kybintel.services.registry_client import RegistryClient
from kybintel.services.resilience import CircuitBreaker, CircuitOpenError


def seeded_registry() -> FakeRegistry:
    registry = FakeRegistry()
    registry.profiles["01234567"] = make_profile(created=date(2015, 5, 1))
    registry.officers["01234567"] = [
        make_officer(name="DOE, John", appointed=date(2016, 1, 1), appointment_id="a1"),
        make_officer(name="ROE, Rita", appointed=date(2017, 1, 1), resigned=date(2022, 3, 1), appointment_id="a2"),
    ]
    registry.pscs["01234567"] = [
        Shareholding(id="p1", name="Holding Co", kind="corporate", percentage_held=75.0, notified_on=date(2019, 1, 1)),
    ]
    registry.filings["01234567"] = [
        Filing(transaction_id="t1", date=date(2023, 10, 1), category="accounts"),
    ]
    registry.appointments["off-1"] = ("John DOE", [
        make_officer(
            name="DOE, John", appointed=date(2016, 1, 1),
            company_number="01234567", company_name="Company 01234567 Ltd",
        ),
    ])
    return registry


@pytest.mark.asyncio
class TestFetchOrNone:

    async def test_registry_error_becomes_none(self):
        async def boom():
            raise RegistryError("upstream broke")

        assert await fetch_or_none("officers", boom) is None

    async def test_open_circuit_becomes_none(self):
        async def rejected():
            raise CircuitOpenError("open")

        assert await fetch_or_none("officers", rejected) is None

    async def test_programming_errors_propagate(self):
        async def bug():
            raise KeyError("missing")

        with pytest.raises(KeyError):
            await fetch_or_none("officers", bug)


@pytest.mark.asyncio
class TestAssessCompany:

    def setup_method(self):
        self.registry = seeded_registry()
        self.service = IntelligenceService(self.registry, Settings())

    async def test_full_assessment(self):
        result = await self.service.assess_company("01234567", now=NOW)
        assert 1 <= result.risk_score <= 10
        assert "Stable management team" in result.factors
        assert set(self.registry.calls) == {"profile", "officers"}

    async def test_missing_profile_uses_default(self):
        result = await self.service.assess_company("99999999", now=NOW)
        assert result.risk_score == 6
        assert result.risk_level == RiskLevel.MEDIUM
        assert result.factors == ["Insufficient data for full analysis"]

    async def test_failed_officers_skip_officer_checks(self):
        self.registry.fail.add("officers")
        result = await self.service.assess_company("01234567", now=NOW)
        assert "Stable management team" not in result.factors
        assert "Active company status" in result.factors


@pytest.mark.asyncio
class TestCompanyNetwork:

    def setup_method(self):
        self.registry = seeded_registry()
        self.service = IntelligenceService(self.registry, Settings())

    async def test_company_and_directors(self):
        graph = await self.service.company_network("01234567", depth=2)
        assert graph.metrics.total_nodes == 3
        assert graph.metrics.total_edges == 2
        assert graph.center_entity.id == "01234567"

    async def test_depth_zero_skips_officer_fetch(self):
        graph = await self.service.company_network("01234567", depth=0)
        assert graph.metrics.total_nodes == 1
        assert "officers" not in self.registry.calls

    async def test_failed_officers_yield_centre_only(self):
        self.registry.fail.add("officers")
        graph = await self.service.company_network("01234567", depth=2)
        assert graph.metrics.total_nodes == 1

    async def test_missing_company_raises(self):
        with pytest.raises(RegistryNotFound):
            await self.service.company_network("99999999", depth=2)

    async def test_open_circuit_is_service_unavailable(self):
        class Rejecting(FakeRegistry):
            async def get_company_profile(self, company_number):
                raise CircuitOpenError("open")

        service = IntelligenceService(Rejecting(), Settings())
        with pytest.raises(RegistryUnavailable) as info:
            await service.company_network("01234567", depth=2)
        assert info.value.status_code == 503


@pytest.mark.asyncio
class TestTimeline:

    def setup_method(self):
        self.registry = seeded_registry()
        self.service = IntelligenceService(self.registry, Settings())

    async def test_company_timeline_merges_categories(self):
        response = await self.service.timeline(EntityKind.COMPANY, "01234567", now=NOW)
        types = {e.type for e in response.events}
        assert types == {
            EventType.COMPANY_STATUS, EventType.APPOINTMENT, EventType.RESIGNATION,
            EventType.SHAREHOLDING, EventType.FILING,
        }
        assert response.events[0].id == "filing-t1"

    async def test_one_failed_category_keeps_the_rest(self):
        self.registry.fail.add("filings")
        response = await self.service.timeline(EntityKind.COMPANY, "01234567", now=NOW)
        types = {e.type for e in response.events}
        assert EventType.FILING not in types
        assert EventType.SHAREHOLDING in types

    async def test_every_category_failed_is_empty(self):
        self.registry.fail.update({"profile", "officers", "pscs", "filings"})
        start = datetime(2020, 1, 1, tzinfo=timezone.utc)
        response = await self.service.timeline(EntityKind.COMPANY, "01234567", start=start, end=NOW, now=NOW)
        assert response.events == []
        assert response.date_range.start == start
        assert response.date_range.end == NOW

    async def test_person_timeline(self):
        response = await self.service.timeline(EntityKind.PERSON, "off-1", now=NOW)
        assert [e.title for e in response.events] == ["Appointed at Company 01234567 Ltd"]
        assert response.events[0].description.startswith("John DOE was appointed")

    async def test_unknown_person_is_empty(self):
        response = await self.service.timeline(EntityKind.PERSON, "nobody", now=NOW)
        assert response.stats.total_events == 0


@pytest.mark.asyncio
class TestMalformedRegistryRecords:
    """A bad upstream record degrades its own category only."""

    RESPONSES = {
        "/company/01234567": {
            "company_number": "01234567",
            "company_name": "ACME LTD",
            "company_status": "active",
            "date_of_creation": "2018-04-01",
        },
        "/company/01234567/officers": {"items": [{"name": "X", "appointed_on": "not-a-date"}]},
        "/company/01234567/filing-history": {"items": [{"transaction_id": "t1", "date": "2023-02-01"}]},
        "/company/01234567/persons-with-significant-control": {"items": []},
    }

    def service(self, responses: dict) -> IntelligenceService:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=responses[request.url.path])

        client = RegistryClient(
            "https://registry.test",
            retry_base_delay=0,
            breaker=CircuitBreaker("test-registry", ignore=(RegistryNotFound,)),
            transport=httpx.MockTransport(handler),
        )
        return IntelligenceService(client, Settings())

    async def test_bad_officer_keeps_other_timeline_events(self):
        response = await self.service(self.RESPONSES).timeline(EntityKind.COMPANY, "01234567", now=NOW)
        assert [e.id for e in response.events] == ["filing-t1", "incorporation-01234567"]

    async def test_malformed_profile_gives_insufficient_data_default(self):
        responses = {
            **self.RESPONSES,
            "/company/01234567": {"company_number": "01234567", "date_of_creation": "someday"},
            "/company/01234567/officers": {"items": []},
        }
        result = await self.service(responses).assess_company("01234567", now=NOW)
        assert result.risk_score == 6
        assert result.factors == ["Insufficient data for full analysis"]


class TestFactories:

    def test_settings_flow_into_engines(self):
        settings = Settings().model_copy(update={
            "cluster_radius_km": 2.5,
            "cluster_strategy": "connected",
            "centrality_mode": "exact",
            "risk_delta_dissolved": 4.0,
        })
        assert build_clustering_engine(settings).radius_km == 2.5
        assert build_clustering_engine(settings).strategy == "connected"
        assert build_graph_calculator(settings).mode == "exact"
        assert build_risk_model(settings).weights["dissolved"] == 4.0
