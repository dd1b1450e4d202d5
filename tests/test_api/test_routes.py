"""
API Route Tests.

Every route over the ASGI transport. Registry-backed routes use the
FakeRegistry from conftest through dependency overrides.
"""

from datetime import date

import pytest

from conftest import make_officer, make_profile
from kybintel.api.deps import get_graph_calculator
from kybintel.config import settings
from kybintel.main import app, create_app
from kybintel.middleware.error_handler import GENERIC_MESSAGE
from kybintel.schemas.entity import Filing


def point(point_id, lat, lon, risks=(10.0,)):
    return {
        "id": point_id,
        "address": f"{point_id} High Street",
        "latitude": lat,
        "longitude": lon,
        "entities": [
            {"id": f"{point_id}-{i}", "name": f"Entity {point_id}-{i}", "riskScore": r}
            for i, r in enumerate(risks)
        ],
    }


@pytest.mark.asyncio
class TestHealth:

    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
        assert resp.headers["X-Request-ID"]

    async def test_request_id_is_echoed(self, client):
        resp = await client.get("/health", headers={"X-Request-ID": "req-abc"})
        assert resp.headers["X-Request-ID"] == "req-abc"


class TestApiPrefix:

    def test_routers_mount_under_configured_prefix(self, monkeypatch):
        monkeypatch.setattr(settings, "api_prefix", "/v2")
        paths = {route.path for route in create_app().routes}

        assert {"/v2/network/graph", "/v2/risk/score", "/v2/network/timeline"} <= paths
        assert "/api/v1/network/graph" not in paths
        assert "/health" in paths


@pytest.mark.asyncio
class TestGeographic:

    async def test_clusters_and_camel_case(self, client):
        body = {"addressPoints": [
            point("A", 51.5000, -0.1000, (50.0, 50.0)),
            point("B", 51.5050, -0.1000, (90.0,)),
            point("C", 51.6000, -0.1000),
            point("D", None, None),
        ]}
        resp = await client.post("/api/v1/network/geographic", json=body)

        assert resp.status_code == 200
        data = resp.json()
        assert set(data) == {
            "addressPoints", "clusters", "heatmapData", "boundingBox", "stats", "suspiciousPatterns",
        }
        assert len(data["addressPoints"]) == 4
        assert len(data["clusters"]) == 1
        assert data["clusters"][0]["addressIds"] == ["A", "B"]
        assert data["stats"]["totalAddresses"] == 4
        assert len(data["heatmapData"]) == 3

    async def test_empty_input(self, client):
        resp = await client.post("/api/v1/network/geographic", json={})
        assert resp.status_code == 200
        data = resp.json()
        assert data["clusters"] == []
        assert data["boundingBox"] == {"north": None, "south": None, "east": None, "west": None}

    async def test_out_of_range_latitude_is_400(self, client):
        resp = await client.post("/api/v1/network/geographic", json={"addressPoints": [point("A", 91.0, 0.0)]})
        assert resp.status_code == 400
        assert resp.json()["code"] == "E1001"


@pytest.mark.asyncio
class TestRisk:

    async def test_score_supplied_records(self, client):
        body = {
            "profile": {
                "company_number": "01234567",
                "company_status": "dissolved",
                "has_been_liquidated": True,
                "has_insolvency_history": True,
            },
            "asOf": "2024-06-15T12:00:00Z",
        }
        resp = await client.post("/api/v1/risk/score", json=body)

        assert resp.status_code == 200
        data = resp.json()
        assert data["riskScore"] == 10
        assert data["riskLevel"] == "Critical"
        assert "Company is dissolved" in data["factors"]

    async def test_score_without_profile(self, client):
        resp = await client.post("/api/v1/risk/score", json={})
        assert resp.json() == {
            "riskScore": 6,
            "riskLevel": "Medium",
            "summary": "Limited company data available for comprehensive risk assessment.",
            "factors": ["Insufficient data for full analysis"],
        }

    async def test_malformed_date_is_400(self, client):
        resp = await client.post("/api/v1/risk/score", json={"asOf": "yesterday-ish"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request parameters"

    async def test_registry_assessment(self, client, registry):
        registry.profiles["01234567"] = make_profile()
        registry.officers["01234567"] = [make_officer()]

        resp = await client.post("/api/v1/companies/01234567/risk-assessment")

        assert resp.status_code == 200
        assert "Stable management team" in resp.json()["factors"]

    async def test_registry_assessment_degrades(self, client, registry):
        registry.fail.add("profile")
        resp = await client.post("/api/v1/companies/01234567/risk-assessment")
        assert resp.status_code == 200
        assert resp.json()["riskScore"] == 6


@pytest.mark.asyncio
class TestNetwork:

    async def test_graph_metrics(self, client):
        body = {
            "nodes": [{"id": n, "label": n.upper()} for n in "abcd"],
            "edges": [{"source": s, "target": t} for s, t in [("a", "b"), ("b", "c"), ("c", "d")]],
        }
        resp = await client.post("/api/v1/network/graph", json=body)

        assert resp.status_code == 200
        metrics = resp.json()["metrics"]
        assert metrics["totalNodes"] == 4
        assert metrics["totalEdges"] == 3
        assert metrics["density"] == pytest.approx(0.25)
        assert metrics["centralityMethod"] == "exact"

    async def test_company_network(self, client, registry):
        registry.profiles["01234567"] = make_profile()
        registry.officers["01234567"] = [make_officer(appointment_id="a1")]

        resp = await client.get("/api/v1/network/company/01234567", params={"depth": 1})

        assert resp.status_code == 200
        data = resp.json()
        assert data["centerEntity"]["id"] == "01234567"
        assert [n["id"] for n in data["nodes"]] == ["company_01234567", "director_a1_01234567"]
        assert data["edges"][0]["isActive"] is True

    async def test_unknown_company_is_404(self, client):
        resp = await client.get("/api/v1/network/company/99999999")
        assert resp.status_code == 404
        assert resp.json()["code"] == "E1002"

    async def test_negative_depth_is_400(self, client, registry):
        resp = await client.get("/api/v1/network/company/01234567", params={"depth": -1})
        assert resp.status_code == 400
        assert registry.calls == []

    async def test_unhandled_error_is_generic_500(self, client):
        class Broken:
            def compute(self, *args, **kwargs):
                raise RuntimeError("secret internals")

        app.dependency_overrides[get_graph_calculator] = lambda: Broken()
        resp = await client.post("/api/v1/network/graph", json={"nodes": [], "edges": []})

        assert resp.status_code == 500
        data = resp.json()
        assert data["error"] == GENERIC_MESSAGE
        assert data["error_id"]
        assert "secret internals" not in resp.text


@pytest.mark.asyncio
class TestTimeline:

    async def test_supplied_records(self, client):
        body = {
            "entityType": "company",
            "entityId": "01234567",
            "startDate": "2023-06-01T00:00:00Z",
            "endDate": "2024-06-01T00:00:00Z",
            "filings": [
                {"transaction_id": "old", "date": "2023-01-01", "category": "accounts"},
                {"transaction_id": "new", "date": "2024-01-01", "category": "accounts"},
            ],
        }
        resp = await client.post("/api/v1/network/timeline", json=body)

        assert resp.status_code == 200
        data = resp.json()
        assert [e["id"] for e in data["events"]] == ["filing-new"]
        assert data["stats"]["totalEvents"] == 1
        assert data["stats"]["eventsByType"] == {"filing": 1}

    async def test_supplied_director_records(self, client):
        body = {
            "entityType": "director",
            "entityId": "off-1",
            "startDate": "2015-01-01T00:00:00Z",
            "endDate": "2024-06-01T00:00:00Z",
            "personName": "Jane Smith",
            "officers": [
                {"name": "SMITH, Jane", "appointed_on": "2020-01-01", "company_name": "Alpha Ltd"},
            ],
        }
        resp = await client.post("/api/v1/network/timeline", json=body)

        assert resp.status_code == 200
        events = resp.json()["events"]
        assert [e["title"] for e in events] == ["Appointed at Alpha Ltd"]
        assert events[0]["category"] == "Career Events"

    async def test_supplied_unknown_entity_type_is_400(self, client):
        resp = await client.post(
            "/api/v1/network/timeline", json={"entityType": "vessel", "entityId": "x"},
        )
        assert resp.status_code == 400

    async def test_start_after_end_is_400(self, client):
        body = {
            "entityType": "company",
            "entityId": "01234567",
            "startDate": "2024-06-01T00:00:00Z",
            "endDate": "2023-06-01T00:00:00Z",
        }
        resp = await client.post("/api/v1/network/timeline", json=body)
        assert resp.status_code == 400

    async def test_registry_timeline(self, client, registry):
        registry.profiles["01234567"] = make_profile(created=date(2018, 4, 1))
        registry.filings["01234567"] = [Filing(transaction_id="t1", date=date(2023, 2, 1))]

        resp = await client.get(
            "/api/v1/network/timeline",
            params={"entityType": "company", "entityId": "01234567"},
        )

        assert resp.status_code == 200
        titles = [e["title"] for e in resp.json()["events"]]
        assert titles == ["Company Filing", "Company Incorporated"]

    async def test_director_is_person(self, client, registry):
        registry.appointments["off-1"] = ("Jane SMITH", [
            make_officer(company_number="11111111", company_name="Alpha Ltd", appointed=date(2020, 1, 1)),
        ])
        resp = await client.get(
            "/api/v1/network/timeline",
            params={"entityType": "director", "entityId": "off-1"},
        )
        assert resp.status_code == 200
        assert resp.json()["events"][0]["title"] == "Appointed at Alpha Ltd"

    @pytest.mark.parametrize("params", [
        {},
        {"entityType": "company"},
        {"entityId": "01234567"},
        {"entityType": "company", "entityId": "  "},
    ])
    async def test_missing_parameters_are_400(self, client, registry, params):
        resp = await client.get("/api/v1/network/timeline", params=params)
        assert resp.status_code == 400
        assert resp.json()["error"] == "EntityType and entityId are required"
        assert registry.calls == []

    async def test_unsupported_entity_type_is_400(self, client, registry):
        resp = await client.get(
            "/api/v1/network/timeline",
            params={"entityType": "vessel", "entityId": "x"},
        )
        assert resp.status_code == 400
        assert registry.calls == []

    async def test_malformed_date_is_400(self, client):
        resp = await client.get(
            "/api/v1/network/timeline",
            params={"entityType": "company", "entityId": "01234567", "startDate": "not-a-date"},
        )
        assert resp.status_code == 400
