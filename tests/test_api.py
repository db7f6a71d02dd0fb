"""Tests de la API HTTP.

Los schedulers se reemplazan con app.dependency_overrides; el lifespan no
se ejecuta (TestClient sin context manager), así que no hay red.

Ejecutar:
    pytest tests/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient

from conftest import NOW, node, record
from telemetry_api.core.domain import CheckResult, HealthSummary, NodeReportingStatus
from telemetry_api.dependencies import (
    get_app_settings,
    get_status_scheduler,
    get_timeline_scheduler,
)
from telemetry_api.main import app
from telemetry_api.polling import PublishedSnapshot, TimelineSnapshot
from telemetry_api.timeline import process_timeline


class StubScheduler:
    """Expone solo lo que leen los endpoints."""

    def __init__(self, name, snapshot=None):
        self.name = name
        self.snapshot = snapshot

    def stats(self):
        return {"pipeline": self.name, "published": self.snapshot is not None}


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def fleet():
    return [
        node("W001", city="Chicago", phase="Deployed", status=NodeReportingStatus.NOT_REPORTING,
             elapsed_times={"w001.ws-nxcore": 900000.0}),
        node("W002", city="Boulder", phase="Deployed", status=NodeReportingStatus.REPORTING,
             elapsed_times={"w002.ws-nxcore": 1000.0, "w002.ws-rpi": 70000.0},
             health=HealthSummary(details=(
                 CheckResult(timestamp=NOW, name="sys.health.ping", value=1),
                 CheckResult(timestamp=NOW, name="sys.health.disk", value=0),
             ))),
        node("W003", city="Chicago", phase="Maintenance", status=NodeReportingStatus.REPORTING,
             elapsed_times={"w003.ws-nxcore": 10.0}, sensors=["bme680"]),
    ]


@pytest.fixture
def timeline_snapshot(fleet):
    image = "registry.example.org/ns/app-a:1.0"
    rollup = {
        "W001": {image: [record("sys.plugin.records", 2, vsn="W001", plugin=image, ts=NOW)]},
        "W002": {image: [record("sys.plugin.records", 3, vsn="W002", plugin=image, ts=NOW)]},
    }
    return TimelineSnapshot(
        view=process_timeline(rollup, fleet),
        nodes=tuple(fleet),
        start="-7d",
        time="hourly",
    )


@pytest.fixture
def schedulers(fleet, timeline_snapshot):
    return {
        "status": StubScheduler("status", PublishedSnapshot(value=fleet, updated_at=NOW, tick=3)),
        "timeline": StubScheduler("timeline", PublishedSnapshot(value=timeline_snapshot, updated_at=NOW, tick=1)),
    }


@pytest.fixture
def client(schedulers, settings):
    app.dependency_overrides[get_status_scheduler] = lambda: schedulers["status"]
    app.dependency_overrides[get_timeline_scheduler] = lambda: schedulers["timeline"]
    app.dependency_overrides[get_app_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# TEST 1: HEALTH / READY
# =============================================================================

class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_ready(self, client):
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json()["pollers"]["status"]["published"] is True

    def test_not_ready_until_published(self, client, schedulers):
        schedulers["status"].snapshot = None

        assert client.get("/ready").status_code == 503


# =============================================================================
# TEST 2: NODES
# =============================================================================

class TestNodesEndpoint:

    def test_lists_reporting_first(self, client):
        body = client.get("/nodes").json()

        assert body["total"] == 3
        assert body["count"] == 3
        assert body["tick"] == 3
        assert [n["vsn"] for n in body["nodes"]] == ["W002", "W003", "W001"]

    def test_node_payload(self, client):
        body = client.get("/nodes").json()
        w002 = body["nodes"][0]

        assert w002["status"] == "reporting"
        assert w002["elapsed"] == [
            {"host": "w002.ws-nxcore", "elapsed_ms": 1000.0, "level": "ok"},
            {"host": "w002.ws-rpi", "elapsed_ms": 70000.0, "level": "warning"},
        ]
        assert w002["health"] == {"passed": 1, "failed": 1}
        assert w002["sanity"] is None

    def test_facet_params(self, client):
        body = client.get("/nodes", params={"status": '"reporting"', "city": '"Chicago"'}).json()

        assert [n["vsn"] for n in body["nodes"]] == ["W003"]
        assert body["filters"] == {"city": ["Chicago"], "status": ["reporting"]}
        assert body["total"] == 3

    def test_multiple_values_in_one_facet(self, client):
        body = client.get("/nodes", params={"status": '"reporting","not reporting"'}).json()

        assert body["count"] == 3

    def test_query_param(self, client):
        body = client.get("/nodes", params={"query": "boulder"}).json()

        assert [n["vsn"] for n in body["nodes"]] == ["W002"]
        assert body["query"] == "boulder"

    def test_phase_and_show_all(self, client):
        body = client.get("/nodes", params={"phase": "Deployed", "show_all": "false"}).json()

        assert [n["vsn"] for n in body["nodes"]] == ["W002"]

    def test_503_while_not_published(self, client, schedulers):
        schedulers["status"].snapshot = None

        response = client.get("/nodes")

        assert response.status_code == 503

    def test_facet_options(self, client):
        response = client.get("/nodes/options/city")

        assert response.status_code == 200
        assert response.json() == {"field": "city", "options": ["Chicago", "Boulder"]}

    def test_unknown_facet_options(self, client):
        assert client.get("/nodes/options/color").status_code == 404


# =============================================================================
# TEST 3: TIMELINE
# =============================================================================

class TestTimelineEndpoint:

    def test_group_by_nodes(self, client):
        body = client.get("/timeline").json()

        assert body["group"] == "nodes"
        assert sorted(body["series"]) == ["W001", "W002"]
        entry = body["series"]["W002"][0]
        assert entry["value"] == 3
        assert entry["breakdown"] == {"app-a": 3}

    def test_group_by_apps(self, client):
        body = client.get("/timeline", params={"group": "apps"}).json()

        series = body["series"]["registry.example.org/ns/app-a:1.0"]
        assert series[0]["value"] == 5
        assert series[0]["breakdown"] == {"W001": 2, "W002": 3}
        assert body["start"] == "-7d"

    def test_invalid_group(self, client):
        assert client.get("/timeline", params={"group": "hosts"}).status_code == 422
