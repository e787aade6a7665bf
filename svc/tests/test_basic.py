import time

import pytest
from fastapi.testclient import TestClient

from main import create_app
from sunlightmeter.sensors.simulated_bus import SimulatedTSL2591Bus
from sunlightmeter.sensors.tsl2591 import probe_tsl2591
from sunlightmeter.service import MeterService


def wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    db_file = tmp_path / "test_sunlight.db"
    monkeypatch.setattr("sunlightmeter.state.DB_FILE", str(db_file))
    return str(db_file)


@pytest.fixture
def client(temp_db):
    device = probe_tsl2591(SimulatedTSL2591Bus(), settle_step_s=0.0)
    service = MeterService(device, mode="sim", interval_s=0.01, max_duration_s=60.0)
    with TestClient(create_app(service)) as c:
        yield c


@pytest.fixture
def absent_client(temp_db):
    with TestClient(create_app(MeterService(None, mode="real"))) as c:
        yield c


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    # Verify we're running in simulator mode for tests
    assert r.json()["mode"] == "sim"


def test_service_id(client):
    r = client.get("/id")
    assert r.status_code == 200
    assert r.json() == {"service_name": "Sunlight Meter"}


def test_status_before_start(client):
    r = client.get("/api/v1/status")
    assert r.status_code == 200
    body = r.json()
    assert body["connected"] is True
    assert body["enabled"] is False
    assert body["gain"] == "Low gain (1x)"
    assert body["integration_ms"] == 300
    assert body["job"] is None


def test_start_record_and_stop(client):
    r = client.post("/api/v1/start")
    assert r.status_code == 200
    job_id = r.json()["job_id"]

    # Second start is rejected and the running job is unchanged
    r2 = client.post("/api/v1/start")
    assert r2.status_code == 409
    status = client.get("/api/v1/status").json()
    assert status["enabled"] is True
    assert status["job"]["id"] == job_id
    assert status["job"]["status"] == "running"

    # Readings reach the database tagged with the job id
    assert wait_for(lambda: client.get("/api/v1/current-conditions").status_code == 200)
    latest = client.get("/api/v1/current-conditions").json()
    assert latest["job_id"] == job_id
    assert latest["lux"] > 0

    rows = client.get("/api/v1/samples", params={"job_id": job_id}).json()
    assert len(rows) >= 1
    assert all(row["job_id"] == job_id for row in rows)

    r3 = client.post("/api/v1/stop")
    assert r3.status_code == 200
    assert r3.json()["message"] == "Sunlight Reading Stopped"

    r4 = client.post("/api/v1/stop")
    assert r4.status_code == 409


def test_stop_without_job(client):
    r = client.post("/api/v1/stop")
    assert r.status_code == 409


def test_current_conditions_empty(client):
    r = client.get("/api/v1/current-conditions")
    assert r.status_code == 404


def test_conditions_without_data(client):
    r = client.get("/api/v1/conditions")
    assert r.status_code == 200
    assert r.json()["light_condition"] == "No Data in Range"


def test_conditions_rejects_inverted_range(client):
    r = client.get(
        "/api/v1/conditions",
        params={"start": "2024-03-04T00:00:00", "end": "2024-03-03T00:00:00"},
    )
    assert r.status_code == 400


def test_export_database(client):
    r = client.get("/api/v1/export")
    assert r.status_code == 200
    assert r.content.startswith(b"SQLite format 3")


def test_missing_sensor(absent_client):
    assert absent_client.post("/api/v1/start").status_code == 503
    assert absent_client.post("/api/v1/stop").status_code == 503
    body = absent_client.get("/api/v1/status").json()
    assert body["connected"] is False
    assert body["job"] is None


def test_samples_filtered_by_date(client):
    assert client.post("/api/v1/start").status_code == 200
    assert wait_for(lambda: client.get("/api/v1/current-conditions").status_code == 200)
    client.post("/api/v1/stop")

    assert len(client.get("/api/v1/samples", params={"start": "2000-01-01T00:00:00"}).json()) >= 1
    assert client.get("/api/v1/samples", params={"end": "2000-01-01T00:00:00"}).json() == []

    r = client.get(
        "/api/v1/samples",
        params={"start": "2024-03-04T00:00:00", "end": "2024-03-03T00:00:00"},
    )
    assert r.status_code == 400
