"""API smoke tests using FastAPI TestClient."""

import pytest
from fastapi.testclient import TestClient

from app.db.session import Base, engine
from app.main import app


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    Base.metadata.drop_all(bind=engine)


def _create_vehicle(client, vehicle_id="TRK-001", **overrides):
    payload = {
        "vehicle_id": vehicle_id,
        "type": "Truck",
        "model": "Actros",
        "capacity": 18000,
        "fuel_type": "diesel",
        "status": "EN_ROUTE",
        "latitude": 52.52,
        "longitude": 13.405,
    }
    payload.update(overrides)
    return client.post("/vehicles", json=payload)


def test_root(client: TestClient):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_health(client: TestClient):
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["simulation_running"] is False


def test_create_and_get_vehicle(client: TestClient):
    r = _create_vehicle(client, fuel_type="Electric")
    assert r.status_code == 200
    data = r.json()
    assert data["vehicle_id"] == "TRK-001"
    assert data["is_electric"] is True
    assert data["status"] == "EN_ROUTE"

    r = client.get("/vehicles/TRK-001")
    assert r.status_code == 200
    assert r.json()["model"] == "Actros"


def test_duplicate_vehicle_rejected(client: TestClient):
    assert _create_vehicle(client).status_code == 200
    assert _create_vehicle(client).status_code == 409


def test_invalid_status_rejected(client: TestClient):
    assert _create_vehicle(client, status="FLYING").status_code == 422


def test_vehicle_not_found(client: TestClient):
    assert client.get("/vehicles/nope").status_code == 404
    assert client.delete("/vehicles/nope").status_code == 404


def test_update_and_filter_by_status(client: TestClient):
    _create_vehicle(client, "A")
    _create_vehicle(client, "B")
    r = client.patch("/vehicles/B", json={"status": "MAINTENANCE"})
    assert r.status_code == 200
    assert r.json()["status"] == "MAINTENANCE"

    r = client.get("/vehicles", params={"status": "MAINTENANCE"})
    assert [v["vehicle_id"] for v in r.json()] == ["B"]


def test_delete_vehicle(client: TestClient):
    _create_vehicle(client)
    r = client.delete("/vehicles/TRK-001")
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert client.get("/vehicles/TRK-001").status_code == 404


def test_manual_tick_produces_telemetry(client: TestClient):
    _create_vehicle(client, "A")
    _create_vehicle(client, "B", status="AVAILABLE")

    assert client.get("/telemetry/vehicle/A/latest").status_code == 404

    r = client.post("/simulation/tick")
    assert r.status_code == 200
    report = r.json()
    assert report["vehicles"] == 2
    assert report["processed"] == 2

    latest = client.get("/telemetry/latest").json()
    assert sorted(s["vehicle_id"] for s in latest) == ["A", "B"]

    a = client.get("/telemetry/vehicle/A/latest").json()
    assert 20 <= a["speed"] <= 80
    assert a["maintenance_status"] in ("HEALTHY", "DUE", "CRITICAL")

    client.post("/simulation/tick")
    history = client.get("/telemetry/vehicle/A").json()
    assert len(history) == 2
    assert history[0]["timestamp"] >= history[1]["timestamp"]

    # Snapshot mirrors the newest sample
    vehicle = client.get("/vehicles/A").json()
    assert vehicle["fuel_level"] == history[0]["fuel_level"]
    assert vehicle["latitude"] == history[0]["latitude"]


def test_reporting_endpoints(client: TestClient):
    _create_vehicle(client, "A")
    client.post("/simulation/tick")

    recent = client.get("/telemetry/recent", params={"hours": 1}).json()
    assert len(recent) == 1

    stats = client.get("/telemetry/maintenance/stats").json()
    assert set(stats) == {"HEALTHY", "DUE", "CRITICAL"}
    assert sum(stats.values()) == 1

    dash = client.get("/telemetry/dashboard/stats").json()
    assert dash["total_vehicles"] == 1
    assert dash["active_vehicles"] == 1
    assert 20 <= dash["average_speed"] <= 80
    assert dash["worst_tier"] in ("HEALTHY", "DUE", "CRITICAL")


def test_simulation_status(client: TestClient):
    r = client.get("/simulation/status")
    assert r.status_code == 200
    data = r.json()
    assert data["running"] is False
    assert data["tick_interval_ms"] == 5000
    assert data["last_report"] is None


def test_websocket_streams_fleet_and_vehicle_topics(client: TestClient):
    _create_vehicle(client, "A")
    _create_vehicle(client, "B")

    with client.websocket_connect("/ws/telemetry") as fleet_ws, \
            client.websocket_connect("/ws/telemetry/B") as b_ws:
        client.post("/simulation/tick")
        fleet_ids = {fleet_ws.receive_json()["vehicle_id"], fleet_ws.receive_json()["vehicle_id"]}
        assert fleet_ids == {"A", "B"}
        assert b_ws.receive_json()["vehicle_id"] == "B"


def test_in_memory_database_runs_one_worker(monkeypatch):
    from app.config import settings
    from app.main import build_scheduler
    from app.services.distributor import TelemetryDistributor

    monkeypatch.setattr(settings, "sim_worker_pool_size", 4)
    scheduler = build_scheduler(TelemetryDistributor())
    try:
        assert scheduler.worker_pool_size == 1
    finally:
        scheduler.close()
