"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeBackend

from cinema_api import storage
from cinema_api.errors import InvalidUnitError
from cinema_api.main import app
from cinema_api.routes import get_controller

HEADERS = {"X-User-Id": "user-1"}


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(make_controller, backend):
    """Create a test client backed by the in-memory credit store."""
    controller = make_controller(backend, store=storage)
    app.dependency_overrides[get_controller] = lambda: controller
    yield TestClient(app)
    app.dependency_overrides.clear()
    controller.orchestrator.shutdown()


def _series_body(count=5, estimate_only=False):
    return {
        "project_id": "project-1",
        "type": "series",
        "estimate_only": estimate_only,
        "series_config": {
            "title": "The Lighthouse",
            "synopsis": "A keeper guards a light on a haunted coast.",
            "episode_duration_cap_seconds": 60,
            "episodes": [
                {"episode_number": i, "title": f"Chapter {i}", "synopsis": "Storm."}
                for i in range(1, count + 1)
            ],
        },
        "settings": {"visual_style": "noir", "aspect_ratio": "21:9"},
    }


def test_estimate_only(client, backend):
    """Test the estimate-only path."""
    response = client.post("/produce-batch", json=_series_body(estimate_only=True), headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["estimated_credits"] == 885
    assert backend.calls == []


def test_produce_series(client):
    """Test a full series production and its stored record."""
    storage.grant_credits("user-1", 1000)

    response = client.post("/produce-batch", json=_series_body(), headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert len(data["videos"]) == 5
    assert data["total_credits_used"] == 885
    assert data["credits_remaining"] == 115
    assert data["progress"]["failed_units"] == 0

    production = client.get(f"/productions/{data['production_id']}", headers=HEADERS)
    assert production.status_code == 200
    assert production.json()["videos"] == data["videos"]

    other = client.get(f"/productions/{data['production_id']}", headers={"X-User-Id": "user-2"})
    assert other.status_code == 404

    credits = client.get("/credits", headers=HEADERS)
    assert credits.json() == {"user_id": "user-1", "credits_remaining": 115}


def test_validation_error(client):
    """Test that a 13-episode series is a 400."""
    response = client.post("/produce-batch", json=_series_body(count=13), headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["detail"]["field"] == "episodes"


def test_payment_required(client, backend):
    """Test that a short balance is a 402 with the estimate."""
    storage.grant_credits("user-1", 100)

    response = client.post("/produce-batch", json=_series_body(), headers=HEADERS)

    assert response.status_code == 402
    assert response.json()["detail"]["estimated_credits"] == 885
    assert backend.calls == []


def test_all_units_failed_keeps_result_shape(client, backend):
    """Test that a total failure still returns the full result."""
    storage.grant_credits("user-1", 1000)
    backend.script.update({f"episode-{i}": InvalidUnitError("nope") for i in range(1, 3)})

    response = client.post("/produce-batch", json=_series_body(count=2), headers=HEADERS)

    assert response.status_code == 500
    data = response.json()
    assert data["success"] is False
    assert data["videos"] == []
    assert data["progress"]["failed_units"] == 2
    assert storage.get_balance("user-1") == 1000


def test_ledger_down_at_preflight(client):
    """Test that an unreachable store before generation is a 503."""
    storage.set_available(False)

    response = client.post("/produce-batch", json=_series_body(), headers=HEADERS)

    assert response.status_code == 503


def test_missing_config(client):
    """Test that the config matching the type is required."""
    body = _series_body()
    body["type"] = "movie"

    response = client.post("/produce-batch", json=body, headers=HEADERS)

    assert response.status_code == 400
    assert "movie_config" in response.json()["detail"]


def test_user_header_required(client):
    """Test that requests without a user id are refused."""
    response = client.post("/produce-batch", json=_series_body(estimate_only=True))
    assert response.status_code == 422


def test_reconcile_endpoint(client):
    """Test replaying deferred deductions over HTTP."""
    response = client.post("/credits/reconcile")

    assert response.status_code == 200
    assert response.json() == {"settled": [], "pending": 0}


def test_health(client):
    """Test the health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
