"""
Integration tests for FastAPI endpoints.

Tests the HTTP API:
- Health and root endpoints
- Path queries
- Worker pool scaling
"""

import math

import pytest

from conftest import SQUARE, SQUARE_DETOUR_LENGTH, length_of


@pytest.fixture
def client(test_client):
    return test_client


@pytest.fixture
def find_path_request_data():
    """Standard find_path request payload."""
    return {
        "world": [[list(p) for p in SQUARE]],
        "start": [-1, 1],
        "goal": [3, 1],
    }


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "planet"
        assert data["parallelism"] == 3

    def test_health_endpoint(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestFindPathEndpoint:
    """Tests for POST /api/find_path."""

    @pytest.mark.integration
    def test_detour(self, client, find_path_request_data):
        response = client.post("/api/find_path", json=find_path_request_data)
        assert response.status_code == 200

        data = response.json()
        assert data["success"] is True
        assert data["reachable"] is True
        assert data["path"][0] == [-1.0, 1.0]
        assert data["path"][-1] == [3.0, 1.0]
        assert data["length"] == pytest.approx(SQUARE_DETOUR_LENGTH, abs=1e-3)
        assert data["parallelism"] == 3
        assert data["stats"]["expanded"] >= 1

    @pytest.mark.integration
    def test_direct_path(self, client):
        response = client.post("/api/find_path", json={"start": [0, 0], "goal": [3, 4]})
        assert response.status_code == 200

        data = response.json()
        assert data["path"] == [[0.0, 0.0], [3.0, 4.0]]
        assert data["length"] == pytest.approx(5.0)

    @pytest.mark.integration
    def test_unreachable_goal(self, client, find_path_request_data):
        find_path_request_data["goal"] = [1, 1]
        response = client.post("/api/find_path", json=find_path_request_data)
        assert response.status_code == 200

        data = response.json()
        assert data["success"] is True
        assert data["reachable"] is False
        assert data["path"] == []
        assert data["length"] is None

    @pytest.mark.integration
    def test_invalid_polygon(self, client, find_path_request_data):
        find_path_request_data["world"].append([[5, 5], [6, 6]])
        response = client.post("/api/find_path", json=find_path_request_data)
        assert response.status_code == 422

        data = response.json()
        assert data["success"] is False
        assert "at least 3 vertices" in data["error"]

    def test_overlapping_obstacles(self, make_solver):
        from fastapi.testclient import TestClient
        from server.main import create_app

        # A vertex of the square lies inside the block
        world = [
            [list(p) for p in SQUARE],
            [[1.5, -1], [5, -1], [5, 3], [1.5, 3]],
        ]
        with TestClient(create_app(make_solver(workers=0))) as client:
            response = client.post("/api/find_path", json={"world": world, "start": [-1, 1], "goal": [7, 1]})

        assert response.status_code == 422
        data = response.json()
        assert data["success"] is False
        assert "inside" in data["error"]

    @pytest.mark.integration
    def test_length_matches_returned_path(self, client, find_path_request_data):
        data = client.post("/api/find_path", json=find_path_request_data).json()
        assert data["length"] == pytest.approx(length_of([tuple(p) for p in data["path"]]))
        assert data["stats"]["path_length"] == data["length"]

    def test_malformed_request(self, client):
        response = client.post("/api/find_path", json={"start": [0, 0]})
        assert response.status_code == 422


class TestWorkerEndpoints:
    """Tests for pool scaling endpoints."""

    def test_get_workers(self, client):
        response = client.get("/api/workers")
        assert response.status_code == 200
        assert response.json() == {"parallelism": 3, "workers": 2, "changed": None}

    def test_add_and_remove(self, client, find_path_request_data):
        added = client.post("/api/workers/add").json()
        assert added == {"parallelism": 4, "workers": 3, "changed": True}

        removed = client.post("/api/workers/remove").json()
        assert removed == {"parallelism": 3, "workers": 2, "changed": True}

        response = client.post("/api/find_path", json=find_path_request_data)
        assert response.json()["length"] == pytest.approx(2 + 2 * math.sqrt(2), abs=1e-3)

    def test_remove_from_empty_pool(self, client):
        assert client.post("/api/workers/remove").json()["changed"] is True
        assert client.post("/api/workers/remove").json()["changed"] is True

        data = client.post("/api/workers/remove").json()
        assert data == {"parallelism": 1, "workers": 0, "changed": False}


class TestAppLifecycle:
    """Tests for the solver owned by the application."""

    def test_app_creates_and_closes_its_solver(self, monkeypatch):
        from fastapi.testclient import TestClient
        from server.main import create_app

        monkeypatch.setenv("PLANET_WORKERS", "1")
        app = create_app()
        with TestClient(app) as client:
            solver = app.state.solver
            assert client.get("/api/workers").json()["parallelism"] == 2

        assert app.state.solver is None
        assert solver.current_parallelism() == 1
