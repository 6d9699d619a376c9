"""
Tests for the HTTP API.
"""

import inspect
import itertools

import pytest
from fastapi.testclient import TestClient

from py_fourcolor.api import main
from py_fourcolor.api.main import app


def square(region_id, x, y, size=10.0, color=None):
    return {
        "id": region_id,
        "polygon": [[x, y], [x + size, y], [x + size, y + size], [x, y + size]],
        "color": color,
    }


def placeholder_regions(count):
    """Regions whose geometry is irrelevant because neighbors are supplied."""
    return [{"id": i, "polygon": [[0, 0], [1, 0], [0, 1]]} for i in range(count)]


def neighbor_lists(count, pairs):
    neighbors = {str(i): [] for i in range(count)}
    for a, b in pairs:
        neighbors[str(a)].append(b)
        neighbors[str(b)].append(a)
    return neighbors


class TestServiceEndpoints:
    """Test root and health endpoints."""

    def setup_method(self):
        """Set up test client."""
        self.client = TestClient(app)

    def test_root(self):
        response = self.client.get("/")
        assert response.status_code == 200
        assert response.json()["docs"] == "/docs"

    def test_health(self):
        response = self.client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.parametrize("handler", [
        "generate_map", "adjacency", "conflicts", "par", "solve", "snap", "check",
    ])
    def test_compute_handlers_run_in_threadpool(self, handler):
        """Test that geometry and solver endpoints are sync so they run off the event loop."""
        assert not inspect.iscoroutinefunction(getattr(main, handler))


class TestGenerateEndpoint:
    """Test the /maps/generate endpoint."""

    def setup_method(self):
        self.client = TestClient(app)

    def test_generate(self):
        response = self.client.post("/maps/generate", json={"seed": "api", "region_count": 20})
        assert response.status_code == 200
        data = response.json()

        assert data["seed"] == "api"
        assert data["palette_size"] == 4
        assert 0 <= data["target_color"] < 4
        assert 0 < len(data["map"]["regions"]) <= 20
        assert 0 <= data["par_value"] <= len(data["map"]["regions"])

        neighbors = data["map"]["neighbors"]
        for rid, nbrs in neighbors.items():
            for other in nbrs:
                assert int(rid) in neighbors[str(other)]

    def test_generate_reproducible(self):
        first = self.client.post("/maps/generate", json={"seed": "repeat"}).json()
        second = self.client.post("/maps/generate", json={"seed": "repeat"}).json()
        assert first == second

    def test_generate_without_seed(self):
        response = self.client.post("/maps/generate", json={})
        assert response.status_code == 200
        assert response.json()["seed"]

    def test_unknown_adjacency_mode(self):
        response = self.client.post("/maps/generate", json={"seed": "x", "adjacency_mode": "magic"})
        assert response.status_code == 400

    def test_invalid_region_count(self):
        response = self.client.post("/maps/generate", json={"region_count": 0})
        assert response.status_code == 422


class TestGraphEndpoints:
    """Test adjacency, conflicts, par and solve endpoints."""

    def setup_method(self):
        self.client = TestClient(app)

    def test_adjacency(self):
        response = self.client.post("/maps/adjacency", json={"regions": [square(0, 0, 0), square(1, 10, 0)]})
        assert response.status_code == 200
        data = response.json()

        assert data["neighbors"] == {"0": [1], "1": [0]}
        assert data["edges"] == [{"a": 0, "b": 1, "shared_length": 10.0}]

    def test_duplicate_ids(self):
        response = self.client.post("/maps/adjacency", json={"regions": [square(0, 0, 0), square(0, 10, 0)]})
        assert response.status_code == 400

    def test_conflicts_from_geometry(self):
        regions = [square(0, 0, 0, color=2), square(1, 10, 0, color=2), square(2, 50, 50, color=2)]
        response = self.client.post("/maps/conflicts", json={"regions": regions})
        assert response.status_code == 200
        assert response.json()["conflicts"] == [[0, 1]]

    def test_conflicts_rejects_unknown_neighbor(self):
        payload = {"regions": placeholder_regions(2), "neighbors": {"0": [5]}}
        response = self.client.post("/maps/conflicts", json=payload)
        assert response.status_code == 400

    def test_par(self):
        payload = {"regions": [square(0, 0, 0), square(1, 10, 0)], "target_color": 0, "seed": "par"}
        response = self.client.post("/maps/par", json=payload)
        assert response.status_code == 200
        assert response.json() == {"par_value": 0, "iterations": 60}

    def test_par_target_outside_palette(self):
        payload = {"regions": [square(0, 0, 0)], "target_color": 4}
        assert self.client.post("/maps/par", json=payload).status_code == 400

    def test_solve_cycle(self):
        payload = {
            "regions": placeholder_regions(5),
            "neighbors": neighbor_lists(5, [(i, (i + 1) % 5) for i in range(5)]),
            "palette_size": 3,
        }
        response = self.client.post("/maps/solve", json=payload)
        assert response.status_code == 200
        data = response.json()

        assert data["success"]
        assert data["failure"] is None
        assert len(data["coloring"]) == 5

    @pytest.mark.parametrize("node_budget,failure", [(None, "infeasible"), (2, "budget_exhausted")])
    def test_solve_complete_graph(self, node_budget, failure):
        payload = {
            "regions": placeholder_regions(5),
            "neighbors": neighbor_lists(5, itertools.combinations(range(5), 2)),
            "node_budget": node_budget,
        }
        response = self.client.post("/maps/solve", json=payload)
        assert response.status_code == 200
        data = response.json()

        assert not data["success"]
        assert data["failure"] == failure
        assert data["coloring"] == {}


class TestSnapEndpoint:
    """Test the /maps/snap endpoint."""

    def setup_method(self):
        self.client = TestClient(app)

    def test_accepted(self):
        payload = {
            "width": 900,
            "height": 620,
            "points": [[100, 100], [200, 100], [200, 200], [100, 200], [100, 100]],
        }
        response = self.client.post("/maps/snap", json=payload)
        assert response.status_code == 200
        data = response.json()

        assert data["accepted"]
        assert data["area"] == pytest.approx(10000.0)
        assert [r["id"] for r in data["map"]["regions"]] == [0]
        assert data["map"]["next_region_id"] == 1

    def test_new_region_joins_existing(self):
        payload = {
            "width": 900,
            "height": 620,
            "regions": [square(0, 100, 100, size=100)],
            "points": [[200, 150], [260, 150], [260, 60], [150, 60], [150, 100]],
            "snap_threshold": 10,
        }
        data = self.client.post("/maps/snap", json=payload).json()

        assert data["accepted"]
        assert data["map"]["neighbors"] == {"0": [1], "1": [0]}

    @pytest.mark.parametrize("points,reason", [
        ([[0, 0], [1, 1]], "too_few_points"),
        ([[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]], "region_too_small"),
        ([[0, 0], [50, 0], [100, 0]], "no_valid_closure"),
    ])
    def test_rejections(self, points, reason):
        response = self.client.post("/maps/snap", json={"width": 900, "height": 620, "points": points})
        assert response.status_code == 200
        data = response.json()

        assert not data["accepted"]
        assert data["rejection"] == reason
        assert data["map"] is None


class TestCheckEndpoint:
    """Test the /maps/check endpoint."""

    def setup_method(self):
        self.client = TestClient(app)

    def test_solved(self):
        payload = {
            "regions": [square(0, 0, 0, color=1), square(1, 10, 0, color=2)],
            "target_color": 0,
            "par_value": 0,
        }
        data = self.client.post("/maps/check", json=payload).json()

        assert data["status"] == "solved"
        assert data["beat_par"]

    def test_conflicts(self):
        payload = {
            "regions": [square(0, 0, 0, color=1), square(1, 10, 0, color=1)],
            "target_color": 0,
            "par_value": 0,
        }
        data = self.client.post("/maps/check", json=payload).json()

        assert data["status"] == "conflicts"
        assert data["conflicts"] == [[0, 1]]
        assert not data["beat_par"]

    def test_color_outside_palette(self):
        payload = {"regions": [square(0, 0, 0, color=5)], "target_color": 0, "par_value": 0}
        assert self.client.post("/maps/check", json=payload).status_code == 400

    def test_negative_color(self):
        payload = {"regions": [square(0, 0, 0, color=-1)], "target_color": 0, "par_value": 0}
        assert self.client.post("/maps/check", json=payload).status_code == 422

    def test_target_outside_palette(self):
        payload = {
            "regions": [square(0, 0, 0, color=1), square(1, 10, 0, color=2)],
            "target_color": 4,
            "par_value": 0,
        }
        response = self.client.post("/maps/check", json=payload)
        assert response.status_code == 400
        assert response.json()["detail"] == "target_color outside palette"
