"""
Pytest configuration and fixtures for Planet tests.

Fixtures provide common test data and setup for:
- Worlds (convex polygon obstacle sets)
- Solvers with explicit settings and pool sizes
- API test client
"""

import math
import os
import sys
from pathlib import Path

import pytest

# Ensure project root is in path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Set PYTHONPATH for subprocesses
os.environ["PYTHONPATH"] = str(PROJECT_ROOT)


# =============================================================================
# World Fixtures
# =============================================================================

SQUARE = [(0.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 2.0)]

# Shortest path around SQUARE from (-1, 1) to (3, 1), over either side
SQUARE_DETOUR_LENGTH = 2.0 + 2.0 * math.sqrt(2.0)

# Shortest path around TWO_SQUARES from (-1, 1) to (7, 1):
# (-1,1) -> (0,0) -> (4,-1) -> (6,-1) -> (7,1), or its mirror over the top
TWO_SQUARES_DETOUR_LENGTH = math.sqrt(2.0) + math.sqrt(17.0) + 2.0 + math.sqrt(5.0)


@pytest.fixture
def square_world():
    """One 2x2 square obstacle at the origin."""
    return [list(SQUARE)]


@pytest.fixture
def two_squares_world():
    """The 2x2 square plus a taller block to its right."""
    return [
        list(SQUARE),
        [(4.0, -1.0), (6.0, -1.0), (6.0, 3.0), (4.0, 3.0)],
    ]


@pytest.fixture
def scattered_world():
    """Several disjoint convex obstacles of different shapes."""
    return [
        [(1.0, -1.0), (3.0, -1.0), (3.0, 2.0), (1.0, 2.0)],
        [(4.0, 0.2), (6.0, 0.7), (5.5, 3.0)],
        [(2.0, 3.0), (4.0, 3.4), (3.1, 5.0)],
        [(6.5, -2.0), (8.0, -1.5), (8.3, 0.5), (7.0, 1.0), (6.2, -0.5)],
        [(-1.0, 2.5), (0.5, 2.6), (0.0, 4.0)],
    ]


def grid_world(columns: int = 5, rows: int = 5):
    """Unit squares on a staggered grid with spacing 2."""
    world = []
    for j in range(rows):
        for i in range(columns):
            x = 2.0 * i + (0.5 if j % 2 else 0.0)
            y = 2.0 * j
            world.append([(x, y), (x + 1.0, y), (x + 1.0, y + 1.0), (x, y + 1.0)])
    return world


# =============================================================================
# Solver Fixtures
# =============================================================================

@pytest.fixture
def settings():
    """Settings independent of the test process environment."""
    from planet_core import Settings
    return Settings()


@pytest.fixture
def make_solver(settings):
    """Factory for solvers that are closed at teardown."""
    from planet_core import Solver

    created = []

    def _make(workers: int = 0, **kwargs):
        solver = Solver(workers=workers, settings=settings, **kwargs)
        created.append(solver)
        return solver

    yield _make

    for solver in created:
        solver.close()


@pytest.fixture
def solver(make_solver):
    """Solver with two pool workers (three threads per query)."""
    return make_solver(workers=2)


# =============================================================================
# API Test Fixtures
# =============================================================================

@pytest.fixture
def test_client(solver):
    """FastAPI test client around the solver fixture."""
    from fastapi.testclient import TestClient
    from server.main import create_app

    with TestClient(create_app(solver)) as client:
        yield client


# =============================================================================
# Helpers
# =============================================================================

def length_of(path):
    """Path length summed in path order."""
    from planet_core.geometry import path_length
    return path_length(path)
