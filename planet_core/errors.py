"""
Exception taxonomy for the Planet path planner.

- GeometryError / InvalidPolygonError: configuration errors and undefined
  geometric queries (e.g. angular extrema from inside a polygon)
- WorkerError: a pool worker's search pass raised

An unreachable goal is NOT an error; it is an empty path.
"""

from typing import Optional


class PlanetError(Exception):
    """Base class for all planner errors."""


class GeometryError(PlanetError, ValueError):
    """Raised when a geometric query is undefined for its inputs."""


class InvalidPolygonError(GeometryError):
    """Raised when a polygon cannot be used as an obstacle."""
    def __init__(self, message: str, index: Optional[int] = None):
        self.index = index
        if index is not None:
            message = f"polygon {index}: {message}"
        super().__init__(message)


class WorkerError(PlanetError, RuntimeError):
    """Raised by the query thread when a worker's search pass failed."""
    def __init__(self, worker_name: str, original: BaseException):
        self.worker_name = worker_name
        self.original = original
        super().__init__(
            f"Worker {worker_name} failed during search: "
            f"{type(original).__name__}: {original}"
        )
