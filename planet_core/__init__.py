"""
Planet Core - Concurrent shortest-path planning around convex obstacles

A* over a lazily built visibility graph, expanded by a resizable pool of
worker threads plus the calling thread.

Key exports:
- Solver: find_path() plus pool scaling (add_worker / remove_worker)
- Polygon: immutable convex obstacle
- geometry predicates used for occlusion and containment
"""
from .astar import Node, QueryStats, Solver
from .config import Settings, load_settings
from .errors import GeometryError, InvalidPolygonError, PlanetError, WorkerError
from .geometry import (
    Point,
    Polygon,
    angular_extrema,
    boundary_edge,
    point_in_any_polygon,
    point_in_polygon,
    segment_intersects_any_polygon,
    segments_intersect,
)

__all__ = [
    'Solver', 'Node', 'QueryStats',
    'Settings', 'load_settings',
    'PlanetError', 'GeometryError', 'InvalidPolygonError', 'WorkerError',
    'Point', 'Polygon',
    'angular_extrema', 'boundary_edge', 'point_in_any_polygon', 'point_in_polygon',
    'segment_intersects_any_polygon', 'segments_intersect',
]
