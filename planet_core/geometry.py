"""
Geometry predicates for convex polygon obstacles.

All intersection tests use the separating axis theorem: two convex shapes do
not overlap if some axis exists onto which their projections are disjoint,
and it is sufficient to test the normals of their edges. Each Polygon
precomputes its unit edge normals and its projection range on each of them,
so a query only projects the other shape.

Everything here is read-only over immutable inputs and therefore safe to call
from any number of search threads at once.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Dict, Iterable, Optional, Sequence, Tuple

import numpy as np

from .config import DEFAULT_EPSILON
from .errors import GeometryError, InvalidPolygonError

Point = Tuple[float, float]
Segment = Tuple[Point, Point]


# ---------- Basic Geometry Utilities ----------

def as_point(p: Sequence[float]) -> Point:
    """Normalize any (x, y) pair to a tuple of Python floats."""
    x, y = p
    return (float(x), float(y))


def distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points."""
    return math.hypot(b[0] - a[0], b[1] - a[1])


def path_length(path: Sequence[Point]) -> float:
    """Sum of segment lengths, accumulated in path order."""
    total = 0.0
    for i in range(len(path) - 1):
        total += distance(path[i], path[i + 1])
    return total


class RotationalDirection(Enum):
    """Rotational direction of an angle ABC."""
    CLOCKWISE = 1
    STRAIGHT = 0
    COUNTERCLOCKWISE = -1
    UNDEFINED = 0x80


def _cross_z(u: Point, v: Point) -> float:
    """Z component of u x v for vectors in the plane."""
    return u[0] * v[1] - u[1] * v[0]


def direction_of_angle(a: Point, b: Point, c: Point) -> RotationalDirection:
    """
    Rotational direction of the angle ABC.

    The sign convention matches screen space (y grows downward), so a positive
    cross product is CLOCKWISE.
    """
    z = _cross_z((b[0] - a[0], b[1] - a[1]), (c[0] - b[0], c[1] - b[1]))
    if z > 0:
        return RotationalDirection.CLOCKWISE
    if z == 0:
        return RotationalDirection.STRAIGHT
    if z < 0:
        return RotationalDirection.COUNTERCLOCKWISE
    return RotationalDirection.UNDEFINED


# ---------- Polygon ----------

class Polygon:
    """
    Immutable convex obstacle.

    Vertices are kept exactly as given (converted to float tuples) so that a
    search position copied from a vertex compares equal to it. Convexity and
    winding are not checked.
    """

    __slots__ = ("vertices", "bounds", "_array", "_normals", "_offsets", "_min", "_max", "_index")

    def __init__(self, vertices: Iterable[Sequence[float]], index: Optional[int] = None):
        try:
            points = tuple(as_point(v) for v in vertices)
        except (TypeError, ValueError) as e:
            raise InvalidPolygonError(f"vertices must be (x, y) pairs: {e}", index) from e

        if len(points) < 3:
            raise InvalidPolygonError(
                f"a polygon needs at least 3 vertices, got {len(points)}", index
            )

        array = np.asarray(points, dtype=float)
        if not np.all(np.isfinite(array)):
            raise InvalidPolygonError("vertex coordinates must be finite", index)

        edges = np.roll(array, -1, axis=0) - array
        lengths = np.hypot(edges[:, 0], edges[:, 1])
        if np.any(lengths == 0.0):
            raise InvalidPolygonError("polygon has a zero-length edge", index)

        # Counter-clockwise normal of each edge (vertex i -> vertex i+1)
        normals = np.column_stack((-edges[:, 1], edges[:, 0])) / lengths[:, None]
        projections = array @ normals.T

        self.vertices: Tuple[Point, ...] = points
        lo = array.min(axis=0)
        hi = array.max(axis=0)
        self.bounds: Tuple[float, float, float, float] = (
            float(lo[0]), float(lo[1]), float(hi[0]), float(hi[1])
        )
        self._array = array
        self._normals = normals
        # Each edge's supporting line, as an offset along its own normal
        self._offsets = np.einsum("ij,ij->i", array, normals)
        self._min = projections.min(axis=0)
        self._max = projections.max(axis=0)
        self._index: Dict[Point, int] = {p: i for i, p in enumerate(points)}

    def __len__(self) -> int:
        return len(self.vertices)

    def __iter__(self):
        return iter(self.vertices)

    def __repr__(self) -> str:
        return f"Polygon({list(self.vertices)!r})"

    def index_of(self, point: Point) -> Optional[int]:
        """Index of the vertex exactly equal to point, or None."""
        return self._index.get(point)

    def neighbours(self, i: int) -> Tuple[Point, Point]:
        """The two ring-adjacent vertices of vertex i (wrapping at the ends)."""
        n = len(self.vertices)
        return self.vertices[i - 1], self.vertices[(i + 1) % n]

    def edge(self, i: int) -> Segment:
        """The edge from vertex i to vertex i+1 (wrapping at the end)."""
        return self.vertices[i], self.vertices[(i + 1) % len(self.vertices)]


def as_polygon(obj, index: Optional[int] = None) -> Polygon:
    """Return obj as a Polygon, building one from a vertex sequence if needed."""
    if isinstance(obj, Polygon):
        return obj
    return Polygon(obj, index)


# ---------- Predicates ----------

def segments_intersect(lhs: Segment, rhs: Segment) -> bool:
    """
    Exact test of whether two line segments intersect.

    Each segment is projected onto the other's normal, translated so the other
    segment maps onto 0; they intersect when both projected ranges straddle 0.
    """
    def _straddles(to_project: Segment, normal_of: Segment) -> bool:
        (ax, ay), (bx, by) = to_project
        (nax, nay), (nbx, nby) = normal_of
        nx, ny = -(nay - nby), nax - nbx
        projected_a = (ax - nbx) * nx + (ay - nby) * ny
        projected_b = (bx - nbx) * nx + (by - nby) * ny
        return math.copysign(1.0, projected_a) != math.copysign(1.0, projected_b)

    return _straddles(lhs, rhs) and _straddles(rhs, lhs)


def point_in_polygon(polygon: Polygon, point: Point) -> bool:
    """Whether point lies within polygon, boundary included."""
    projections = polygon._normals @ np.asarray(point, dtype=float)
    return bool(np.all((polygon._min <= projections) & (projections <= polygon._max)))


def point_in_any_polygon(world: Sequence[Polygon], point: Point) -> Optional[Polygon]:
    """The first polygon in world containing point, or None."""
    for polygon in world:
        if point_in_polygon(polygon, point):
            return polygon
    return None


def boundary_edge(
    polygon: Polygon, point: Point, epsilon: float = DEFAULT_EPSILON
) -> Optional[int]:
    """
    Index i of the edge (vertex i to vertex i+1) that point lies on.

    Points within epsilon of an edge count as on it. At a vertex, one of its
    two edges is returned.

    Returns:
        Edge index, or None when point is off the boundary
    """
    x, y = point
    min_x, min_y, max_x, max_y = polygon.bounds
    if x < min_x - epsilon or x > max_x + epsilon or y < min_y - epsilon or y > max_y + epsilon:
        return None

    projections = polygon._normals @ np.asarray(point, dtype=float)
    if np.any(projections < polygon._min - epsilon) or np.any(projections > polygon._max + epsilon):
        return None

    offsets = np.abs(projections - polygon._offsets)
    i = int(np.argmin(offsets))
    return i if offsets[i] <= epsilon else None


def polygon_intersects_segment(
    polygon: Polygon, segment: Segment, epsilon: float = DEFAULT_EPSILON
) -> bool:
    """
    Whether segment passes through the interior of polygon.

    Overlaps thinner than epsilon on any axis count as separated, so a
    segment that grazes a vertex or runs along an edge is clear. A zero-length
    segment never intersects.
    """
    # Strictly disjoint bounding boxes are separated on an axis the full test would also find
    (ax, ay), (bx, by) = segment
    min_x, min_y, max_x, max_y = polygon.bounds
    if max(ax, bx) < min_x or min(ax, bx) > max_x or max(ay, by) < min_y or min(ay, by) > max_y:
        return False

    a = np.array((ax, ay), dtype=float)
    b = np.array((bx, by), dtype=float)
    d = a - b
    length = math.hypot(d[0], d[1])
    if length == 0.0:
        return False

    # The segment's own normal: does the polygon straddle the line?
    normal = np.array((-d[1], d[0])) / length
    projected = polygon._array @ normal
    line_mapping = float(b @ normal)
    if projected.min() > line_mapping - epsilon or line_mapping + epsilon > projected.max():
        return False

    # Every edge normal of the polygon
    pa = polygon._normals @ a
    pb = polygon._normals @ b
    line_min = np.minimum(pa, pb)
    line_max = np.maximum(pa, pb)
    separated = (polygon._min > line_max - epsilon) | (line_min + epsilon > polygon._max)
    return not bool(separated.any())


def segment_intersects_any_polygon(
    world: Sequence[Polygon], segment: Segment, epsilon: float = DEFAULT_EPSILON
) -> bool:
    """Occlusion test: whether any polygon in world blocks segment."""
    return any(polygon_intersects_segment(p, segment, epsilon) for p in world)


def angular_extrema(polygon: Polygon, viewpoint: Point) -> Tuple[Point, Point]:
    """
    The two vertices bounding polygon's silhouette as seen from viewpoint.

    Returns:
        (leftmost, rightmost) vertex pair

    Raises:
        GeometryError: viewpoint lies inside polygon, where extrema are undefined
    """
    if point_in_polygon(polygon, viewpoint):
        raise GeometryError(
            f"angular extrema undefined: viewpoint {viewpoint} is inside {polygon!r}"
        )

    def _less(a: Point, b: Point) -> bool:
        return direction_of_angle(a, viewpoint, b) is RotationalDirection.COUNTERCLOCKWISE

    vertices = polygon.vertices
    leftmost = rightmost = vertices[0]
    for v in vertices[1:]:
        if _less(v, leftmost):
            leftmost = v
        if not _less(v, rightmost):
            rightmost = v
    return leftmost, rightmost
