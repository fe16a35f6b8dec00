"""
Concurrent A* over an implicit visibility graph.

The visibility graph is never built up front. Expanding a node only looks at
what can extend a shortest path from its position:

1. the goal, if it is in line of sight
2. for a polygon the position is a vertex of: the two adjacent vertices
   along the boundary (always clear for a convex obstacle)
3. for a polygon the position lies on an edge of (only ever the start):
   the two ends of that edge
4. for every other polygon: its two angular extrema, if in line of sight

The frontier and the discovered set are shared by every thread of the pool
plus the thread issuing the query. Each is behind its own lock, and the best
completed path behind a third. Correctness only relies on the evaluation
function f = g + h being a monotone lower bound and on "replace only if
better" for both the discovered set and the best completed path, so the
returned path LENGTH is optimal regardless of expansion order. Which of
several equally short paths is returned is unspecified.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import Settings, load_settings
from .errors import InvalidPolygonError
from .geometry import (
    Point,
    Polygon,
    angular_extrema,
    as_point,
    as_polygon,
    boundary_edge,
    distance,
    path_length,
    point_in_polygon,
    segment_intersects_any_polygon,
)
from .worker_pool import WorkerPool

logger = logging.getLogger(__name__)


# =============================================================================
# Search Node
# =============================================================================

class Node:
    """
    Immutable path prefix ending at position.

    Every node owns a full copy of its path, so nodes never share mutable
    structure across threads. The length is summed once at construction.
    """

    __slots__ = ("path", "path_length")

    def __init__(self, point: Point, parent_path: Sequence[Point] = (), _length: Optional[float] = None):
        self.path: Tuple[Point, ...] = tuple(parent_path) + (point,)
        self.path_length: float = path_length(self.path) if _length is None else _length

    @property
    def position(self) -> Point:
        return self.path[-1]

    def extend(self, point: Point) -> "Node":
        """Successor node: this path with point appended."""
        return Node(point, self.path, self.path_length + distance(self.position, point))

    def __repr__(self) -> str:
        return f"Node(position={self.position}, length={self.path_length:.4f}, hops={len(self.path) - 1})"


# =============================================================================
# Shared State
# =============================================================================

def position_key(point: Point) -> Tuple[float, float]:
    """
    Discovered-set key: the exact coordinates.

    Positions that differ only by floating point drift are distinct vertices.
    """
    return (point[0], point[1])


class DiscoveredSet:
    """Best known node per position. The stored length never increases."""

    def __init__(self):
        self._nodes: Dict[Tuple[float, float], Node] = {}
        self._lock = threading.Lock()

    def offer(self, node: Node) -> bool:
        """
        Record node if it is strictly shorter than the known path to its position.

        Returns:
            True if stored (the caller should push it onto the frontier)
        """
        key = position_key(node.position)
        with self._lock:
            known = self._nodes.get(key)
            if known is not None and known.path_length <= node.path_length:
                return False
            self._nodes[key] = node
            return True

    def best_length(self, point: Point) -> Optional[float]:
        with self._lock:
            node = self._nodes.get(position_key(point))
        return None if node is None else node.path_length

    def clear(self) -> None:
        with self._lock:
            self._nodes.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)


class Frontier:
    """Thread-safe min-heap of nodes ordered by their f value."""

    def __init__(self):
        self._heap: List[Tuple[float, int, Node]] = []
        # Only keeps heap entries comparable; ties are not ordered meaningfully
        self._sequence = itertools.count()
        self._lock = threading.Lock()
        self.popped = 0

    def push(self, node: Node, priority: float) -> None:
        with self._lock:
            heapq.heappush(self._heap, (priority, next(self._sequence), node))

    def pop(self) -> Optional[Node]:
        """Remove and return the lowest-f node, or None when empty."""
        with self._lock:
            if not self._heap:
                return None
            self.popped += 1
            return heapq.heappop(self._heap)[2]

    def clear(self) -> None:
        with self._lock:
            self._heap = []
            self._sequence = itertools.count()
            self.popped = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)


@dataclass
class QueryStats:
    """Timing and effort of one find_path() call."""
    parallelism: int
    expanded: int = 0
    discovered: int = 0
    elapsed: float = 0.0
    path_length: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "parallelism": self.parallelism,
            "expanded": self.expanded,
            "discovered": self.discovered,
            "elapsed": self.elapsed,
            "path_length": self.path_length,
        }


# =============================================================================
# Solver
# =============================================================================

class Solver:
    """
    Shortest obstacle-avoiding path solver backed by a worker pool.

    Queries and pool resizing are serialized on one lock, so a Solver can be
    shared between callers; a second query waits for the first to return.

    Args:
        workers: Initial pool size (default from PLANET_WORKERS)
        epsilon: Occlusion tolerance (default from PLANET_EPSILON)
        strict: Raise on malformed polygons instead of skipping them
        settings: Explicit Settings, instead of reading the environment
    """

    def __init__(
        self,
        workers: Optional[int] = None,
        epsilon: Optional[float] = None,
        strict: Optional[bool] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or load_settings()
        self.epsilon = settings.epsilon if epsilon is None else epsilon
        self.strict = settings.strict if strict is None else strict

        self._frontier = Frontier()
        self._discovered = DiscoveredSet()
        self._path_lock = threading.Lock()
        self._complete_path: Optional[Node] = None
        self._world: Tuple[Polygon, ...] = ()
        self._goal: Point = (0.0, 0.0)

        self._query_lock = threading.Lock()
        self.last_stats: Optional[QueryStats] = None

        self._pool = WorkerPool(
            self._run,
            size=settings.workers if workers is None else workers,
        )

    # ---------- Pool scaling ----------

    def add_worker(self) -> None:
        with self._query_lock:
            self._pool.add_worker()

    def remove_worker(self) -> bool:
        with self._query_lock:
            return self._pool.remove_worker()

    def current_parallelism(self) -> int:
        """Number of threads a query runs on: pool size + 1."""
        return self._pool.current_parallelism()

    def close(self) -> None:
        """Stop every pool worker. The solver still answers queries single-threaded."""
        with self._query_lock:
            self._pool.close()

    def __enter__(self) -> "Solver":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---------- Query orchestration ----------

    def find_path(self, world: Iterable, start: Sequence[float], goal: Sequence[float]) -> List[Point]:
        """
        Shortest collision-free polyline from start to goal around world.

        Args:
            world: Convex, pairwise non-overlapping polygons, as Polygon objects
                or sequences of (x, y) vertices
            start: (x, y) start position
            goal: (x, y) goal position

        Returns:
            Path as a list of points from start to goal, or [] if the goal is
            unreachable

        Raises:
            InvalidPolygonError: strict mode and a polygon is malformed
            GeometryError: the calling thread hit an undefined query (overlapping obstacles)
            WorkerError: a worker's search pass raised
        """
        path, _ = self.find_path_with_stats(world, start, goal)
        return path

    def find_path_with_stats(
        self, world: Iterable, start: Sequence[float], goal: Sequence[float]
    ) -> Tuple[List[Point], QueryStats]:
        """
        Same as find_path(), also returning the stats of this very query.

        last_stats may already describe a later query by the time a caller
        reads it; the returned stats cannot.
        """
        start = as_point(start)
        goal = as_point(goal)
        polygons = self._prepare_world(world)

        with self._query_lock:
            began = time.perf_counter()
            stats = QueryStats(parallelism=self._pool.current_parallelism())
            self._reset(polygons, goal)
            try:
                if self._start_is_blocked(start):
                    logger.warning("Start %s lies strictly inside an obstacle, no path searched", start)
                else:
                    self._discover(Node(start))
                    self._pool.run()

                result = self._complete_path
                stats.expanded = self._frontier.popped
                stats.discovered = len(self._discovered)
                stats.path_length = None if result is None else result.path_length
            finally:
                # Release the query's memory
                self._frontier.clear()
                self._discovered.clear()
                self._world = ()

            stats.elapsed = time.perf_counter() - began
            self.last_stats = stats

        logger.debug(
            "%d threads: %.4fs (expanded %d, discovered %d)",
            stats.parallelism, stats.elapsed, stats.expanded, stats.discovered,
        )
        return (list(result.path) if result is not None else []), stats

    def _prepare_world(self, world: Iterable) -> Tuple[Polygon, ...]:
        polygons = []
        for i, raw in enumerate(world):
            try:
                polygons.append(as_polygon(raw, i))
            except InvalidPolygonError as e:
                if self.strict:
                    raise
                logger.error("Skipping obstacle: %s", e)
        return tuple(polygons)

    def _reset(self, world: Tuple[Polygon, ...], goal: Point) -> None:
        self._discovered.clear()
        self._frontier.clear()
        with self._path_lock:
            self._complete_path = None
        self._world = world
        self._goal = goal

    def _start_is_blocked(self, start: Point) -> bool:
        """Strictly inside an obstacle. Its boundary is a valid start."""
        for polygon in self._world:
            if (
                point_in_polygon(polygon, start)
                and boundary_edge(polygon, start, self.epsilon) is None
            ):
                return True
        return False

    # ---------- Expansion pass (every thread) ----------

    def _run(self) -> None:
        while True:
            node = self._frontier.pop()
            if node is None:
                break

            # Nothing left on the frontier can beat the completed path
            with self._path_lock:
                best = self._complete_path
            if best is not None and node.path_length >= best.path_length:
                break

            if node.position == self._goal:
                self._complete(node)
                continue

            self._expand(node)

    def _complete(self, node: Node) -> None:
        with self._path_lock:
            if self._complete_path is None or node.path_length < self._complete_path.path_length:
                self._complete_path = node

    def _expand(self, node: Node) -> None:
        world = self._world
        goal = self._goal
        position = node.position

        if not segment_intersects_any_polygon(world, (position, goal), self.epsilon):
            self._discover(node.extend(goal))

        for polygon in world:
            index = polygon.index_of(position)
            if index is not None:
                # Walking the boundary of a convex obstacle is never occluded
                for vertex in polygon.neighbours(index):
                    self._discover(node.extend(vertex))
                continue

            edge = boundary_edge(polygon, position, self.epsilon)
            if edge is not None:
                for vertex in polygon.edge(edge):
                    self._discover(node.extend(vertex))
                continue

            for vertex in angular_extrema(polygon, position):
                if not segment_intersects_any_polygon(world, (position, vertex), self.epsilon):
                    self._discover(node.extend(vertex))

    def _discover(self, node: Node) -> None:
        # Two critical sections: a node superseded in between is still pushed,
        # and is later discarded by the completed-path bound.
        if not self._discovered.offer(node):
            return
        self._frontier.push(node, node.path_length + distance(node.position, self._goal))
