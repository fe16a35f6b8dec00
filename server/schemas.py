"""
Pydantic schemas for the Planet API.
"""

from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel


# =============================================================================
# Path Query Schemas
# =============================================================================

class FindPathRequest(BaseModel):
    """Request schema for /api/find_path endpoint."""
    world: List[List[Tuple[float, float]]] = []  # convex polygons, vertices in ring order
    start: Tuple[float, float]
    goal: Tuple[float, float]


class FindPathResponse(BaseModel):
    """Response schema for /api/find_path endpoint."""
    success: bool
    reachable: bool = False
    path: List[List[float]] = []
    length: Optional[float] = None
    parallelism: int = 1
    stats: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


# =============================================================================
# Worker Pool Schemas
# =============================================================================

class WorkersResponse(BaseModel):
    """Response schema for /api/workers endpoints."""
    parallelism: int
    workers: int
    changed: Optional[bool] = None  # set by add/remove
