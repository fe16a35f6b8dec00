"""
API Routers for Planet.

Routers:
    - pathfind: Path queries and worker pool scaling
"""

from .pathfind import router as pathfind_router

__all__ = ["pathfind_router"]
