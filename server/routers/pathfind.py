"""
Pathfind Router - Path queries and worker pool scaling.

Endpoints:
    POST /api/find_path - Shortest path around polygon obstacles
    GET /api/workers - Current pool size and parallelism
    POST /api/workers/add - Add one pool worker
    POST /api/workers/remove - Remove the most recently added worker
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from planet_core import Solver

from ..schemas import FindPathRequest, FindPathResponse, WorkersResponse

router = APIRouter(prefix="/api", tags=["pathfind"])


def get_solver(request: Request) -> Solver:
    """The solver owned by the running application."""
    return request.app.state.solver


def _workers_response(solver: Solver, changed: Optional[bool] = None) -> WorkersResponse:
    parallelism = solver.current_parallelism()
    return WorkersResponse(parallelism=parallelism, workers=parallelism - 1, changed=changed)


# Plain `def` endpoints: find_path blocks, so FastAPI runs these in its threadpool

@router.post("/find_path", response_model=FindPathResponse)
def find_path(req: FindPathRequest, solver: Solver = Depends(get_solver)):
    """
    Shortest obstacle-avoiding path from start to goal.

    An unreachable goal is a successful query with an empty path.
    """
    path, stats = solver.find_path_with_stats(req.world, req.start, req.goal)

    return FindPathResponse(
        success=True,
        reachable=bool(path),
        path=[[x, y] for x, y in path],
        length=stats.path_length,
        parallelism=stats.parallelism,
        stats=stats.to_dict(),
    )


@router.get("/workers", response_model=WorkersResponse)
def workers(solver: Solver = Depends(get_solver)):
    """Current pool size; parallelism counts the querying thread too."""
    return _workers_response(solver)


@router.post("/workers/add", response_model=WorkersResponse)
def add_worker(solver: Solver = Depends(get_solver)):
    solver.add_worker()
    return _workers_response(solver, changed=True)


@router.post("/workers/remove", response_model=WorkersResponse)
def remove_worker(solver: Solver = Depends(get_solver)):
    return _workers_response(solver, changed=solver.remove_worker())
