"""
Planet API - HTTP surface over one Solver.

The application owns a single Solver for its lifetime: created at startup
from the environment (see planet_core.config) and closed at shutdown.

Run with: uvicorn server.main:app --port 8000
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from planet_core import GeometryError, Solver, WorkerError, load_settings
from planet_core.config import configure_logging

from .routers import pathfind_router

logger = logging.getLogger(__name__)


def create_app(solver: Optional[Solver] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        solver: Use this solver instead of creating one at startup. The caller
            keeps ownership and is responsible for closing it.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.solver is None
        if owned:
            settings = load_settings()
            configure_logging(settings)
            app.state.solver = Solver(settings=settings)
        logger.info("Planet solver ready (parallelism %d)", app.state.solver.current_parallelism())
        try:
            yield
        finally:
            if owned:
                app.state.solver.close()
                app.state.solver = None
                logger.info("Planet solver shut down")

    app = FastAPI(title="Planet Path Planner", lifespan=lifespan)
    app.state.solver = solver

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Covers InvalidPolygonError too
    @app.exception_handler(GeometryError)
    async def undefined_geometry(request: Request, exc: GeometryError):
        return JSONResponse(status_code=422, content={"success": False, "error": str(exc)})

    @app.exception_handler(WorkerError)
    async def worker_failed(request: Request, exc: WorkerError):
        logger.error("Path query failed: %s", exc)
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})

    @app.get("/")
    def index():
        solver = app.state.solver
        return {
            "name": "planet",
            "status": "ok",
            "parallelism": solver.current_parallelism() if solver else None,
        }

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(pathfind_router)
    return app


app = create_app()
