"""
FastAPI application - REST adapter for the recipe resolver.

Usage:
    python run_api.py

Or directly:
    uvicorn adapters.rest.app:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Ensure src/ is on sys.path when invoked via uvicorn directly
_src_dir = Path(__file__).resolve().parent.parent.parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from infrastructure.config import Settings
from factory import ServiceFactory
from domain.exceptions import DatabaseUnavailableError, RepositoryError
from adapters.rest.dependencies import set_factory
from adapters.rest.routers import generate, recipes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize ServiceFactory on startup."""
    project_root = _src_dir.parent
    config = Settings.from_env(project_root=project_root)
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    factory = ServiceFactory(config)
    await factory.init_db()
    set_factory(factory)
    yield
    # No teardown needed: aiosqlite connections are per-operation
    set_factory(None)


app = FastAPI(
    title="Recipe Resolver",
    version="0.1.0",
    description="Turns a cooking conversation into one safe, structured recipe.",
    lifespan=lifespan,
)

# CORS: permissive for development; tighten allowed_origins in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DatabaseUnavailableError)
async def database_unavailable(request: Request, exc: DatabaseUnavailableError):
    logger.error("Database unavailable: %s", exc)
    return JSONResponse(status_code=503, content={"error": "Database not available"})


@app.exception_handler(RepositoryError)
async def repository_failure(request: Request, exc: RepositoryError):
    logger.error("Repository failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Database error", "details": str(exc)})


# Register routers
app.include_router(generate.router)
app.include_router(recipes.router)


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok", "version": "0.1.0"}
