import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.db import Database
from core.errors import (
    ClientEnvironmentError,
    DatabaseConnectionError,
    PoolExhaustedError,
    QueryError,
)
from core.location_guard import verify_data_location
from core.pool import ConnectionPool
from core.schema import apply_schema
from core.settings import DatabaseSettings
from counters import router as counters_router
from dashboard import router as dashboard_router
from maintenance_types import router as maintenance_types_router

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Settings and the location guard run before any connection is attempted.
    settings = getattr(app.state, "settings", None) or DatabaseSettings.from_env()
    verify_data_location(settings.data_path)

    pool = ConnectionPool(settings)
    app.state.settings = settings
    app.state.pool = pool
    app.state.db = Database(pool)
    try:
        if settings.apply_schema:
            await apply_schema(app.state.db)
        yield
    finally:
        await pool.close()


def create_app(settings: DatabaseSettings | None = None) -> FastAPI:
    app = FastAPI(title="Hospital Maintenance API", lifespan=lifespan)
    if settings is not None:
        app.state.settings = settings

    # Allow local frontend dev server to call this API from the browser.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PoolExhaustedError, _pool_exhausted_handler)
    app.add_exception_handler(DatabaseConnectionError, _unavailable_handler)
    app.add_exception_handler(QueryError, _query_error_handler)
    app.add_exception_handler(ClientEnvironmentError, _client_environment_handler)

    app.include_router(maintenance_types_router.router, tags=["maintenance-types"])
    app.include_router(dashboard_router.router, tags=["dashboard"])
    app.include_router(counters_router.router, tags=["counters"])

    @app.get("/health")
    def health(request: Request) -> dict:
        pool = getattr(request.app.state, "pool", None)
        if pool is None:
            return {"status": "ok", "pool": None}
        stats = pool.stats()
        return {
            "status": "ok",
            "pool": {
                "size": stats.size,
                "idle": stats.idle,
                "in_use": stats.in_use,
                "waiting": stats.waiting,
                "max_size": stats.max_size,
                "usage_percent": stats.usage_percent,
            },
        }

    return app


async def _pool_exhausted_handler(request: Request, exc: PoolExhaustedError) -> JSONResponse:
    logger.warning("pool_exhausted path=%s error=%s", request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"error": "Database is busy, try again shortly."},
        headers={"Retry-After": "1"},
    )


async def _unavailable_handler(request: Request, exc: DatabaseConnectionError) -> JSONResponse:
    logger.error("database_unavailable path=%s error=%s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"error": "Database is unavailable."})


async def _query_error_handler(request: Request, exc: QueryError) -> JSONResponse:
    # SQL and params stay in the log; clients get a generic message.
    logger.error("query_error path=%s error=%s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error."})


async def _client_environment_handler(request: Request, exc: ClientEnvironmentError) -> JSONResponse:
    logger.error("client_environment path=%s", request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error."})


app = create_app()
