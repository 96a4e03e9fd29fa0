"""
FastAPI application factory.
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.api.dependencies import set_runtime
from src.api.routes import health, ingestion
from src.ingestion.runtime import IngestionRuntime

logger = structlog.get_logger(__name__)


def create_app(runtime: IngestionRuntime | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        runtime: An already-entered runtime to serve (e.g. shared with the
            scheduler). When omitted the app opens and closes its own.

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Video catalog API starting up")
        if runtime is not None:
            set_runtime(runtime)
            yield
        else:
            async with IngestionRuntime() as own_runtime:
                set_runtime(own_runtime)
                yield
        set_runtime(None)
        logger.info("Video catalog API shutting down")

    app = FastAPI(
        title="Video Catalog Ingestion API",
        description="""
Administrative API for the video catalog ingestion pipeline.

## Authentication

The fetch triggers require an `X-API-KEY` header matching
`MANUAL_FETCH_API_KEY`. `/health` is open.
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "health", "description": "Service health checks"},
            {"name": "ingestion", "description": "Manual fetch triggers"},
        ],
    )

    # Request logging and correlation ID middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "internal"},
        )

    app.include_router(health.router, tags=["health"])
    app.include_router(ingestion.router, tags=["ingestion"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "Video Catalog Ingestion API",
            "version": "0.1.0",
            "docs": "/docs",
        }

    return app
