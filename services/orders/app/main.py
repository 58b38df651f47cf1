"""
Order Manager Service
Browser pages and a JSON API for creating, browsing, editing and deleting orders
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import os
import sys

# Add shared modules to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../../"))

from shared.core import ServiceHealth, setup_logging, RequestLoggingMiddleware, get_logger
from app.api.routes import router as orders_api_router
from app.api.views import router as views_router
from app.application.query import probe_store
from app.core_settings import Settings, get_settings
from app.domain.errors import ValidationError
from app.infrastructure.cache import OrderCache
from app.infrastructure.db import init_models, make_engine
from app.infrastructure.rest_client import RestTableClient
from app.infrastructure.sql_client import SqlTableClient
from app.infrastructure.table_client import TableClient

# Service configuration
SERVICE_NAME = "order-manager-service"
SERVICE_DESCRIPTION = "Order management: list, search, create, edit and delete orders"

logger = get_logger(__name__)


def build_table_client(settings: Settings) -> TableClient:
    """Table client for the configured backend."""
    backend = settings.STORE_BACKEND.lower()
    if backend == "rest":
        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY are required when STORE_BACKEND=rest")
        return RestTableClient(
            settings.SUPABASE_URL,
            settings.SUPABASE_KEY,
            table=settings.ORDERS_TABLE,
            timeout=settings.STORE_TIMEOUT_SECONDS,
        )
    if backend == "sql":
        engine = make_engine(settings.DATABASE_URL)
        init_models(engine)
        return SqlTableClient(engine)
    raise RuntimeError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND}")


def create_app(table_client: Optional[TableClient] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    # Setup structured logging
    setup_logging(service_name=SERVICE_NAME, level=settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifecycle management"""
        logger.info(f"Starting {SERVICE_NAME} version {settings.SERVICE_VERSION}")

        # Startup
        owns_client = table_client is None
        if owns_client:
            app.state.table_client = build_table_client(settings)
            logger.info(
                "Order store client initialized",
                extra={'extra_fields': {'backend': settings.STORE_BACKEND}}
            )
        else:
            app.state.table_client = table_client

        logger.info(f"{SERVICE_NAME} started successfully")

        yield

        # Shutdown
        logger.info(f"Shutting down {SERVICE_NAME}")
        if owns_client:
            await app.state.table_client.aclose()

    app = FastAPI(
        title=SERVICE_NAME,
        description=SERVICE_DESCRIPTION,
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json"
    )
    app.state.settings = settings
    app.state.table_client = table_client
    app.state.order_cache = OrderCache(maxsize=settings.CACHE_MAXSIZE, ttl=settings.CACHE_TTL_SECONDS)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=422, content={"detail": exc.message, "errors": exc.errors})

    # Readiness reports the store connection alongside memory
    health_service = ServiceHealth(
        SERVICE_NAME,
        settings.SERVICE_VERSION,
        probe=lambda: probe_store(app.state.table_client),
    )
    app.include_router(health_service.create_health_router())

    app.include_router(orders_api_router)
    app.include_router(views_router)

    @app.get("/info")
    async def info():
        """Service information endpoint"""
        return {
            "service": SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "description": SERVICE_DESCRIPTION,
            "environment": os.getenv("ENVIRONMENT", "development"),
            "store_backend": settings.STORE_BACKEND,
            "endpoints": {
                "orders": "/orders",
                "api": "/api/orders",
                "health": "/health",
                "ready": "/health/ready",
                "live": "/health/live",
                "metrics": "/metrics",
                "docs": "/api/docs"
            }
        }

    return app


app = create_app()
