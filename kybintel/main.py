"""
KYB Intel: FastAPI Application.

Run: uvicorn kybintel.main:app --host 0.0.0.0 --port 8001 --reload

Routes:
  - POST /api/v1/network/geographic
  - POST /api/v1/risk/score
  - POST /api/v1/companies/{company_number}/risk-assessment
  - POST /api/v1/network/graph
  - GET  /api/v1/network/company/{company_number}
  - POST /api/v1/network/timeline
  - GET  /api/v1/network/timeline
  - GET  /health
"""

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kybintel.api.routers.geographic import router as geographic_router
from kybintel.api.routers.network import router as network_router
from kybintel.api.routers.risk import router as risk_router
from kybintel.api.routers.timeline import router as timeline_router
from kybintel.config import settings
from kybintel.exceptions import register_exception_handlers
from kybintel.middleware.error_handler import ErrorHandlerMiddleware
from kybintel.middleware.request_context import RequestContextMiddleware


def configure_logging() -> None:
    """structlog over stdlib logging; JSON in production, console in dev."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if settings.log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "kybintel_starting",
        version=settings.app_version,
        environment=settings.environment,
        cluster_strategy=settings.cluster_strategy,
        centrality_mode=settings.centrality_mode,
    )
    if not settings.registry_api_key:
        logger.warning("registry_api_key_not_set", msg="Registry-backed routes will be rejected upstream")
    yield
    logger.info("kybintel_shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description=(
            "# KYB Intel: Entity Risk & Relationship Intelligence\n\n"
            "Pure computations over business-registry records:\n"
            "- **Geographic**: proximity clusters with suspicious-pattern flags\n"
            "- **Risk**: composite 1-10 score with explainable factors\n"
            "- **Network**: degree, density, betweenness estimate\n"
            "- **Timeline**: merged, range-filtered, sorted entity events\n"
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_tags=[
            {"name": "health", "description": "Liveness probe"},
            {"name": "geographic", "description": "Address proximity clustering"},
            {"name": "risk", "description": "Composite risk scoring"},
            {"name": "network", "description": "Relationship graph metrics"},
            {"name": "timeline", "description": "Entity event timelines"},
        ],
    )

    # ── Middleware (last added = outermost) ───────────────────────────
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────
    app.include_router(geographic_router, prefix=settings.api_prefix)
    app.include_router(risk_router, prefix=settings.api_prefix)
    app.include_router(network_router, prefix=settings.api_prefix)
    app.include_router(timeline_router, prefix=settings.api_prefix)

    @app.get("/health", tags=["health"])
    async def health():
        """Liveness only. Does not call the registry."""
        return {
            "status": "ok",
            "version": settings.app_version,
            "service": "kybintel",
        }

    return app


app = create_app()
