"""
Jobflow - FastAPI entry point

Serves the job order status workflow and the audit trail over /api/v1.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config.settings import settings
from .api.routes import api_router
from .api.middleware import CorrelationIdMiddleware, register_error_handlers
from .engine.workflow_definition import DEFAULT_WORKFLOW
from .repositories.mongo_client import create_indexes, close_connection, health_check
from .utils.logger import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)

VERSION = "1.0.0"
API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: re-check the workflow tables, then ensure indexes on the job
    order, status history and audit collections. A database that is down at
    startup only costs the indexes; requests will report it through /health.

    Shutdown: release the Mongo client.
    """
    DEFAULT_WORKFLOW.validate()
    logger.info(
        f"Jobflow {VERSION} starting with workflow '{DEFAULT_WORKFLOW.name}' "
        f"({len(DEFAULT_WORKFLOW.transitions)} statuses, "
        f"terminal: {', '.join(s.value for s in DEFAULT_WORKFLOW.terminal_statuses())})"
    )

    try:
        create_indexes()
    except Exception as e:
        logger.error(f"Index creation skipped, database unavailable: {e}")

    yield

    close_connection()
    logger.info("Jobflow stopped")


def create_app() -> FastAPI:
    """Build the application: middleware, error handlers, routes"""
    docs_enabled = settings.debug
    application = FastAPI(
        title="Jobflow",
        description="Job order status workflow with role-gated transitions and an audit trail",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/api/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if docs_enabled else None,
    )

    _add_middleware(application)
    register_error_handlers(application)
    application.include_router(api_router, prefix=API_PREFIX)
    _add_service_routes(application)

    return application


def _add_middleware(app: FastAPI) -> None:
    origins = settings.cors_origins_list
    wildcard = origins == ["*"]

    # Browsers reject credentialed requests against a wildcard origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=not wildcard,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type", "X-Correlation-Id"],
        expose_headers=["X-Correlation-Id"],
    )
    app.add_middleware(CorrelationIdMiddleware)


def _add_service_routes(app: FastAPI) -> None:
    @app.get("/health", tags=["Health"])
    async def health():
        """Liveness plus a database ping (no auth)"""
        mongo = health_check()
        return {
            "status": "healthy" if mongo.get("status") == "healthy" else "degraded",
            "version": VERSION,
            "environment": settings.environment,
            "workflow": DEFAULT_WORKFLOW.name,
            "mongo": mongo,
        }

    @app.get("/", tags=["Health"])
    async def root():
        return {
            "name": "Jobflow",
            "version": VERSION,
            "api": API_PREFIX,
            "docs": "/api/docs" if settings.debug else None,
        }


app = create_app()
