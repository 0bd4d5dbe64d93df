"""FastAPI application setup"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from journal_coach import __version__
from journal_coach.api.routes import router
from journal_coach.api.metrics_routes import router as metrics_router
from journal_coach.api.middleware import setup_cors, setup_rate_limiting
from journal_coach.db.connection import db
from journal_coach.db.postgres_store import PostgresStore
from journal_coach.exceptions import (
    AuthorizationError,
    JournalCoachError,
    RecordNotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from journal_coach.observability import init_sentry, shutdown_sentry
from journal_coach.services.container import get_container, has_container, init_container

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    RecordNotFoundError: 404,
    ValidationError: 422,
    AuthorizationError: 403,
    StoreUnavailableError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application"""
    # Startup
    logger.info("Starting API server...")
    init_sentry()

    services = get_container() if has_container() else init_container()
    opened_pool = False
    if isinstance(services.store, PostgresStore) and not db.is_initialized:
        await db.init_pool()
        opened_pool = True
        logger.info("Database pool initialized")

    yield

    # Shutdown
    logger.info("Shutting down API server...")
    if opened_pool:
        await db.close_pool()
        logger.info("Database pool closed")
    shutdown_sentry()


def _error_response(exc: JournalCoachError, status_code: int) -> JSONResponse:
    body = exc.to_dict()
    if status_code == 503:
        # Store internals stay in the logs
        body["message"] = "Service temporarily unavailable"
        body["user_message"] = "Please try again in a moment."
        body["retryable"] = True
    return JSONResponse(status_code=status_code, content=body)


def create_api_application() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Journal Coach API",
        description="REST API for journaling, progression and community engagement",
        version=__version__,
        lifespan=lifespan
    )

    # Setup middleware
    setup_cors(app)
    setup_rate_limiting(app)

    # Include routes
    app.include_router(router)
    app.include_router(metrics_router)

    @app.exception_handler(JournalCoachError)
    async def journal_coach_exception_handler(request: Request, exc: JournalCoachError):
        for error_type, status_code in ERROR_STATUS.items():
            if isinstance(exc, error_type):
                return _error_response(exc, status_code)
        return _error_response(exc, 500)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )

    logger.info("FastAPI application created")

    return app
