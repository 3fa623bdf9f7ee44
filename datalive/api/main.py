"""
FastAPI application factory and main entry point.
"""

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from datalive.api.middleware import WideEventMiddleware
from datalive.api.routes import (
    apis,
    chat,
    dashboards,
    documents,
    executions,
    health,
    insights,
    logs,
    models,
    projects,
)
from datalive.core.config import settings
from datalive.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DataLiveException,
    ExternalServiceError,
    ExtractionError,
    ParseError,
    ResourceNotFoundError,
    ValidationError,
)
from datalive.core.logging import configure_logging
from datalive.db import DatabaseError, close_db, get_db_session, init_db
from datalive.services.ai.catalog import ModelCatalog
from datalive.services.ai.providers import ProviderRegistry
from datalive.services.analysis_recovery import recover_stuck_analyses

# Configure structured logging with wide events support
configure_logging(
    json_logs=not settings.debug,  # JSON in production, console in dev
    log_level="DEBUG" if settings.debug else "INFO",
)

logger = structlog.get_logger()

# Status code per application exception. Lookup follows the MRO, so
# ProviderError (an ExternalServiceError) is rendered as 502.
ERROR_STATUS: dict[type[DataLiveException], int] = {
    ValidationError: 400,
    AuthenticationError: 401,
    AuthorizationError: 403,
    ResourceNotFoundError: 404,
    ConflictError: 409,
    ParseError: 422,
    ExtractionError: 422,
    ExternalServiceError: 502,
    DataLiveException: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info("Starting DataLive API", version=settings.app_version)
    await init_db()
    logger.info("Database initialized")

    try:
        async with get_db_session() as db:
            recovered = await recover_stuck_analyses(db)
            if recovered > 0:
                logger.info("Recovered stuck analyses", count=recovered)
    except Exception as e:
        logger.warning("Could not run analysis recovery", error=str(e))

    yield

    logger.info("Shutting down DataLive API")
    await app.state.http_client.aclose()
    await app.state.providers.aclose()
    await close_db()
    logger.info("Database connections closed")


def _error_body(exc: DataLiveException) -> dict:
    return {
        "error": {
            "message": exc.message,
            "type": exc.error_type,
            "details": jsonable_encoder(exc.details),
        }
    }


def _app_exception_handler(status_code: int) -> Callable:
    async def handler(request: Request, exc: DataLiveException) -> JSONResponse:
        if status_code >= 500:
            logger.error("App error", url=str(request.url), type=exc.error_type, message=exc.message)
        else:
            logger.warning("Request rejected", url=str(request.url), type=exc.error_type, message=exc.message)
        return JSONResponse(status_code=status_code, content=_error_body(exc))

    return handler


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="AI-assisted API documentation analysis and live endpoint execution",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # Process-wide services, read-only after startup
    providers = ProviderRegistry.from_settings(settings)
    app.state.providers = providers
    app.state.catalog = ModelCatalog().with_available_providers(providers.available())
    app.state.http_client = httpx.AsyncClient(
        timeout=settings.executor_timeout,
        follow_redirects=True,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Wide Events middleware - canonical log line per request
    app.add_middleware(WideEventMiddleware)

    app.include_router(health.router, tags=["Health"])
    app.include_router(models.router, prefix="/api/v1/models", tags=["Models"])
    app.include_router(projects.router, prefix="/api/v1/projects", tags=["Projects"])
    app.include_router(insights.router, prefix="/api/v1/projects", tags=["Insights"])
    app.include_router(dashboards.router, prefix="/api/v1/projects", tags=["Dashboards"])
    app.include_router(documents.router, prefix="/api/v1/documents", tags=["Documents"])
    app.include_router(apis.router, prefix="/api/v1/apis", tags=["APIs"])
    app.include_router(executions.router, prefix="/api/v1/executions", tags=["Executions"])
    app.include_router(chat.router, prefix="/api/v1/chat", tags=["Chat"])
    app.include_router(logs.router, prefix="/api/v1/logs", tags=["Logs"])

    # Exception Handlers
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle FastAPI validation errors"""
        logger.warning("Validation error", url=str(request.url), errors=exc.errors())
        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "message": "Validation failed",
                    "type": "validation_error",
                    "details": jsonable_encoder(exc.errors()),
                }
            },
        )

    @app.exception_handler(DatabaseError)
    async def database_exception_handler(request: Request, exc: DatabaseError):
        """Handle database errors"""
        logger.error("Database error", url=str(request.url), error=exc.message, exc_info=True)
        return JSONResponse(
            status_code=503,
            content={
                "error": {
                    "message": "Database operation failed",
                    "type": "database_error",
                }
            },
        )

    for exc_class, status_code in ERROR_STATUS.items():
        app.add_exception_handler(exc_class, _app_exception_handler(status_code))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions"""
        logger.error("Unexpected error", url=str(request.url), error=str(exc), exc_info=True)

        # Don't expose internal details in production
        message = str(exc) if settings.debug else "An unexpected error occurred"

        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "message": message,
                    "type": "internal_server_error",
                }
            },
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "datalive.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
