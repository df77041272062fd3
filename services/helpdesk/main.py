"""
Helpdesk Service - Main Application
===================================

FastAPI application for support tickets: lifecycle, messages, department
routing, triage advice and reports.

Version: 0.1.0
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.helpdesk.errors import HelpdeskError
from services.helpdesk.repositories import seed_demo_data, sql_repositories
from services.helpdesk.routes import (
    ai_router,
    auth_router,
    departments_router,
    reports_router,
    tickets_router,
    users_router,
)
from shared.config import StorageBackend, settings
from shared.database import DatabaseClient, db_session
from shared.llm import get_llm_provider
from shared.logging import get_logger, setup_logging
from shared.models import ErrorResponse, HealthResponse


SERVICE_NAME = "helpdesk"
VERSION = "0.1.0"

# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name=SERVICE_NAME,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "helpdesk_starting",
        environment=settings.environment.value,
        port=settings.ports.helpdesk,
        storage=settings.helpdesk.storage.value,
    )

    # Startup
    if settings.helpdesk.storage == StorageBackend.SQL:
        try:
            await DatabaseClient.create_schema()
            if settings.helpdesk.seed_demo_data:
                async with db_session() as session:
                    await seed_demo_data(sql_repositories(session))
        except Exception as e:
            logger.error("startup_failed", error=str(e))
            raise

    yield

    # Shutdown
    logger.info("helpdesk_shutting_down")
    provider = get_llm_provider()
    if provider is not None:
        await provider.close()
    await DatabaseClient.close()


# Create FastAPI application
app = FastAPI(
    title="Helpdesk Service",
    description="Support tickets with department routing and triage advice",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Service health check.

    Reports the storage backend and whether an external classifier is
    configured. A missing classifier is not a failure; advice falls back to
    heuristics.
    """
    components: dict[str, dict[str, Any]] = {}

    if settings.helpdesk.storage == StorageBackend.SQL:
        components["storage"] = {"backend": "sql", **await DatabaseClient.health_check()}
    else:
        components["storage"] = {"backend": "memory", "status": "healthy"}

    provider = get_llm_provider()
    if provider is not None:
        components["llm"] = await provider.health_check()
    else:
        components["llm"] = {"status": "healthy", "configured": False, "mode": "heuristic"}

    all_healthy = all(c.get("status") == "healthy" for c in components.values())

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        service=SERVICE_NAME,
        version=VERSION,
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "Helpdesk Service",
        "version": VERSION,
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(auth_router, prefix="/api/v1")
app.include_router(departments_router, prefix="/api/v1")
app.include_router(tickets_router, prefix="/api/v1")
app.include_router(ai_router, prefix="/api/v1")
app.include_router(reports_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")


# ============================================================================
# Error Handlers
# ============================================================================


def _error(status_code: int, error: ErrorResponse, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error.model_dump(mode="json"), headers=headers)


@app.exception_handler(HelpdeskError)
async def helpdesk_exception_handler(request: Request, exc: HelpdeskError) -> JSONResponse:
    """Render service errors with their status and error code."""
    logger.warning(
        "helpdesk_error",
        status_code=exc.status_code,
        error_code=exc.error_code,
        error=exc.message,
        path=request.url.path,
    )
    return _error(
        exc.status_code,
        ErrorResponse(error=exc.message, error_code=exc.error_code, details=exc.details),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request validation failures are 400 with messages grouped by field."""
    fields: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        fields.setdefault(".".join(loc) or "request", []).append(err.get("msg", "invalid"))

    logger.warning("request_validation_failed", path=request.url.path, fields=list(fields))
    return _error(
        status.HTTP_400_BAD_REQUEST,
        ErrorResponse(error="Validation failed", error_code="validation_error", details={"fields": fields}),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions, keeping headers such as WWW-Authenticate."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return _error(
        exc.status_code,
        ErrorResponse(error=str(exc.detail), error_code=f"http_{exc.status_code}"),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorResponse(error="Internal server error", error_code="internal_error"),
    )


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.helpdesk.main:app",
        host="0.0.0.0",
        port=settings.ports.helpdesk,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )
