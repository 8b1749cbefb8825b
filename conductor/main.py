from contextlib import asynccontextmanager
import logging
import traceback

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from conductor.config import settings
from conductor.api.v1.router import api_router
from conductor.database import async_session_factory, engine
from conductor.core.tenant_context import (
    InvalidTenantIdError,
    MissingTenantContextError,
    TenantInactiveError,
    TenantNotFoundError,
)
from conductor.core.tenant_schema_definition import TENANT_SCHEMA_VERSION
from conductor.services.tenant_onboarding_service import TenantAlreadyExistsError
from conductor.services.tenant_schema_service import (
    NamespaceCreationFailedError,
    ProvisionTimeoutError,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Tenant namespaces are created on signup, never at startup.
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} (tenant schema v{TENANT_SCHEMA_VERSION})")
    yield
    await engine.dispose()
    logger.info("Shutting down...")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Multi-tenant namespace provisioning, validation and routing",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add tenant middleware for multi-tenant support
from conductor.middleware.tenant import tenant_middleware
app.middleware("http")(tenant_middleware)

# Include API router
app.include_router(api_router)


def _error(status_code: int, detail: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail}, headers=headers)


@app.exception_handler(InvalidTenantIdError)
async def invalid_tenant_id_handler(request: Request, exc: InvalidTenantIdError):
    return _error(status.HTTP_400_BAD_REQUEST, "Invalid tenant identifier")


@app.exception_handler(MissingTenantContextError)
async def missing_tenant_handler(request: Request, exc: MissingTenantContextError):
    return _error(
        status.HTTP_401_UNAUTHORIZED,
        "Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(TenantInactiveError)
async def tenant_inactive_handler(request: Request, exc: TenantInactiveError):
    return _error(status.HTTP_403_FORBIDDEN, "Tenant is not active")


@app.exception_handler(TenantNotFoundError)
async def tenant_not_found_handler(request: Request, exc: TenantNotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, "Tenant not found")


@app.exception_handler(TenantAlreadyExistsError)
async def tenant_exists_handler(request: Request, exc: TenantAlreadyExistsError):
    return _error(status.HTTP_409_CONFLICT, str(exc))


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc))


@app.exception_handler(NamespaceCreationFailedError)
async def namespace_failed_handler(request: Request, exc: NamespaceCreationFailedError):
    logger.error(f"{request.method} {request.url.path}: {exc}")
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "Tenant namespace could not be created, retry later")


@app.exception_handler(ProvisionTimeoutError)
async def provision_timeout_handler(request: Request, exc: ProvisionTimeoutError):
    logger.error(f"{request.method} {request.url.path}: {exc}")
    return _error(status.HTTP_504_GATEWAY_TIMEOUT, "Provisioning timed out, retry to resume")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log unexpected errors; include details only in debug mode."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")

    error_detail = {
        "detail": "Internal server error",
        "type": type(exc).__name__,
        "path": str(request.url.path),
        "method": request.method,
    }
    if settings.DEBUG:
        error_detail["error"] = str(exc)
        error_detail["traceback"] = traceback.format_exc()

    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=error_detail)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint with database validation."""
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError
    from datetime import datetime, timezone

    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "tenant_schema_version": TENANT_SCHEMA_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    # Check database connectivity
    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = "connected"
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database health check failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = "error"

    # Return 503 if unhealthy
    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
    }
