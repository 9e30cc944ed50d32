"""
FastAPI Application Entry Point
Main application with routes, error mapping and service wiring
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from docvault.core.config import settings
from docvault.core.logging import setup_logging, get_logger
from docvault.core.exceptions import AppException
from docvault.api.v1 import router as api_v1_router
from docvault.db.session import check_connection, close_db, init_db
from docvault.models.common import ErrorDetail, ErrorResponse, HealthResponse
from docvault.monitoring.metrics import get_metrics
from docvault.services.listing import ListingService
from docvault.services.registry import DocumentRegistry
from docvault.storage import BlobStore, create_blob_store

# Setup logging
setup_logging()
logger = get_logger(__name__)


def wire_services(
    app: FastAPI,
    session_factory: async_sessionmaker[AsyncSession],
    blob_store: BlobStore,
) -> None:
    """Attach the explicitly constructed services to the application"""
    app.state.blob_store = blob_store
    app.state.registry = DocumentRegistry(session_factory, blob_store)
    app.state.listing = ListingService(session_factory)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan management"""
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Storage backend: {settings.STORAGE_BACKEND}")

    # Startup: a vault without its metadata or blob store cannot serve anything
    session_factory = await init_db()
    blob_store = create_blob_store(settings)
    await blob_store.initialize()
    wire_services(app, session_factory, blob_store)
    logger.info("All services initialized successfully")

    yield

    # Shutdown
    logger.info("Shutting down...")
    try:
        await blob_store.shutdown()
        await close_db()
        logger.info("Shutdown complete")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Versioned, access-controlled document storage",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan
)


# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "Content-Length"],
)


def error_response(status_code: int, code: str, message: str, details=None, timestamp=None) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(
            code=code,
            message=message,
            details=jsonable_encoder(details),
            timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
        )
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


# Exception Handlers
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle application-specific exceptions"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return error_response(exc.status_code, exc.code, exc.message, exc.details, exc.timestamp)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions (unknown routes, wrong methods)"""
    code = "not_found" if exc.status_code == status.HTTP_404_NOT_FOUND else "http_error"
    return error_response(exc.status_code, code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle validation errors"""
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "validation_error",
        "Invalid request parameters",
        {"errors": exc.errors()},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected becomes a generic internal error"""
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "Internal server error",
    )


# Include routers
app.include_router(api_v1_router, prefix="/api/v1")


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint"""
    services = {}
    healthy = True

    if await check_connection():
        services["database"] = "healthy"
    else:
        services["database"] = "unhealthy"
        healthy = False

    blob_store = getattr(request.app.state, "blob_store", None)
    if blob_store is not None and await blob_store.health_check():
        services["blob_store"] = "healthy"
    else:
        services["blob_store"] = "unhealthy"
        healthy = False

    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=settings.APP_VERSION,
        services=services,
    )


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    """Prometheus metrics"""
    if not settings.ENABLE_METRICS:
        return error_response(status.HTTP_404_NOT_FOUND, "not_found", "Metrics disabled")
    return Response(content=get_metrics(), media_type="text/plain; version=0.0.4; charset=utf-8")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docvault.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info",
    )
