"""
College Events API - Main Application Entry Point

An event booking service for a college campus:
- Event catalog with organizer/reviewer managed edits
- Event request workflow (propose -> approve/reject)
- Capacity-safe ticket purchase, cancellation and redemption
- Redis caching of catalog listings with invalidation on every write
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from college_events.core.config import get_settings
from college_events.core.errors import DomainError, ErrorCode
from college_events.core.logging import setup_logging, get_logger
from college_events.core.metrics import metrics_endpoint
from college_events.api.router import api_router
from college_events.api.middleware import RequestLoggingMiddleware
from college_events.db.session import AsyncSessionLocal
from college_events.services.auth_service import ensure_bootstrap_admin
from college_events.services.cache_service import get_redis, close_redis, get_cache_stats
from college_events.services.id_allocator import get_allocator

settings = get_settings()
logger = get_logger(__name__)

ERROR_STATUS = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_STATE_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.OUT_OF_INVENTORY: status.HTTP_409_CONFLICT,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    # IDs are allocated in-process; seed them before serving any write
    async with AsyncSessionLocal() as session:
        await get_allocator().initialize(session)
        await ensure_bootstrap_admin(session)

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    yield

    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="College event booking API with capacity-safe ticket allocation",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = ERROR_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST)
    logger.info(
        "domain_error",
        code=exc.code.value,
        message=exc.message,
        path=request.url.path,
        status_code=status_code,
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code.value},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema failures share the DomainError body shape."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors()), "code": ErrorCode.VALIDATION_ERROR.value},
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
    }


@app.get("/metrics", tags=["Health"])
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
