"""
GRC Backend

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from grc_backend.config import get_settings
from grc_backend.database import async_session_maker, init_db, close_db
from grc_backend.api.v1 import router as api_v1_router
from grc_backend.api.middleware.request_id import RequestIdMiddleware
from grc_backend.kernel.cache import CacheSweeper, TTLCache
from grc_backend.kernel.roles.catalog import seed_permission_catalog
from grc_backend.schemas.common import CacheStatsResponse, HealthResponse
from grc_backend.logging_config import configure_logging, get_logger

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.
    
    Creates the process-wide role cache and its sweeper, prepares the
    database and tears everything down on shutdown.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")

    if settings.seed_permission_catalog:
        async with async_session_maker() as session:
            await seed_permission_catalog(session)

    app.state.role_cache = TTLCache()
    sweeper = None
    if settings.cache_sweep_interval_seconds > 0:
        sweeper = CacheSweeper(app.state.role_cache, settings.cache_sweep_interval_seconds)
        sweeper.start()
    logger.info(
        "Role cache ready",
        extra={
            "ttl_seconds": settings.role_cache_ttl_seconds,
            "sweep_interval_seconds": settings.cache_sweep_interval_seconds,
        },
    )

    yield

    logger.info("Shutting down...")
    if sweeper is not None:
        await sweeper.stop()
    app.state.role_cache.clear()
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    GRC Backend
    
    Multi-tenant governance, risk and compliance platform API.
    
    ## Access control
    
    - Users hold tenant-scoped roles; roles bundle permission codes such as `asset.view`
    - A request is allowed when any of the caller's roles grants the required code
    - Role permission sets are cached in process and invalidated on every role change
    - Holders of the superuser role bypass permission checks
    - Role changes are written to an append-only audit log
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# add_middleware stacks innermost-first: the last one added is outermost
_cors_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
]

app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _request_id_headers(request: Request) -> dict:
    req_id = getattr(request.state, "request_id", None)
    return {"X-Request-ID": req_id} if req_id else {}


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Keep the request ID on 4xx/5xx responses."""
    headers = {**(exc.headers or {}), **_request_id_headers(request)}
    content = {"detail": exc.detail}
    req_id = getattr(request.state, "request_id", None)
    if req_id and exc.status_code >= 500:
        content["request_id"] = req_id
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    content = {"detail": "Validation error", "errors": errors}
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        content["request_id"] = req_id
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=content,
        headers=_request_id_headers(request),
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    req_id = getattr(request.state, "request_id", None)
    if settings.debug:
        content = {
            "detail": str(exc),
            "type": type(exc).__name__,
            "request_id": req_id,
        }
    else:
        content = {"detail": "Internal server error", "request_id": req_id}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
        headers=_request_id_headers(request),
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Check application health."""
    cache = getattr(request.app.state, "role_cache", None)
    cache_stats = None
    if cache is not None:
        stats = cache.stats()
        cache_stats = CacheStatsResponse(
            size=stats.size,
            hits=stats.hits,
            misses=stats.misses,
            invalidations=stats.invalidations,
        )
    return HealthResponse(
        status="ok",
        version=settings.version,
        database="connected",
        role_cache=cache_stats,
    )


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
        },
    }


app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)


if __name__ == "__main__":
    import uvicorn
    
    uvicorn.run(
        "grc_backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
