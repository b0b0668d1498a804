"""
FastAPI Photo Gallery Application.

Main application entry point that configures:
- CORS middleware
- API routers
- Local cache database lifecycle and the one-time gallery migration
- Logging system
- Exception handlers
- Prometheus metrics
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from photo_gallery.config import get_settings
from photo_gallery.database import close_db, get_db_context, init_db
from photo_gallery.middlewares.logging_middleware import LoggingMiddleware
from photo_gallery.routers import (
    admin_router,
    favorites_router,
    galleries_router,
    health_router,
    navigation_router,
    photos_router,
)
from photo_gallery.services.cache_store import CacheStore
from photo_gallery.services.gallery import GalleryService
from photo_gallery.services.supabase_client import get_supabase_client
from photo_gallery.utils.logger import get_request_id, log_error, log_info, setup_logging
from photo_gallery.utils.prometheus_metrics import exceptions_total, ready, setup_prometheus

settings = get_settings()
logger = logging.getLogger("photo_gallery")

setup_logging()


async def run_startup_migration() -> None:
    """Upload the legacy local gallery snapshot once; retried on the next start if it fails."""
    async with get_db_context() as session:
        gallery_service = GalleryService(CacheStore(session), get_supabase_client())
        migrated = await gallery_service.migrate_local_galleries()
        if migrated:
            log_info("Startup migration completed", event="lifecycle", count=migrated)
        await gallery_service.check_table()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    await init_db()
    if get_supabase_client().is_ready():
        await run_startup_migration()
    else:
        log_info("Supabase not configured, running in offline mode", event="lifecycle")

    ready.set(1)
    log_info(
        "Application startup completed",
        event="lifecycle",
        version=settings.app_version,
        environment=settings.environment.value,
    )

    yield

    ready.set(0)
    log_info("Application shutdown initiated", event="lifecycle")
    await close_db()
    log_info("Graceful shutdown completed", event="lifecycle")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
## Photo Gallery API

Share photo galleries with clients, backed by Supabase.

### Features
- **Galleries**: optional password protection, one storage folder per gallery
- **Photos**: listing, search and batch upload with per-file results
- **Favorites & comments**: shared by every viewer of a gallery
- **Admin**: gallery management, statistics and Supabase sync status

### Offline behaviour
Reads fall back to a local cache when Supabase is unreachable.
    """,
    openapi_tags=[
        {"name": "Galleries", "description": "Gallery listing and password sessions"},
        {"name": "Photos", "description": "Photo listing, upload and deletion"},
        {"name": "Favorites", "description": "Shared favorites and comments"},
        {"name": "Admin", "description": "Gallery management"},
        {"name": "Navigation", "description": "Client URL resolution"},
    ],
    lifespan=lifespan,
)

# Prometheus: FastAPI metrics + node info at /metrics
setup_prometheus(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log unhandled exceptions and answer 500 with the request id."""
    exceptions_total.inc()
    rid = get_request_id()

    log_error(
        "Unhandled exception occurred",
        error_type=type(exc).__name__,
        error_code="INTERNAL_SERVER_ERROR",
        http_method=request.method,
        http_path=request.url.path,
        event="exception",
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "request_id": rid,
        },
    )


app.include_router(health_router)
app.include_router(galleries_router)
app.include_router(photos_router)
app.include_router(favorites_router)
app.include_router(admin_router)
app.include_router(navigation_router)


@app.get(
    "/",
    tags=["Root"],
    summary="API information",
)
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
