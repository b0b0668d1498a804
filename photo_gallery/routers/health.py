"""
Health check router.
"""
import asyncio
import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from photo_gallery.config import get_settings
from photo_gallery.database import get_db
from photo_gallery.dependencies.services import get_remote
from photo_gallery.services.supabase_client import SupabaseClient
from photo_gallery.utils.fallback import get_fallback_strategy
from photo_gallery.utils.prometheus_metrics import REGISTRY, Gauge, ready

logger = logging.getLogger("photo_gallery.health")
router = APIRouter(prefix="/health", tags=["Health"])

health_check_status = Gauge(
    "photo_gallery_health_check_status",
    "Health check status (1=healthy, 0=unhealthy)",
    ["check_type"],
    registry=REGISTRY,
)


async def _check_cache_db(db: AsyncSession) -> None:
    await asyncio.wait_for(db.execute(text("SELECT 1")), timeout=1.0)


@router.get(
    "",
    summary="Health check (fast)",
)
async def health_check(db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    """
    Fast check for load balancers: ready flag and local cache database.
    Supabase is not contacted; the service keeps answering from the cache without it.
    """
    start_time = time.perf_counter()

    if ready._value.get() == 0:
        health_check_status.labels(check_type="fast").set(0)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application is not ready",
        )

    try:
        await _check_cache_db(db)
    except asyncio.TimeoutError:
        logger.warning("Cache DB health check timeout", extra={"event": "health"})
        health_check_status.labels(check_type="fast").set(0)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cache database timeout",
        )

    health_check_status.labels(check_type="fast").set(1)
    return {
        "status": "healthy",
        "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
        "instance": get_settings().node_name or "unknown",
    }


@router.get(
    "/detailed",
    summary="Detailed health check (monitoring)",
)
async def detailed_health_check(
    db: AsyncSession = Depends(get_db),
    remote: SupabaseClient = Depends(get_remote),
) -> Dict[str, Any]:
    """
    Detailed check for monitoring.

    - cache database: required, failure makes the service unhealthy
    - Supabase: reported as up/down; down means degraded, reads come from the cache
    """
    start_time = time.perf_counter()
    checks: Dict[str, Any] = {"status": "healthy", "checks": {}}

    try:
        await _check_cache_db(db)
        checks["checks"]["cache_database"] = {"status": "up"}
    except asyncio.TimeoutError:
        checks["status"] = "unhealthy"
        checks["checks"]["cache_database"] = {"status": "down", "error": "Timeout"}

    if remote.is_ready():
        if await remote.test_connection():
            checks["checks"]["supabase"] = {"status": "up"}
        else:
            checks["status"] = "degraded" if checks["status"] == "healthy" else checks["status"]
            checks["checks"]["supabase"] = {"status": "down"}
    else:
        checks["checks"]["supabase"] = {"status": "skipped", "reason": "Not configured"}

    strategy = get_fallback_strategy()
    checks["checks"]["fallback"] = {
        "table": strategy.get_table_status().value,
        "storage": strategy.get_storage_status().value,
    }
    checks["duration_ms"] = round((time.perf_counter() - start_time) * 1000, 2)

    if checks["status"] == "unhealthy":
        health_check_status.labels(check_type="detailed").set(0)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=checks,
        )

    health_check_status.labels(check_type="detailed").set(1)
    return checks
