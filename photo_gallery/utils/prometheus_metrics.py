"""
Prometheus metrics for the gallery service.

- FastAPI: request count, latency (Instrumentator)
- Stability: exceptions_total, external request totals/errors/duration
- Fallback: cache_fallback_total (remote store unavailable, served from cache)
- Business: gallery operations, uploads, favorites/comments
- HA: ready gauge (1=up, 0=shutting down)
"""
import logging
import socket
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from prometheus_client import REGISTRY, Counter, Gauge, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

from photo_gallery.config import get_settings

logger = logging.getLogger(__name__)

# --- Stability ---
exceptions_total = Counter(
    "photo_gallery_exceptions_total",
    "Total unhandled exceptions",
    registry=REGISTRY,
)
external_request_errors_total = Counter(
    "photo_gallery_external_request_errors_total",
    "Total external API request failures",
    ["service"],
    registry=REGISTRY,
)
external_request_total = Counter(
    "photo_gallery_external_request_total",
    "Total external API requests by service and outcome",
    ["service", "status"],  # status: success | failure
    registry=REGISTRY,
)
external_request_duration_seconds = Histogram(
    "photo_gallery_external_request_duration_seconds",
    "External API request duration in seconds",
    ["service", "result"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    registry=REGISTRY,
)

# --- HA ---
ready = Gauge(
    "photo_gallery_ready",
    "1 when the application accepts traffic, 0 while starting or shutting down",
    registry=REGISTRY,
)

# --- Fallback ---
cache_fallback_total = Counter(
    "photo_gallery_cache_fallback_total",
    "Reads served from the local cache because the remote store failed",
    ["operation", "reason"],  # reason: RemoteErrorKind value
    registry=REGISTRY,
)

# --- Business ---
gallery_operations_total = Counter(
    "photo_gallery_gallery_operations_total",
    "Gallery directory operations",
    ["operation", "result"],  # operation: create | update | delete | authenticate | migrate | sync
    registry=REGISTRY,
)
photo_upload_total = Counter(
    "photo_gallery_photo_upload_total",
    "Uploaded files by outcome",
    ["result"],  # success | invalid_type | too_large | failure
    registry=REGISTRY,
)
photo_upload_file_size_bytes = Histogram(
    "photo_gallery_photo_upload_file_size_bytes",
    "Size of successfully uploaded files",
    buckets=(100_000, 500_000, 1_000_000, 5_000_000, 10_000_000, 25_000_000, 50_000_000),
    registry=REGISTRY,
)
favorite_operations_total = Counter(
    "photo_gallery_favorite_operations_total",
    "Favorites and comments operations",
    ["operation"],  # add | remove | clear | comment
    registry=REGISTRY,
)


def _node_identity() -> str:
    settings = get_settings()
    if (settings.node_name or "").strip():
        return settings.node_name
    try:
        return socket.gethostname()
    except OSError:
        return "unknown"


@asynccontextmanager
async def record_external_request(service: str) -> AsyncGenerator[None, None]:
    """
    Context manager to record external request duration, total count, and errors.
    Use around Supabase REST/Storage HTTP calls.
    """
    start = time.perf_counter()
    exc_raised = None
    try:
        yield
    except Exception as e:
        exc_raised = e
        external_request_errors_total.labels(service=service).inc()
        external_request_total.labels(service=service, status="failure").inc()
        raise
    finally:
        duration = time.perf_counter() - start
        result = "failure" if exc_raised is not None else "success"
        if exc_raised is None:
            external_request_total.labels(service=service, status="success").inc()
        external_request_duration_seconds.labels(service=service, result=result).observe(duration)


def setup_prometheus(app) -> None:
    """
    Register Prometheus instrumentation.

    1. app_info gauge (labels only).
    2. Instrumentator for FastAPI request metrics.
    3. /metrics endpoint.
    """
    settings = get_settings()

    app_info = Gauge(
        "photo_gallery_app_info",
        "Application and node identity (labels only, value is 1)",
        ["node", "app", "version", "environment"],
        registry=REGISTRY,
    )
    app_info.labels(
        node=_node_identity(),
        app=settings.app_name,
        version=settings.app_version,
        environment=settings.environment.value,
    ).set(1)

    Instrumentator(should_group_status_codes=False).instrument(app).expose(
        app, endpoint="/metrics"
    )
