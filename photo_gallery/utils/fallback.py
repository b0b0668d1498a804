"""
Remote store health tracking.

Services report every remote success or failure here; the admin status endpoint and
the detailed health check read it back.
"""
import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger("photo_gallery.fallback")


class ServiceStatus(Enum):
    """Remote store status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"  # answering, but a table or bucket is missing
    DOWN = "down"  # unreachable or not configured


class FallbackStrategy:
    """Tracks the last observed status of the remote table and storage APIs."""

    def __init__(self):
        self._table_status = ServiceStatus.HEALTHY
        self._storage_status = ServiceStatus.HEALTHY

    def get_table_status(self) -> ServiceStatus:
        return self._table_status

    def set_table_status(self, status: ServiceStatus):
        if status != self._table_status:
            logger.info(
                f"Table API status changed to {status.value}",
                extra={"event": "fallback", "service": "table", "status": status.value},
            )
        self._table_status = status

    def get_storage_status(self) -> ServiceStatus:
        return self._storage_status

    def set_storage_status(self, status: ServiceStatus):
        if status != self._storage_status:
            logger.info(
                f"Storage status changed to {status.value}",
                extra={"event": "fallback", "service": "storage", "status": status.value},
            )
        self._storage_status = status


# Singleton instance
_fallback_strategy: Optional[FallbackStrategy] = None


def get_fallback_strategy() -> FallbackStrategy:
    """Get the singleton fallback strategy instance."""
    global _fallback_strategy
    if _fallback_strategy is None:
        _fallback_strategy = FallbackStrategy()
    return _fallback_strategy
