"""
Two-tier gallery repository.

The remote galleries table is authoritative. The local cache keeps a mirror of the
last successful listing (``gallery-directory``) and is read only when the remote call
raised a RemoteError. Writes go to the remote table; when the remote store is not
configured at all they are applied to the cache instead (offline mode).
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from photo_gallery.schemas.gallery import Gallery
from photo_gallery.services.cache_store import (
    GALLERY_DIRECTORY_KEY,
    LEGACY_GALLERIES_KEY,
    CacheStore,
)
from photo_gallery.services.exceptions import GalleryStoreError
from photo_gallery.services.row_mapping import (
    apply_update,
    gallery_from_cache_record,
    gallery_from_row,
    gallery_to_cache_record,
    gallery_to_row,
)
from photo_gallery.services.supabase_client import RemoteError, RemoteErrorKind, SupabaseClient
from photo_gallery.utils.fallback import ServiceStatus, get_fallback_strategy
from photo_gallery.utils.prometheus_metrics import cache_fallback_total

logger = logging.getLogger("photo_gallery.repository")

GALLERIES_TABLE_DDL = """\
CREATE TABLE IF NOT EXISTS galleries (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  description TEXT,
  created_at TIMESTAMPTZ DEFAULT NOW(),
  updated_at TIMESTAMPTZ DEFAULT NOW(),
  is_public BOOLEAN DEFAULT TRUE,
  password TEXT,
  bucket_folder TEXT,
  bucket_name TEXT DEFAULT 'photos',
  photo_count INTEGER DEFAULT 0,
  view_count INTEGER DEFAULT 0,
  allow_comments BOOLEAN DEFAULT TRUE,
  allow_favorites BOOLEAN DEFAULT TRUE
);"""

_STATUS_BY_KIND = {
    RemoteErrorKind.NOT_CONFIGURED: ServiceStatus.DOWN,
    RemoteErrorKind.UNREACHABLE: ServiceStatus.DOWN,
    RemoteErrorKind.SERVER: ServiceStatus.DOWN,
    RemoteErrorKind.TABLE_MISSING: ServiceStatus.DEGRADED,
    RemoteErrorKind.REJECTED: ServiceStatus.DEGRADED,
    RemoteErrorKind.NOT_FOUND: ServiceStatus.DEGRADED,
    RemoteErrorKind.CONFLICT: ServiceStatus.HEALTHY,
}


def log_remote_failure(operation: str, error: RemoteError, service: str = "table") -> None:
    """Log a remote failure at a level matching its kind and record the service status."""
    extra = {
        "event": "fallback",
        "operation": operation,
        "kind": error.kind.value,
        "status": error.status_code,
    }
    if error.kind == RemoteErrorKind.NOT_CONFIGURED:
        logger.info(f"Remote store not configured, {operation} uses the local cache", extra=extra)
    elif error.kind == RemoteErrorKind.TABLE_MISSING:
        logger.error(f"Remote table missing during {operation}: {error.message}", extra=extra)
    elif error.kind in (RemoteErrorKind.UNREACHABLE, RemoteErrorKind.SERVER):
        logger.warning(f"Remote store unavailable during {operation}: {error.message}", extra=extra)
    else:
        logger.error(f"Remote store rejected {operation}: {error.message}", extra=extra)

    status = _STATUS_BY_KIND.get(error.kind, ServiceStatus.DEGRADED)
    strategy = get_fallback_strategy()
    if service == "storage":
        strategy.set_storage_status(status)
    else:
        strategy.set_table_status(status)


class FallbackRepository:
    """
    Gallery records over the remote table, with the local cache as second tier.

    Reads: remote first; on RemoteError the cached mirror (or, before any mirror
    exists, the legacy snapshot). Misses are not errors.
    Writes: remote; NOT_CONFIGURED applies the write to the cache; any other
    RemoteError raises GalleryStoreError.
    """

    def __init__(self, cache: CacheStore, remote: SupabaseClient):
        self.cache = cache
        self.remote = remote
        self.table = remote.settings.galleries_table

    # ============== Cache tier ==============

    async def cached_galleries(self) -> List[Gallery]:
        records = await self.cache.get(GALLERY_DIRECTORY_KEY)
        if not isinstance(records, list):
            records = await self.cache.get(LEGACY_GALLERIES_KEY, [])
            if not isinstance(records, list):
                return []

        galleries = []
        for record in records:
            try:
                gallery = gallery_from_cache_record(record)
            except (ValidationError, ValueError) as e:
                logger.warning(
                    "Skipping unreadable cached gallery",
                    extra={"event": "cache", "error_type": type(e).__name__},
                )
                continue
            if gallery is not None:
                galleries.append(gallery)
        galleries.sort(key=lambda g: g.created_at, reverse=True)
        return galleries

    async def _save_mirror(self, galleries: List[Gallery]) -> None:
        await self.cache.set(GALLERY_DIRECTORY_KEY, [gallery_to_cache_record(g) for g in galleries])

    async def _put_cached(self, gallery: Gallery) -> None:
        galleries = [g for g in await self.cached_galleries() if g.id != gallery.id]
        galleries.append(gallery)
        galleries.sort(key=lambda g: g.created_at, reverse=True)
        await self._save_mirror(galleries)

    async def _drop_cached(self, gallery_id: str) -> bool:
        galleries = await self.cached_galleries()
        remaining = [g for g in galleries if g.id != gallery_id]
        await self._save_mirror(remaining)

        # Keep a not-yet-migrated snapshot from resurrecting the gallery
        legacy = await self.cache.get(LEGACY_GALLERIES_KEY)
        if isinstance(legacy, list):
            pruned = [r for r in legacy if not (isinstance(r, dict) and r.get("id") == gallery_id)]
            if len(pruned) != len(legacy):
                await self.cache.set(LEGACY_GALLERIES_KEY, pruned)

        return len(remaining) != len(galleries)

    async def cached_gallery(self, gallery_id: str) -> Optional[Gallery]:
        for gallery in await self.cached_galleries():
            if gallery.id == gallery_id:
                return gallery
        return None

    # ============== Reads ==============

    async def fetch_all(self) -> List[Gallery]:
        """Remote listing, newest first. Refreshes the mirror; raises RemoteError."""
        rows = await self.remote.select(self.table, order="created_at", descending=True)
        galleries = [gallery_from_row(row) for row in rows]
        await self._save_mirror(galleries)
        get_fallback_strategy().set_table_status(ServiceStatus.HEALTHY)
        return galleries

    async def list(self) -> List[Gallery]:
        try:
            return await self.fetch_all()
        except RemoteError as e:
            log_remote_failure("list", e)
            cache_fallback_total.labels(operation="list", reason=e.kind.value).inc()
            return await self.cached_galleries()

    async def get(self, gallery_id: str) -> Optional[Gallery]:
        try:
            rows = await self.remote.select(self.table, filters={"id": gallery_id}, limit=1)
        except RemoteError as e:
            log_remote_failure("get", e)
            cache_fallback_total.labels(operation="get", reason=e.kind.value).inc()
            return await self.cached_gallery(gallery_id)

        get_fallback_strategy().set_table_status(ServiceStatus.HEALTHY)
        if rows:
            gallery = gallery_from_row(rows[0])
            await self._put_cached(gallery)
            return gallery

        logger.info(
            "Gallery not in remote table, checking local cache",
            extra={"event": "repository", "gallery_id": gallery_id},
        )
        return await self.cached_gallery(gallery_id)

    async def count_remote(self) -> int:
        return await self.remote.count(self.table)

    # ============== Writes ==============

    def _write_failed(self, operation: str, error: RemoteError) -> GalleryStoreError:
        log_remote_failure(operation, error)
        return GalleryStoreError(
            f"Failed to {operation} gallery: {error.message}",
            kind=error.kind.value,
        )

    async def insert(self, gallery: Gallery) -> Gallery:
        try:
            rows = await self.remote.insert(self.table, [gallery_to_row(gallery)])
        except RemoteError as e:
            if e.kind != RemoteErrorKind.NOT_CONFIGURED:
                raise self._write_failed("create", e) from e
            log_remote_failure("create", e)
        else:
            if rows:
                gallery = gallery_from_row(rows[0])
        await self._put_cached(gallery)
        return gallery

    async def update(self, gallery_id: str, row: Dict[str, Any]) -> Optional[Gallery]:
        try:
            rows = await self.remote.update(self.table, row, filters={"id": gallery_id})
        except RemoteError as e:
            if e.kind != RemoteErrorKind.NOT_CONFIGURED:
                raise self._write_failed("update", e) from e
            log_remote_failure("update", e)
            cached = await self.cached_gallery(gallery_id)
            if cached is None:
                return None
            gallery = apply_update(cached, row)
        else:
            if not rows:
                return None
            gallery = gallery_from_row(rows[0])

        await self._put_cached(gallery)
        return gallery

    async def delete(self, gallery_id: str) -> bool:
        try:
            rows = await self.remote.delete(self.table, filters={"id": gallery_id})
        except RemoteError as e:
            if e.kind != RemoteErrorKind.NOT_CONFIGURED:
                raise self._write_failed("delete", e) from e
            log_remote_failure("delete", e)
            return await self._drop_cached(gallery_id)

        await self._drop_cached(gallery_id)
        return bool(rows)

    async def upsert_rows(self, rows: List[Dict[str, Any]]) -> None:
        """Idempotent bulk write keyed on id. Raises RemoteError."""
        await self.remote.upsert(self.table, rows, on_conflict="id")

    # ============== Table health ==============

    async def check_table(self) -> bool:
        try:
            await self.remote.select(self.table, columns="id", limit=1)
        except RemoteError as e:
            log_remote_failure("check_table", e)
            if e.kind == RemoteErrorKind.TABLE_MISSING:
                logger.error(
                    f"Create the {self.table} table in the Supabase SQL editor:\n{GALLERIES_TABLE_DDL}",
                    extra={"event": "repository", "table": self.table},
                )
            return False
        get_fallback_strategy().set_table_status(ServiceStatus.HEALTHY)
        return True
