"""
Local cache store: JSON documents under string keys.

Keys used by the application:
- photo-galleries            legacy gallery snapshot (migration source)
- photo-galleries-backup     copy of the legacy snapshot kept after migration
- photo-galleries-migrated   migration-complete flag
- gallery-directory          mirror of the last successful remote gallery listing
- gallery-photos-<id>        per-gallery photo listing
- gallery-auth-sessions-<viewer>  gallery ids whose password challenge this viewer passed
"""
import json
import logging
from typing import Any, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from photo_gallery.models.cache_entry import CacheEntry

logger = logging.getLogger("photo_gallery.cache")

LEGACY_GALLERIES_KEY = "photo-galleries"
LEGACY_GALLERIES_BACKUP_KEY = f"{LEGACY_GALLERIES_KEY}-backup"
MIGRATION_FLAG_KEY = f"{LEGACY_GALLERIES_KEY}-migrated"
GALLERY_DIRECTORY_KEY = "gallery-directory"
PHOTOS_KEY_PREFIX = "gallery-photos"
AUTH_SESSIONS_KEY_PREFIX = "gallery-auth-sessions"


def photo_cache_key(gallery_id: str) -> str:
    return f"{PHOTOS_KEY_PREFIX}-{gallery_id}"


def auth_sessions_key(viewer_id: str) -> str:
    return f"{AUTH_SESSIONS_KEY_PREFIX}-{viewer_id}"


class CacheStore:
    """
    Key-value access to the local cache.
    Values that fail to decode are treated as missing.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, key: str, default: Any = None) -> Any:
        entry = await self.db.get(CacheEntry, key)
        if entry is None:
            return default
        try:
            return json.loads(entry.value)
        except ValueError:
            logger.warning("Corrupt cache entry ignored", extra={"event": "cache", "cache_key": key})
            return default

    async def contains(self, key: str) -> bool:
        return await self.db.get(CacheEntry, key) is not None

    async def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False, default=str)
        entry = await self.db.get(CacheEntry, key)
        if entry is None:
            self.db.add(CacheEntry(key=key, value=payload))
        else:
            entry.value = payload
        await self.db.flush()

    async def remove(self, key: str) -> None:
        await self.db.execute(delete(CacheEntry).where(CacheEntry.key == key))
        await self.db.flush()

    async def keys(self, prefix: str = "") -> List[str]:
        query = select(CacheEntry.key).order_by(CacheEntry.key)
        if prefix:
            query = query.where(CacheEntry.key.startswith(prefix))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ============== Auth sessions ==============

    async def get_auth_sessions(self, viewer_id: str) -> List[str]:
        sessions = await self.get(auth_sessions_key(viewer_id), [])
        return sessions if isinstance(sessions, list) else []

    async def add_auth_session(self, viewer_id: str, gallery_id: str) -> None:
        sessions = await self.get_auth_sessions(viewer_id)
        if gallery_id not in sessions:
            sessions.append(gallery_id)
            await self.set(auth_sessions_key(viewer_id), sessions)

    async def remove_auth_session(self, viewer_id: str, gallery_id: str) -> None:
        sessions = await self.get_auth_sessions(viewer_id)
        if gallery_id in sessions:
            await self.set(auth_sessions_key(viewer_id), [s for s in sessions if s != gallery_id])

    async def remove_gallery_sessions(self, gallery_id: str) -> None:
        """Forget a gallery in every viewer's session list."""
        for key in await self.keys(f"{AUTH_SESSIONS_KEY_PREFIX}-"):
            sessions = await self.get(key, [])
            if isinstance(sessions, list) and gallery_id in sessions:
                await self.set(key, [s for s in sessions if s != gallery_id])

    # ============== Photo listings ==============

    async def get_photos(self, gallery_id: str) -> Optional[list]:
        photos = await self.get(photo_cache_key(gallery_id))
        return photos if isinstance(photos, list) else None

    async def set_photos(self, gallery_id: str, photos: list) -> None:
        await self.set(photo_cache_key(gallery_id), photos)

    async def invalidate_photos(self, gallery_id: str) -> None:
        await self.remove(photo_cache_key(gallery_id))
