"""
Service wiring for request handlers.

Every request gets a CacheStore over its own cache session; the Supabase client is
a process-wide singleton.
"""
from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from photo_gallery.config import get_settings
from photo_gallery.database import get_db
from photo_gallery.schemas.gallery import Gallery
from photo_gallery.services.cache_store import CacheStore
from photo_gallery.services.favorites import FavoritesService
from photo_gallery.services.gallery import GalleryService
from photo_gallery.services.photo import PhotoService
from photo_gallery.services.supabase_client import SupabaseClient, get_supabase_client
from photo_gallery.utils.security import generate_viewer_id, is_valid_viewer_id


def get_remote() -> SupabaseClient:
    return get_supabase_client()


async def get_viewer_id(request: Request, response: Response) -> str:
    """
    Identify the browser whose password sessions apply to this request.

    The id travels in an HttpOnly cookie; a missing or malformed cookie gets a
    fresh id, so the viewer starts with no unlocked galleries.
    """
    settings = get_settings()
    viewer_id = request.cookies.get(settings.viewer_cookie_name)
    if not is_valid_viewer_id(viewer_id):
        viewer_id = generate_viewer_id()
        response.set_cookie(
            settings.viewer_cookie_name,
            viewer_id,
            max_age=settings.viewer_cookie_max_age_days * 24 * 60 * 60,
            httponly=True,
            samesite="lax",
            secure=settings.is_production,
            path="/",
        )
    return viewer_id


async def get_cache_store(db: AsyncSession = Depends(get_db)) -> CacheStore:
    return CacheStore(db)


async def get_gallery_service(
    cache: CacheStore = Depends(get_cache_store),
    remote: SupabaseClient = Depends(get_remote),
    viewer_id: str = Depends(get_viewer_id),
) -> GalleryService:
    return GalleryService(cache, remote, viewer_id=viewer_id)


async def get_photo_service(
    cache: CacheStore = Depends(get_cache_store),
    remote: SupabaseClient = Depends(get_remote),
) -> PhotoService:
    return PhotoService(cache, remote)


async def get_favorites_service(
    remote: SupabaseClient = Depends(get_remote),
) -> FavoritesService:
    return FavoritesService(remote)


async def require_gallery_access(
    gallery_id: str,
    gallery_service: GalleryService = Depends(get_gallery_service),
) -> Gallery:
    """
    Resolve a gallery for viewer routes.

    Password-protected galleries need a password challenge passed by this viewer.

    Raises:
        HTTPException: 404 for unknown galleries, 403 without a session
    """
    gallery = await gallery_service.get_gallery_with_sync(gallery_id)
    if gallery is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Gallery not found",
        )

    if not await gallery_service.can_view(gallery):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Gallery password required",
        )
    return gallery
