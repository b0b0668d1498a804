"""
Admin panel routes: login, gallery management, statistics and sync status.
"""
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from photo_gallery.config import get_settings
from photo_gallery.dependencies.admin import require_admin
from photo_gallery.dependencies.services import get_gallery_service, get_photo_service
from photo_gallery.schemas.admin import AdminLoginRequest, AdminToken, AdminTokenPayload
from photo_gallery.schemas.gallery import (
    BucketFolderRequest,
    ConnectionStatus,
    Gallery,
    GalleryCreate,
    GalleryStats,
    GalleryUpdate,
    OverviewStats,
    SyncResult,
)
from photo_gallery.services.exceptions import BucketFolderError, GalleryStoreError
from photo_gallery.services.gallery import GalleryService
from photo_gallery.services.photo import PhotoService
from photo_gallery.utils.logger import log_warning
from photo_gallery.utils.security import create_admin_token, verify_admin_password

router = APIRouter(prefix="/api/admin", tags=["Admin"])


def _gallery_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Gallery not found",
    )


def _invalid_folder(e: BucketFolderError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message)


def _store_unavailable(e: GalleryStoreError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)


@router.post(
    "/login",
    response_model=AdminToken,
    summary="Admin login",
)
async def login(body: AdminLoginRequest) -> AdminToken:
    """Exchange the admin password for a bearer token."""
    if not verify_admin_password(body.password):
        log_warning("Admin login failed", event="auth", reason="invalid_password")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    expires_delta = timedelta(minutes=get_settings().admin_session_minutes)
    return AdminToken(
        access_token=create_admin_token(expires_delta),
        expires_at=datetime.now(timezone.utc) + expires_delta,
    )


# ============== Gallery management ==============

@router.get(
    "/galleries",
    response_model=List[Gallery],
    summary="List all galleries",
)
async def list_galleries(
    gallery_service: GalleryService = Depends(get_gallery_service),
    _admin: AdminTokenPayload = Depends(require_admin),
) -> List[Gallery]:
    return await gallery_service.list_galleries()


@router.post(
    "/galleries",
    response_model=Gallery,
    status_code=status.HTTP_201_CREATED,
    summary="Create a gallery",
)
async def create_gallery(
    gallery_data: Optional[GalleryCreate] = None,
    gallery_service: GalleryService = Depends(get_gallery_service),
    _admin: AdminTokenPayload = Depends(require_admin),
) -> Gallery:
    """
    Create a gallery. Every field is optional.

    - **bucketFolder**: defaults to `gallery-<id>`
    - **password**: leave empty for an open gallery
    """
    try:
        return await gallery_service.create_gallery(gallery_data)
    except BucketFolderError as e:
        raise _invalid_folder(e)
    except GalleryStoreError as e:
        raise _store_unavailable(e)


@router.patch(
    "/galleries/{gallery_id}",
    response_model=Gallery,
    summary="Update a gallery",
)
async def update_gallery(
    gallery_id: str,
    update_data: GalleryUpdate,
    gallery_service: GalleryService = Depends(get_gallery_service),
    _admin: AdminTokenPayload = Depends(require_admin),
) -> Gallery:
    try:
        gallery = await gallery_service.update_gallery(gallery_id, update_data)
    except BucketFolderError as e:
        raise _invalid_folder(e)
    except GalleryStoreError as e:
        raise _store_unavailable(e)

    if gallery is None:
        raise _gallery_not_found()
    return gallery


@router.delete(
    "/galleries/{gallery_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a gallery",
)
async def delete_gallery(
    gallery_id: str,
    gallery_service: GalleryService = Depends(get_gallery_service),
    _admin: AdminTokenPayload = Depends(require_admin),
) -> None:
    """Deletes the gallery with its photos, favorites and comments."""
    try:
        deleted = await gallery_service.delete_gallery(gallery_id)
    except GalleryStoreError as e:
        raise _store_unavailable(e)

    if not deleted:
        raise _gallery_not_found()


@router.put(
    "/galleries/{gallery_id}/bucket-folder",
    response_model=Gallery,
    summary="Change a gallery's bucket folder",
)
async def update_bucket_folder(
    gallery_id: str,
    body: BucketFolderRequest,
    gallery_service: GalleryService = Depends(get_gallery_service),
    _admin: AdminTokenPayload = Depends(require_admin),
) -> Gallery:
    try:
        gallery = await gallery_service.update_bucket_folder(gallery_id, body.bucket_folder)
    except BucketFolderError as e:
        raise _invalid_folder(e)
    except GalleryStoreError as e:
        raise _store_unavailable(e)

    if gallery is None:
        raise _gallery_not_found()
    return gallery


# ============== Statistics & status ==============

@router.get(
    "/galleries/{gallery_id}/stats",
    response_model=GalleryStats,
    summary="Gallery statistics",
)
async def get_gallery_stats(
    gallery_id: str,
    photo_service: PhotoService = Depends(get_photo_service),
    _admin: AdminTokenPayload = Depends(require_admin),
) -> GalleryStats:
    stats = await photo_service.get_gallery_stats(gallery_id)
    if stats is None:
        raise _gallery_not_found()
    return stats


@router.get(
    "/stats",
    response_model=OverviewStats,
    summary="Dashboard totals",
)
async def get_overview_stats(
    photo_service: PhotoService = Depends(get_photo_service),
    _admin: AdminTokenPayload = Depends(require_admin),
) -> OverviewStats:
    return await photo_service.get_overview_stats()


@router.get(
    "/status",
    response_model=ConnectionStatus,
    summary="Supabase connection status",
)
async def get_status(
    gallery_service: GalleryService = Depends(get_gallery_service),
    _admin: AdminTokenPayload = Depends(require_admin),
) -> ConnectionStatus:
    return await gallery_service.get_connection_status()


@router.post(
    "/sync",
    response_model=SyncResult,
    summary="Resync galleries from Supabase",
)
async def sync(
    gallery_service: GalleryService = Depends(get_gallery_service),
    _admin: AdminTokenPayload = Depends(require_admin),
) -> SyncResult:
    return await gallery_service.resync()
