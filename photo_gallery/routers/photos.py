"""
Photo routes: listing and search for viewers, upload and delete for the admin.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from photo_gallery.dependencies.admin import require_admin
from photo_gallery.dependencies.services import get_photo_service, require_gallery_access
from photo_gallery.schemas.admin import AdminTokenPayload
from photo_gallery.schemas.gallery import Gallery
from photo_gallery.schemas.photo import Photo, PhotoUploadItem, UploadResult
from photo_gallery.services.exceptions import (
    BucketConfigurationError,
    GalleryNotFoundError,
    StorageNotConfiguredError,
)
from photo_gallery.services.photo import PhotoService

logger = logging.getLogger("photo_gallery.photos")

router = APIRouter(prefix="/api/galleries/{gallery_id}/photos", tags=["Photos"])


@router.get(
    "",
    response_model=List[Photo],
    summary="List or search photos",
)
async def list_photos(
    q: Optional[str] = Query(None, max_length=200, description="Case-insensitive search"),
    gallery: Gallery = Depends(require_gallery_access),
    photo_service: PhotoService = Depends(get_photo_service),
) -> List[Photo]:
    """
    Photos of a gallery folder.

    - **q**: optional filter on file name, original name and description
    """
    if q:
        return await photo_service.search_photos(gallery.id, q)
    return await photo_service.list_photos(gallery.id)


@router.post(
    "",
    response_model=UploadResult,
    summary="Upload photos",
)
async def upload_photos(
    gallery_id: str,
    files: List[UploadFile] = File(..., description="Image files"),
    photo_service: PhotoService = Depends(get_photo_service),
    _admin: AdminTokenPayload = Depends(require_admin),
) -> UploadResult:
    """
    Upload image files to the gallery folder.

    Files are processed in order; rejected or failed files are listed in
    ``failed`` and do not stop the batch.
    """
    items = [
        PhotoUploadItem(
            filename=upload.filename or "unnamed",
            content_type=upload.content_type,
            content=await upload.read(),
        )
        for upload in files
    ]

    try:
        return await photo_service.upload_photos(gallery_id, items)
    except GalleryNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except StorageNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    except BucketConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)


@router.delete(
    "/{photo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a photo",
)
async def delete_photo(
    gallery_id: str,
    photo_id: str,
    photo_service: PhotoService = Depends(get_photo_service),
    _admin: AdminTokenPayload = Depends(require_admin),
) -> None:
    if not await photo_service.delete_photo(gallery_id, photo_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Photo not found",
        )
    logger.info("Photo deleted", extra={"event": "photo", "gallery_id": gallery_id, "photo_id": photo_id})
