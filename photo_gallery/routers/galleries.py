"""
Viewer-facing gallery routes: listing, password challenge and sessions.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from photo_gallery.dependencies.services import get_gallery_service
from photo_gallery.schemas.gallery import (
    BucketFolderRequest,
    BucketFolderValidation,
    GalleryAuthRequest,
    GalleryAuthResponse,
    GalleryPublic,
)
from photo_gallery.services.gallery import GalleryService

router = APIRouter(prefix="/api/galleries", tags=["Galleries"])


@router.get(
    "",
    response_model=List[GalleryPublic],
    summary="List public galleries",
)
async def list_galleries(
    gallery_service: GalleryService = Depends(get_gallery_service),
) -> List[GalleryPublic]:
    """
    All public galleries, newest first.
    Served from the local cache when Supabase cannot be reached.
    """
    galleries = await gallery_service.list_galleries()
    return [GalleryPublic.from_gallery(g) for g in galleries if g.is_public]


@router.post(
    "/validate-bucket-folder",
    response_model=BucketFolderValidation,
    summary="Validate a bucket folder path",
)
async def validate_bucket_folder(body: BucketFolderRequest) -> BucketFolderValidation:
    return GalleryService.validate_bucket_folder(body.bucket_folder)


@router.get(
    "/{gallery_id}",
    response_model=GalleryPublic,
    summary="Get gallery",
)
async def get_gallery(
    gallery_id: str,
    gallery_service: GalleryService = Depends(get_gallery_service),
) -> GalleryPublic:
    """
    Get a gallery by id, resyncing from Supabase when it is unknown locally.

    A visit is counted once the viewer may see the photos.
    """
    gallery = await gallery_service.get_gallery_with_sync(gallery_id)
    if gallery is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Gallery not found",
        )

    if await gallery_service.can_view(gallery):
        gallery = await gallery_service.increment_view_count(gallery_id) or gallery

    return GalleryPublic.from_gallery(gallery)


@router.post(
    "/{gallery_id}/authenticate",
    response_model=GalleryAuthResponse,
    summary="Unlock a password-protected gallery",
)
async def authenticate(
    gallery_id: str,
    body: GalleryAuthRequest,
    gallery_service: GalleryService = Depends(get_gallery_service),
) -> GalleryAuthResponse:
    if await gallery_service.get_gallery(gallery_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Gallery not found",
        )

    if not await gallery_service.authenticate(gallery_id, body.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect password",
        )
    return GalleryAuthResponse(authenticated=True)


@router.get(
    "/{gallery_id}/session",
    response_model=GalleryAuthResponse,
    summary="Check the password session",
)
async def get_session(
    gallery_id: str,
    gallery_service: GalleryService = Depends(get_gallery_service),
) -> GalleryAuthResponse:
    return GalleryAuthResponse(authenticated=await gallery_service.is_authenticated(gallery_id))


@router.post(
    "/{gallery_id}/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Forget the password session",
)
async def logout(
    gallery_id: str,
    gallery_service: GalleryService = Depends(get_gallery_service),
) -> None:
    await gallery_service.logout(gallery_id)
