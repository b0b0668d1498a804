"""
Shared favorites and comments routes.
"""
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from photo_gallery.dependencies.services import get_favorites_service, require_gallery_access
from photo_gallery.schemas.favorites import Comment, CommentCreate, Favorite
from photo_gallery.schemas.gallery import Gallery
from photo_gallery.services.exceptions import GalleryStoreError
from photo_gallery.services.favorites import FavoritesService

router = APIRouter(prefix="/api/galleries/{gallery_id}", tags=["Favorites"])


def _store_unavailable(e: GalleryStoreError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)


def _require_favorites(gallery: Gallery) -> None:
    if not gallery.allow_favorites:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Favorites are disabled for this gallery",
        )


@router.get("/favorites", response_model=List[Favorite], summary="List favorites")
async def get_favorites(
    gallery: Gallery = Depends(require_gallery_access),
    favorites_service: FavoritesService = Depends(get_favorites_service),
) -> List[Favorite]:
    return await favorites_service.get_favorites(gallery.id)


@router.put("/favorites/{photo_id}", response_model=Favorite, summary="Add a favorite")
async def add_favorite(
    photo_id: str,
    gallery: Gallery = Depends(require_gallery_access),
    favorites_service: FavoritesService = Depends(get_favorites_service),
) -> Favorite:
    """Idempotent: adding an existing favorite returns it unchanged."""
    _require_favorites(gallery)
    try:
        return await favorites_service.add_to_favorites(gallery.id, photo_id)
    except GalleryStoreError as e:
        raise _store_unavailable(e)


@router.delete(
    "/favorites/{photo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a favorite",
)
async def remove_favorite(
    photo_id: str,
    gallery: Gallery = Depends(require_gallery_access),
    favorites_service: FavoritesService = Depends(get_favorites_service),
) -> None:
    _require_favorites(gallery)
    try:
        await favorites_service.remove_from_favorites(gallery.id, photo_id)
    except GalleryStoreError as e:
        raise _store_unavailable(e)


@router.delete(
    "/favorites",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Clear all favorites",
)
async def clear_favorites(
    gallery: Gallery = Depends(require_gallery_access),
    favorites_service: FavoritesService = Depends(get_favorites_service),
) -> None:
    _require_favorites(gallery)
    try:
        await favorites_service.clear_all(gallery.id)
    except GalleryStoreError as e:
        raise _store_unavailable(e)


@router.get("/comments", response_model=List[Comment], summary="List comments")
async def get_comments(
    gallery: Gallery = Depends(require_gallery_access),
    favorites_service: FavoritesService = Depends(get_favorites_service),
) -> List[Comment]:
    return await favorites_service.get_comments(gallery.id)


@router.get("/comments/counts", response_model=Dict[str, int], summary="Comment counts per photo")
async def get_comment_counts(
    gallery: Gallery = Depends(require_gallery_access),
    favorites_service: FavoritesService = Depends(get_favorites_service),
) -> Dict[str, int]:
    """Number of comments keyed by photo id; photos without comments are absent."""
    return await favorites_service.get_comment_counts(gallery.id)


@router.post(
    "/comments",
    response_model=Comment,
    status_code=status.HTTP_201_CREATED,
    summary="Add a comment",
)
async def add_comment(
    body: CommentCreate,
    gallery: Gallery = Depends(require_gallery_access),
    favorites_service: FavoritesService = Depends(get_favorites_service),
) -> Comment:
    if not gallery.allow_comments:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Comments are disabled for this gallery",
        )
    try:
        return await favorites_service.add_comment(gallery.id, body.photo_id, body.text)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except GalleryStoreError as e:
        raise _store_unavailable(e)
