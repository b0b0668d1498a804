"""
Pydantic schemas package.
All schemas are exported here for easy import.
"""
from photo_gallery.schemas.gallery import (
    BucketFolderValidation,
    ConnectionStatus,
    Gallery,
    GalleryCreate,
    GalleryPublic,
    GalleryStats,
    GalleryUpdate,
    OverviewStats,
    SyncResult,
)
from photo_gallery.schemas.photo import (
    Photo,
    PhotoUploadItem,
    UploadFailure,
    UploadResult,
)
from photo_gallery.schemas.favorites import (
    Comment,
    CommentCreate,
    Favorite,
)
from photo_gallery.schemas.admin import (
    AdminLoginRequest,
    AdminToken,
)

__all__ = [
    # Gallery schemas
    "BucketFolderValidation",
    "ConnectionStatus",
    "Gallery",
    "GalleryCreate",
    "GalleryPublic",
    "GalleryStats",
    "GalleryUpdate",
    "OverviewStats",
    "SyncResult",
    # Photo schemas
    "Photo",
    "PhotoUploadItem",
    "UploadFailure",
    "UploadResult",
    # Favorites schemas
    "Comment",
    "CommentCreate",
    "Favorite",
    # Admin schemas
    "AdminLoginRequest",
    "AdminToken",
]
