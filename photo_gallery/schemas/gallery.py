"""
Gallery-related Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from photo_gallery.schemas.base import CamelModel

DEFAULT_BUCKET = "photos"


class Gallery(CamelModel):
    """A gallery record as owned by the remote galleries table."""

    id: str
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    is_public: bool = True
    password: Optional[str] = None
    bucket_folder: Optional[str] = None
    bucket_name: str = DEFAULT_BUCKET
    photo_count: int = 0
    view_count: int = 0
    allow_comments: bool = True
    allow_favorites: bool = True

    @property
    def is_password_protected(self) -> bool:
        return bool(self.password)

    @property
    def has_bucket(self) -> bool:
        return bool(self.bucket_name and self.bucket_folder)


class GalleryPublic(CamelModel):
    """Gallery as shown to viewers; the password itself is never exposed."""

    id: str
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    is_public: bool
    is_password_protected: bool
    photo_count: int = 0
    view_count: int = 0
    allow_comments: bool = True
    allow_favorites: bool = True

    @classmethod
    def from_gallery(cls, gallery: Gallery) -> "GalleryPublic":
        return cls(
            id=gallery.id,
            name=gallery.name,
            description=gallery.description,
            created_at=gallery.created_at,
            updated_at=gallery.updated_at,
            is_public=gallery.is_public,
            is_password_protected=gallery.is_password_protected,
            photo_count=gallery.photo_count,
            view_count=gallery.view_count,
            allow_comments=gallery.allow_comments,
            allow_favorites=gallery.allow_favorites,
        )


class GalleryCreate(CamelModel):
    """Schema for gallery creation. Every field is optional."""

    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    is_public: Optional[bool] = None
    password: Optional[str] = None
    bucket_folder: Optional[str] = None
    bucket_name: Optional[str] = None
    allow_comments: Optional[bool] = None
    allow_favorites: Optional[bool] = None


class GalleryUpdate(CamelModel):
    """
    Partial gallery update.
    Only fields explicitly set by the caller are written (``exclude_unset``).
    """

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_public: Optional[bool] = None
    password: Optional[str] = None
    bucket_folder: Optional[str] = None
    bucket_name: Optional[str] = None
    photo_count: Optional[int] = Field(None, ge=0)
    view_count: Optional[int] = Field(None, ge=0)
    allow_comments: Optional[bool] = None
    allow_favorites: Optional[bool] = None


class BucketFolderValidation(CamelModel):
    is_valid: bool
    error: Optional[str] = None


class BucketFolderRequest(CamelModel):
    bucket_folder: str


class GalleryAuthRequest(CamelModel):
    password: str = ""


class GalleryAuthResponse(CamelModel):
    authenticated: bool


class SyncResult(CamelModel):
    success: bool
    count: int = 0
    error: Optional[str] = None


class ConnectionStatus(CamelModel):
    is_connected: bool
    is_table_ready: bool
    local_galleries: int
    remote_galleries: int


class GalleryStats(CamelModel):
    photo_count: int
    total_size: int
    last_updated: datetime
    bucket_folder: str
    bucket_name: str
    is_password_protected: bool


class OverviewStats(CamelModel):
    total_galleries: int
    total_photos: int
    protected_galleries: int
