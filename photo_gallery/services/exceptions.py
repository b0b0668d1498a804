"""
Service-level exceptions.
Routers translate these into HTTP errors.
"""
from typing import Optional


class GalleryServiceError(Exception):
    """Base class for gallery service failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class GalleryStoreError(GalleryServiceError):
    """A remote write failed for a reason other than missing configuration."""

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        self.kind = kind


class GalleryNotFoundError(GalleryServiceError):
    def __init__(self, gallery_id: str):
        super().__init__(f"Gallery not found: {gallery_id}")
        self.gallery_id = gallery_id


class StorageNotConfiguredError(GalleryServiceError):
    def __init__(self, message: str = "Object storage is not configured"):
        super().__init__(message)


class BucketConfigurationError(GalleryServiceError):
    def __init__(self, gallery_id: str):
        super().__init__(f"Gallery {gallery_id} has no bucket folder configured")
        self.gallery_id = gallery_id


class BucketFolderError(GalleryServiceError, ValueError):
    """Invalid bucket folder; the message names the violated rule."""
