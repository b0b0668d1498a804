"""
Photo-related Pydantic schemas.
Photos are not stored anywhere on their own: each one is a projection of an object
in the gallery's bucket folder.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from photo_gallery.schemas.base import CamelModel


class Photo(CamelModel):
    """One object of a gallery folder, with its public URL."""

    id: str
    gallery_id: str
    name: str
    original_name: str
    url: str
    thumbnail_url: Optional[str] = None
    description: str = ""
    uploaded_at: datetime
    size: int = 0
    mime_type: str = "image/jpeg"
    bucket_path: Optional[str] = None


class PhotoUploadItem(BaseModel):
    """A file handed to the upload service."""

    filename: str
    content_type: Optional[str] = None
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class UploadFailure(CamelModel):
    file_name: str
    error: str


class UploadResult(CamelModel):
    """Partition of an upload batch into successes and failures."""

    successful: List[Photo] = []
    failed: List[UploadFailure] = []
