"""
Favorites and comments schemas. Both are shared by every viewer of a gallery.
"""
from datetime import datetime

from pydantic import Field

from photo_gallery.schemas.base import CamelModel


class Favorite(CamelModel):
    id: str
    gallery_id: str
    photo_id: str
    created_at: datetime


class Comment(CamelModel):
    id: str
    gallery_id: str
    photo_id: str
    text: str
    created_at: datetime


class CommentCreate(CamelModel):
    photo_id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1, max_length=2000)
