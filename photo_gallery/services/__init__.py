"""
Services package.
Contains business logic and the Supabase integration.
"""
from photo_gallery.services.cache_store import CacheStore
from photo_gallery.services.supabase_client import (
    RemoteError,
    RemoteErrorKind,
    SupabaseClient,
    get_supabase_client,
)
from photo_gallery.services.repository import FallbackRepository
from photo_gallery.services.favorites import FavoritesService
from photo_gallery.services.gallery import GalleryService
from photo_gallery.services.photo import PhotoService

__all__ = [
    "CacheStore",
    "RemoteError",
    "RemoteErrorKind",
    "SupabaseClient",
    "get_supabase_client",
    "FallbackRepository",
    "FavoritesService",
    "GalleryService",
    "PhotoService",
]
