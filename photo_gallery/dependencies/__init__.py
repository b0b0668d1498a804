"""
FastAPI dependencies: service wiring, admin authentication and gallery access.
"""
from photo_gallery.dependencies.admin import require_admin
from photo_gallery.dependencies.services import (
    get_cache_store,
    get_favorites_service,
    get_gallery_service,
    get_photo_service,
    get_remote,
    get_viewer_id,
    require_gallery_access,
)

__all__ = [
    "require_admin",
    "get_cache_store",
    "get_favorites_service",
    "get_gallery_service",
    "get_photo_service",
    "get_remote",
    "get_viewer_id",
    "require_gallery_access",
]
