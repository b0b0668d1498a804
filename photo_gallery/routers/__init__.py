"""
API routers package.
"""
from photo_gallery.routers.admin import router as admin_router
from photo_gallery.routers.favorites import router as favorites_router
from photo_gallery.routers.galleries import router as galleries_router
from photo_gallery.routers.health import router as health_router
from photo_gallery.routers.navigation import router as navigation_router
from photo_gallery.routers.photos import router as photos_router

__all__ = [
    "admin_router",
    "favorites_router",
    "galleries_router",
    "health_router",
    "navigation_router",
    "photos_router",
]
