"""
Database models package.
"""
from photo_gallery.models.cache_entry import CacheEntry

__all__ = ["CacheEntry"]
