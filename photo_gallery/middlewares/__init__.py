"""
HTTP middlewares.
"""
from photo_gallery.middlewares.logging_middleware import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
