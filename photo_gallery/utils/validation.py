"""
Input validation helpers: bucket folder paths and uploaded image files.
"""
import mimetypes
import re
import uuid
from pathlib import PurePosixPath
from typing import Optional

from photo_gallery.schemas.gallery import BucketFolderValidation

BUCKET_FOLDER_MAX_LENGTH = 100
_BUCKET_FOLDER_PATTERN = re.compile(r"^[a-zA-Z0-9/_-]+$")

# Allowed content types for photo upload
ALLOWED_CONTENT_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/heic",
    "image/heif",
    "image/bmp",
    "image/tiff",
    "image/svg+xml",
}

# File extension to content type mapping
EXTENSION_TO_CONTENT_TYPE = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".heif": "image/heif",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".svg": "image/svg+xml",
}


def validate_bucket_folder(folder: Optional[str]) -> BucketFolderValidation:
    """
    Validate a bucket folder path. Reports the first violated rule.

    Rules, in order: not empty; only letters, digits, ``-``, ``_`` and ``/``;
    at most 100 characters; no leading or trailing ``/``; no ``//``.
    """
    if not folder or not folder.strip():
        return BucketFolderValidation(is_valid=False, error="Bucket folder cannot be empty")

    if not _BUCKET_FOLDER_PATTERN.match(folder):
        return BucketFolderValidation(
            is_valid=False,
            error="Bucket folder can only contain letters, numbers, hyphens, underscores, and forward slashes",
        )

    if len(folder) > BUCKET_FOLDER_MAX_LENGTH:
        return BucketFolderValidation(
            is_valid=False,
            error=f"Bucket folder path is too long (max {BUCKET_FOLDER_MAX_LENGTH} characters)",
        )

    if folder.startswith("/") or folder.endswith("/"):
        return BucketFolderValidation(
            is_valid=False,
            error="Bucket folder cannot start or end with a forward slash",
        )

    if "//" in folder:
        return BucketFolderValidation(
            is_valid=False,
            error="Bucket folder cannot contain consecutive forward slashes",
        )

    return BucketFolderValidation(is_valid=True)


def guess_content_type(filename: str, provided_type: Optional[str] = None) -> Optional[str]:
    """
    Guess content type from filename or provided type.

    Args:
        filename: The filename
        provided_type: The content type provided by the client

    Returns:
        An allowed image content type, or the provided type when none matches
    """
    if provided_type and provided_type.lower() in ALLOWED_CONTENT_TYPES:
        return provided_type.lower()

    if filename:
        ext = PurePosixPath(filename.lower()).suffix
        if ext in EXTENSION_TO_CONTENT_TYPE:
            return EXTENSION_TO_CONTENT_TYPE[ext]

        guessed_type, _ = mimetypes.guess_type(filename)
        if guessed_type and guessed_type in ALLOWED_CONTENT_TYPES:
            return guessed_type

    return provided_type


def is_valid_image_file(filename: str, content_type: Optional[str] = None) -> bool:
    """True when the MIME type or the file extension names a supported image format."""
    return guess_content_type(filename, content_type) in ALLOWED_CONTENT_TYPES


def generate_unique_filename(original_filename: str) -> str:
    """
    Generate a collision-resistant storage name keeping the original extension.

    >>> generate_unique_filename("IMG_0001.JPG").endswith(".jpg")
    True
    """
    ext = PurePosixPath(original_filename).suffix.lower()
    return f"{uuid.uuid4().hex}{ext}"
