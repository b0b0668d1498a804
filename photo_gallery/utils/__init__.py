"""
Utility functions package.
"""
from photo_gallery.utils.security import (
    create_admin_token,
    decode_admin_token,
    generate_gallery_id,
    secrets_equal,
)
from photo_gallery.utils.validation import (
    generate_unique_filename,
    is_valid_image_file,
    validate_bucket_folder,
)

__all__ = [
    "create_admin_token",
    "decode_admin_token",
    "generate_gallery_id",
    "secrets_equal",
    "generate_unique_filename",
    "is_valid_image_file",
    "validate_bucket_folder",
]
