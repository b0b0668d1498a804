"""
Security helpers: admin session tokens, gallery password checks and id generation.
"""
import re
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from photo_gallery.config import get_settings
from photo_gallery.schemas.admin import AdminTokenPayload

ADMIN_SUBJECT = "admin"
GALLERY_ID_LENGTH = 13
VIEWER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,64}$")

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_gallery_id(length: int = GALLERY_ID_LENGTH) -> str:
    """Random lowercase alphanumeric identifier, safe to embed in URLs and folder names."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def generate_viewer_id() -> str:
    """Opaque id naming one browser's password sessions."""
    return secrets.token_urlsafe(24)


def is_valid_viewer_id(value: Optional[str]) -> bool:
    return bool(value) and VIEWER_ID_PATTERN.match(value) is not None


def secrets_equal(supplied: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time string comparison; a missing value never matches."""
    if supplied is None or expected is None:
        return False
    return secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def verify_admin_password(password: str) -> bool:
    return secrets_equal(password, get_settings().admin_password)


def create_admin_token(expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT for the admin panel session.

    Args:
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.admin_session_minutes)

    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {
        "sub": ADMIN_SUBJECT,
        "exp": expire,
    }
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_admin_token(token: str) -> Optional[AdminTokenPayload]:
    """
    Decode and validate an admin JWT.

    Returns:
        AdminTokenPayload if valid, None if invalid or expired
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    if payload.get("sub") != ADMIN_SUBJECT or payload.get("exp") is None:
        return None

    return AdminTokenPayload(
        sub=payload["sub"],
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
