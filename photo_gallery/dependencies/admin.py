"""
Admin panel authentication dependency.
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from photo_gallery.schemas.admin import AdminTokenPayload
from photo_gallery.utils.security import decode_admin_token

logger = logging.getLogger("photo_gallery.auth")

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AdminTokenPayload:
    """
    Dependency guarding admin routes.

    Raises:
        HTTPException: If the token is missing, invalid or expired
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not credentials:
        logger.warning("Admin auth failed", extra={"event": "auth", "reason": "no_token"})
        raise credentials_exception

    payload = decode_admin_token(credentials.credentials)
    if payload is None:
        logger.warning("Admin auth failed", extra={"event": "auth", "reason": "invalid_or_expired_token"})
        raise credentials_exception

    return payload
