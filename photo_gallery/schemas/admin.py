"""
Admin panel session schemas.
"""
from datetime import datetime

from pydantic import BaseModel


class AdminLoginRequest(BaseModel):
    password: str


class AdminToken(BaseModel):
    """Schema for the admin JWT response."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class AdminTokenPayload(BaseModel):
    sub: str
    exp: datetime
