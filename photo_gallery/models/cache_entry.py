"""
Key-value entry of the local cache.
"""
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from photo_gallery.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheEntry(Base):
    """One cached value, stored as a JSON document under a string key."""

    __tablename__ = "cache_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<CacheEntry(key={self.key})>"
