"""
Mapping between rows of the remote galleries table and the Gallery model.

Remote rows use snake_case columns; the model exposes the same fields (camelCase on
the wire through aliases). This is the only place that knows the row shape.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from photo_gallery.schemas.gallery import DEFAULT_BUCKET, Gallery, GalleryUpdate


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Parse a row timestamp into an aware datetime; missing values become now."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        # Python < 3.11 does not accept the "Z" suffix
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        return utcnow()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _empty_to_none(value: Optional[str]) -> Optional[str]:
    return value if value else None


def gallery_from_row(row: Dict[str, Any]) -> Gallery:
    """Build a Gallery from a remote row."""
    return Gallery(
        id=str(row["id"]),
        name=row.get("name") or "",
        description=_empty_to_none(row.get("description")),
        created_at=parse_timestamp(row.get("created_at")),
        updated_at=parse_timestamp(row.get("updated_at")),
        is_public=row.get("is_public") is not False,
        password=_empty_to_none(row.get("password")),
        bucket_folder=_empty_to_none(row.get("bucket_folder")),
        bucket_name=row.get("bucket_name") or DEFAULT_BUCKET,
        photo_count=row.get("photo_count") or 0,
        view_count=row.get("view_count") or 0,
        allow_comments=row.get("allow_comments") is not False,
        allow_favorites=row.get("allow_favorites") is not False,
    )


def gallery_to_row(gallery: Gallery) -> Dict[str, Any]:
    """Build a full remote row from a Gallery."""
    return {
        "id": gallery.id,
        "name": gallery.name,
        "description": gallery.description or None,
        "created_at": format_timestamp(gallery.created_at),
        "updated_at": format_timestamp(gallery.updated_at),
        "is_public": gallery.is_public,
        "password": gallery.password or None,
        "bucket_folder": gallery.bucket_folder or None,
        "bucket_name": gallery.bucket_name or DEFAULT_BUCKET,
        "photo_count": gallery.photo_count,
        "view_count": gallery.view_count,
        "allow_comments": gallery.allow_comments,
        "allow_favorites": gallery.allow_favorites,
    }


def gallery_update_to_row(update: GalleryUpdate, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Build a partial row from the fields the caller set.

    Cleared description or password are written as null. ``updated_at`` is always
    refreshed.
    """
    row: Dict[str, Any] = {}
    for field, value in update.model_dump(exclude_unset=True).items():
        if field in ("description", "password", "bucket_folder"):
            value = value or None
        elif field == "bucket_name":
            value = value or DEFAULT_BUCKET
        elif value is None:
            # name, flags and counts cannot be nulled
            continue
        row[field] = value
    row["updated_at"] = format_timestamp(now or utcnow())
    return row


def apply_update(gallery: Gallery, row: Dict[str, Any]) -> Gallery:
    """Merge a partial row into a Gallery (used for cache-only writes)."""
    merged = gallery_to_row(gallery)
    merged.update(row)
    return gallery_from_row(merged)


def gallery_to_cache_record(gallery: Gallery) -> Dict[str, Any]:
    """camelCase record as kept in the local cache."""
    return gallery.model_dump(by_alias=True, mode="json", exclude_none=True)


def gallery_from_cache_record(record: Any) -> Optional[Gallery]:
    """
    Rebuild a Gallery from a cached camelCase record.

    Legacy snapshots may lack timestamps or bucket fields; those get the row
    defaults. Returns None for records without an id.
    """
    if not isinstance(record, dict) or not record.get("id"):
        return None
    return gallery_from_row({
        "id": record["id"],
        "name": record.get("name"),
        "description": record.get("description"),
        "created_at": record.get("createdAt"),
        "updated_at": record.get("updatedAt") or record.get("createdAt"),
        "is_public": record.get("isPublic"),
        "password": record.get("password"),
        "bucket_folder": record.get("bucketFolder"),
        "bucket_name": record.get("bucketName"),
        "photo_count": record.get("photoCount"),
        "view_count": record.get("viewCount"),
        "allow_comments": record.get("allowComments"),
        "allow_favorites": record.get("allowFavorites"),
    })
