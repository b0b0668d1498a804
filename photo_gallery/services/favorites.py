"""
Favorites and comments service.

Both sets live in remote tables and are shared by every viewer of a gallery:
- gallery_favorites (id, gallery_id, photo_id, created_at), one row per pair
- gallery_comments (id, gallery_id, photo_id, text, created_at), append-only
"""
from collections import Counter
from typing import Any, Dict, List, Optional

from photo_gallery.schemas.favorites import Comment, Favorite
from photo_gallery.services.exceptions import GalleryStoreError
from photo_gallery.services.repository import log_remote_failure
from photo_gallery.services.row_mapping import format_timestamp, parse_timestamp, utcnow
from photo_gallery.services.supabase_client import RemoteError, RemoteErrorKind, SupabaseClient
from photo_gallery.utils.logger import log_info, log_warning
from photo_gallery.utils.prometheus_metrics import favorite_operations_total


def _favorite_from_row(row: Dict[str, Any]) -> Favorite:
    return Favorite(
        id=str(row.get("id") or f"{row['gallery_id']}-{row['photo_id']}"),
        gallery_id=row["gallery_id"],
        photo_id=row["photo_id"],
        created_at=parse_timestamp(row.get("created_at")),
    )


def _comment_from_row(row: Dict[str, Any]) -> Comment:
    return Comment(
        id=str(row.get("id") or f"{row['gallery_id']}-{row['photo_id']}-{row.get('created_at')}"),
        gallery_id=row["gallery_id"],
        photo_id=row["photo_id"],
        text=row.get("text") or "",
        created_at=parse_timestamp(row.get("created_at")),
    )


class FavoritesService:
    """
    Shared favorites (a set per gallery) and comments (a list per gallery).

    Reads degrade to an empty result when the remote store fails; writes raise
    GalleryStoreError.
    """

    def __init__(self, remote: SupabaseClient):
        self.remote = remote
        self.favorites_table = remote.settings.favorites_table
        self.comments_table = remote.settings.comments_table

    # ============== Favorites ==============

    async def get_favorites(self, gallery_id: str) -> List[Favorite]:
        try:
            rows = await self.remote.select(
                self.favorites_table,
                filters={"gallery_id": gallery_id},
                order="created_at",
            )
        except RemoteError as e:
            log_remote_failure("get_favorites", e)
            return []
        return [_favorite_from_row(row) for row in rows]

    async def _find_favorite(self, gallery_id: str, photo_id: str) -> Optional[Favorite]:
        rows = await self.remote.select(
            self.favorites_table,
            filters={"gallery_id": gallery_id, "photo_id": photo_id},
            limit=1,
        )
        return _favorite_from_row(rows[0]) if rows else None

    async def add_to_favorites(self, gallery_id: str, photo_id: str) -> Favorite:
        """
        Mark a photo as favorite. Adding an existing favorite returns it unchanged.
        """
        row = {
            "gallery_id": gallery_id,
            "photo_id": photo_id,
            "created_at": format_timestamp(utcnow()),
        }
        try:
            existing = await self._find_favorite(gallery_id, photo_id)
            if existing is not None:
                return existing
            try:
                rows = await self.remote.insert(self.favorites_table, [row])
            except RemoteError as e:
                # Another viewer added the same pair in between
                if e.kind != RemoteErrorKind.CONFLICT:
                    raise
                existing = await self._find_favorite(gallery_id, photo_id)
                if existing is not None:
                    return existing
                raise
        except RemoteError as e:
            log_remote_failure("add_favorite", e)
            raise GalleryStoreError(f"Failed to add favorite: {e.message}", kind=e.kind.value) from e

        favorite_operations_total.labels(operation="add").inc()
        return _favorite_from_row(rows[0] if rows else row)

    async def remove_from_favorites(self, gallery_id: str, photo_id: str) -> None:
        """Remove a favorite. Removing an absent favorite is a no-op."""
        try:
            await self.remote.delete(
                self.favorites_table,
                filters={"gallery_id": gallery_id, "photo_id": photo_id},
            )
        except RemoteError as e:
            log_remote_failure("remove_favorite", e)
            raise GalleryStoreError(f"Failed to remove favorite: {e.message}", kind=e.kind.value) from e
        favorite_operations_total.labels(operation="remove").inc()

    async def clear_all(self, gallery_id: str) -> int:
        """Remove every favorite of a gallery. Returns how many were removed."""
        try:
            rows = await self.remote.delete(self.favorites_table, filters={"gallery_id": gallery_id})
        except RemoteError as e:
            log_remote_failure("clear_favorites", e)
            raise GalleryStoreError(f"Failed to clear favorites: {e.message}", kind=e.kind.value) from e
        favorite_operations_total.labels(operation="clear").inc()
        log_info("Favorites cleared", event="favorites", gallery_id=gallery_id, count=len(rows))
        return len(rows)

    # ============== Comments ==============

    async def get_comments(self, gallery_id: str) -> List[Comment]:
        try:
            rows = await self.remote.select(
                self.comments_table,
                filters={"gallery_id": gallery_id},
                order="created_at",
            )
        except RemoteError as e:
            log_remote_failure("get_comments", e)
            return []
        return [_comment_from_row(row) for row in rows]

    async def add_comment(self, gallery_id: str, photo_id: str, text: str) -> Comment:
        """
        Append a comment.

        Raises:
            ValueError: text is empty or whitespace only
            GalleryStoreError: remote write failed
        """
        text = (text or "").strip()
        if not text:
            raise ValueError("Comment text cannot be empty")

        row = {
            "gallery_id": gallery_id,
            "photo_id": photo_id,
            "text": text,
            "created_at": format_timestamp(utcnow()),
        }
        try:
            rows = await self.remote.insert(self.comments_table, [row])
        except RemoteError as e:
            log_remote_failure("add_comment", e)
            raise GalleryStoreError(f"Failed to add comment: {e.message}", kind=e.kind.value) from e

        favorite_operations_total.labels(operation="comment").inc()
        return _comment_from_row(rows[0] if rows else row)

    async def get_comment_counts(self, gallery_id: str) -> Dict[str, int]:
        """Number of comments per photo id."""
        comments = await self.get_comments(gallery_id)
        return dict(Counter(comment.photo_id for comment in comments))

    async def delete_for_gallery(self, gallery_id: str) -> None:
        """Best-effort removal of all favorites and comments of a deleted gallery."""
        for table in (self.favorites_table, self.comments_table):
            try:
                await self.remote.delete(table, filters={"gallery_id": gallery_id})
            except RemoteError as e:
                log_warning(
                    f"Could not delete {table} rows of gallery",
                    event="favorites",
                    gallery_id=gallery_id,
                    kind=e.kind.value,
                )
