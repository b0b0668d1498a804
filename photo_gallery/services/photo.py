"""
Photo service: listing, upload and deletion of the objects in a gallery folder.
"""
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from photo_gallery.schemas.gallery import Gallery, GalleryStats, GalleryUpdate, OverviewStats
from photo_gallery.schemas.photo import Photo, PhotoUploadItem, UploadFailure, UploadResult
from photo_gallery.services.cache_store import CacheStore
from photo_gallery.services.exceptions import (
    BucketConfigurationError,
    GalleryNotFoundError,
    GalleryStoreError,
    StorageNotConfiguredError,
)
from photo_gallery.services.gallery import GalleryService
from photo_gallery.services.repository import log_remote_failure
from photo_gallery.services.row_mapping import parse_timestamp, utcnow
from photo_gallery.services.supabase_client import RemoteError, RemoteErrorKind, SupabaseClient
from photo_gallery.utils.fallback import ServiceStatus, get_fallback_strategy
from photo_gallery.utils.logger import log_info, log_warning
from photo_gallery.utils.prometheus_metrics import (
    cache_fallback_total,
    photo_upload_file_size_bytes,
    photo_upload_total,
)
from photo_gallery.utils.validation import (
    generate_unique_filename,
    guess_content_type,
    is_valid_image_file,
)

ProgressCallback = Callable[[int, int], Union[None, Awaitable[None]]]


class PhotoService:
    """
    Service for handling photo operations.
    Photos are projections of storage objects; listings are cached per gallery
    and the cache is dropped on every upload or delete.
    """

    def __init__(self, cache: CacheStore, remote: SupabaseClient):
        self.cache = cache
        self.remote = remote
        self.gallery_service = GalleryService(cache, remote)

    def _photo_from_object(self, gallery: Gallery, item: Dict[str, Any]) -> Photo:
        name = item["name"]
        path = f"{gallery.bucket_folder}/{name}"
        metadata = item.get("metadata") or {}
        return Photo(
            id=f"{gallery.id}-{name}",
            gallery_id=gallery.id,
            name=name,
            original_name=name,
            url=self.remote.get_public_url(gallery.bucket_name, path),
            description="",
            uploaded_at=parse_timestamp(item.get("created_at") or item.get("updated_at")),
            size=metadata.get("size") or 0,
            mime_type=metadata.get("mimetype") or "image/jpeg",
            bucket_path=path,
        )

    async def _cached_photos(self, gallery_id: str) -> List[Photo]:
        records = await self.cache.get_photos(gallery_id) or []
        photos = []
        for record in records:
            try:
                photos.append(Photo.model_validate(record))
            except ValueError:
                continue
        return photos

    async def _list_for_gallery(self, gallery: Gallery) -> List[Photo]:
        try:
            files = await self.remote.list_files(gallery.bucket_name, gallery.bucket_folder)
        except RemoteError as e:
            log_remote_failure("list_photos", e, service="storage")
            cache_fallback_total.labels(operation="list_photos", reason=e.kind.value).inc()
            return await self._cached_photos(gallery.id)

        get_fallback_strategy().set_storage_status(ServiceStatus.HEALTHY)
        photos = [self._photo_from_object(gallery, item) for item in files]
        await self.cache.set_photos(
            gallery.id,
            [photo.model_dump(by_alias=True, mode="json") for photo in photos],
        )

        if gallery.photo_count != len(photos):
            await self._store_photo_count(gallery.id, len(photos))
        return photos

    async def _store_photo_count(self, gallery_id: str, count: int) -> None:
        try:
            await self.gallery_service.update_gallery(gallery_id, GalleryUpdate(photo_count=count))
        except GalleryStoreError as e:
            log_warning("Could not update photo count", event="photo", gallery_id=gallery_id, error=e.message)

    async def _refresh(self, gallery: Gallery) -> None:
        """Drop the cached listing and recompute the gallery's photo count."""
        await self.cache.invalidate_photos(gallery.id)
        await self._list_for_gallery(gallery)

    # ============== Listing ==============

    async def list_photos(self, gallery_id: str) -> List[Photo]:
        """
        Get all photos of a gallery.

        Returns:
            Photos of the gallery folder; the cached listing when storage fails;
            an empty list for unknown galleries or galleries without a folder
        """
        gallery = await self.gallery_service.get_gallery(gallery_id)
        if gallery is None or not gallery.has_bucket:
            return []
        return await self._list_for_gallery(gallery)

    async def search_photos(self, gallery_id: str, query: str) -> List[Photo]:
        """Case-insensitive match on name, original name or description."""
        photos = await self.list_photos(gallery_id)
        needle = (query or "").strip().lower()
        if not needle:
            return photos
        return [
            photo for photo in photos
            if needle in photo.name.lower()
            or needle in photo.original_name.lower()
            or needle in (photo.description or "").lower()
        ]

    # ============== Upload ==============

    async def upload_photos(
        self,
        gallery_id: str,
        files: Sequence[PhotoUploadItem],
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadResult:
        """
        Upload files to a gallery folder, one at a time in input order.

        A failing file is recorded and the batch continues. ``on_progress`` is
        called after every file with (files processed so far, total); it may be a
        plain function or a coroutine function.

        Raises:
            GalleryNotFoundError: unknown gallery
            StorageNotConfiguredError: Supabase is not configured
            BucketConfigurationError: gallery has no bucket folder
        """
        gallery = await self.gallery_service.get_gallery(gallery_id)
        if gallery is None:
            raise GalleryNotFoundError(gallery_id)
        if not self.remote.is_ready():
            raise StorageNotConfiguredError()
        if not gallery.has_bucket:
            raise BucketConfigurationError(gallery_id)

        max_size = self.remote.settings.max_upload_size_bytes
        result = UploadResult()
        total = len(files)

        for index, item in enumerate(files, start=1):
            error = None
            if not is_valid_image_file(item.filename, item.content_type):
                error = "Invalid image file type"
                photo_upload_total.labels(result="invalid_type").inc()
            elif item.size > max_size:
                error = f"File too large (max {max_size // (1024 * 1024)}MB)"
                photo_upload_total.labels(result="too_large").inc()
            else:
                photo = await self._upload_one(gallery, item)
                if isinstance(photo, Photo):
                    result.successful.append(photo)
                else:
                    error = photo

            if error is not None:
                result.failed.append(UploadFailure(file_name=item.filename, error=error))

            if on_progress is not None:
                outcome = on_progress(index, total)
                if inspect.isawaitable(outcome):
                    await outcome

        await self._refresh(gallery)

        log_info(
            "Photos uploaded",
            event="photo",
            gallery_id=gallery_id,
            uploaded=len(result.successful),
            failed=len(result.failed),
        )
        return result

    async def _upload_one(self, gallery: Gallery, item: PhotoUploadItem) -> Union[Photo, str]:
        """Upload a single validated file. Returns the Photo, or an error message."""
        unique_name = generate_unique_filename(item.filename)
        path = f"{gallery.bucket_folder}/{unique_name}"
        content_type = guess_content_type(item.filename, item.content_type) or "application/octet-stream"

        try:
            await self.remote.upload_file(gallery.bucket_name, path, item.content, content_type, upsert=False)
        except RemoteError as e:
            photo_upload_total.labels(result="failure").inc()
            log_warning(
                "Photo upload failed",
                event="photo",
                gallery_id=gallery.id,
                file_name=item.filename,
                kind=e.kind.value,
            )
            if e.kind == RemoteErrorKind.CONFLICT:
                return "File already exists"
            return e.message or "Upload failed"

        photo_upload_total.labels(result="success").inc()
        photo_upload_file_size_bytes.observe(item.size)
        return Photo(
            id=f"{gallery.id}-{unique_name}",
            gallery_id=gallery.id,
            name=unique_name,
            original_name=item.filename,
            url=self.remote.get_public_url(gallery.bucket_name, path),
            description="",
            uploaded_at=utcnow(),
            size=item.size,
            mime_type=content_type,
            bucket_path=path,
        )

    # ============== Delete ==============

    async def delete_photo(self, gallery_id: str, photo_id: str) -> bool:
        """
        Delete one photo of a gallery.

        Returns:
            False if the gallery or photo does not exist or storage refused the delete
        """
        gallery = await self.gallery_service.get_gallery(gallery_id)
        if gallery is None or not gallery.has_bucket:
            return False

        photos = await self._list_for_gallery(gallery)
        photo = next((p for p in photos if p.id == photo_id), None)
        if photo is None:
            return False

        try:
            await self.remote.delete_files(
                gallery.bucket_name,
                [photo.bucket_path or f"{gallery.bucket_folder}/{photo.name}"],
            )
        except RemoteError as e:
            log_remote_failure("delete_photo", e, service="storage")
            return False

        await self._refresh(gallery)
        log_info("Photo deleted", event="photo", gallery_id=gallery_id, photo_id=photo_id)
        return True

    # ============== Statistics ==============

    async def get_gallery_stats(self, gallery_id: str) -> Optional[GalleryStats]:
        gallery = await self.gallery_service.get_gallery(gallery_id)
        if gallery is None:
            return None
        photos = await self._list_for_gallery(gallery) if gallery.has_bucket else []
        return GalleryStats(
            photo_count=len(photos),
            total_size=sum(photo.size for photo in photos),
            last_updated=gallery.updated_at,
            bucket_folder=gallery.bucket_folder or "unknown",
            bucket_name=gallery.bucket_name,
            is_password_protected=gallery.is_password_protected,
        )

    async def get_overview_stats(self) -> OverviewStats:
        """Totals for the admin dashboard."""
        galleries = await self.gallery_service.list_galleries()
        total_photos = 0
        for gallery in galleries:
            if gallery.has_bucket:
                total_photos += len(await self._list_for_gallery(gallery))
        return OverviewStats(
            total_galleries=len(galleries),
            total_photos=total_photos,
            protected_galleries=sum(1 for g in galleries if g.is_password_protected),
        )
