"""
Gallery directory service: gallery CRUD, password sessions, migration and sync.
"""
from typing import List, Optional

from photo_gallery.schemas.gallery import (
    DEFAULT_BUCKET,
    BucketFolderValidation,
    ConnectionStatus,
    Gallery,
    GalleryCreate,
    GalleryUpdate,
    SyncResult,
)
from photo_gallery.services.cache_store import (
    LEGACY_GALLERIES_BACKUP_KEY,
    LEGACY_GALLERIES_KEY,
    MIGRATION_FLAG_KEY,
    CacheStore,
)
from photo_gallery.services.exceptions import BucketFolderError, GalleryStoreError
from photo_gallery.services.favorites import FavoritesService
from photo_gallery.services.repository import FallbackRepository, log_remote_failure
from photo_gallery.services.row_mapping import (
    gallery_from_cache_record,
    gallery_to_row,
    gallery_update_to_row,
    utcnow,
)
from photo_gallery.services.supabase_client import RemoteError, RemoteErrorKind, SupabaseClient
from photo_gallery.utils.logger import log_error, log_info, log_warning
from photo_gallery.utils.prometheus_metrics import gallery_operations_total
from photo_gallery.utils.security import generate_gallery_id, secrets_equal
from photo_gallery.utils.validation import validate_bucket_folder


def default_bucket_folder(gallery_id: str) -> str:
    return f"gallery-{gallery_id}"


class GalleryService:
    """
    Service for handling gallery operations.
    Gallery records go through the FallbackRepository; password sessions and
    photo listings live in the local cache. Sessions belong to ``viewer_id``;
    without one, a passed challenge is not remembered.
    """

    def __init__(self, cache: CacheStore, remote: SupabaseClient, viewer_id: Optional[str] = None):
        self.cache = cache
        self.remote = remote
        self.viewer_id = viewer_id
        self.repository = FallbackRepository(cache, remote)
        self.favorites_service = FavoritesService(remote)

    # ============== Validation ==============

    @staticmethod
    def validate_bucket_folder(folder: Optional[str]) -> BucketFolderValidation:
        return validate_bucket_folder(folder)

    def _require_valid_folder(self, folder: Optional[str]) -> None:
        result = validate_bucket_folder(folder)
        if not result.is_valid:
            raise BucketFolderError(result.error)

    # ============== Gallery CRUD ==============

    async def list_galleries(self) -> List[Gallery]:
        """All galleries, newest first. Falls back to the cached directory."""
        return await self.repository.list()

    async def get_gallery(self, gallery_id: str) -> Optional[Gallery]:
        """
        Get a gallery by ID.

        Returns:
            Gallery if found remotely or in the local cache, None otherwise
        """
        return await self.repository.get(gallery_id)

    async def get_gallery_with_sync(self, gallery_id: str) -> Optional[Gallery]:
        """
        Get a gallery, resyncing the directory once when it is unknown.
        Covers a share link opened on a device that never listed the gallery.
        """
        gallery = await self.get_gallery(gallery_id)
        if gallery is None and self.remote.is_ready():
            result = await self.resync()
            if result.success:
                gallery = await self.get_gallery(gallery_id)
        return gallery

    async def create_gallery(self, gallery_data: Optional[GalleryCreate] = None) -> Gallery:
        """
        Create a new gallery.

        Args:
            gallery_data: Optional fields; everything missing gets a default

        Returns:
            Created Gallery

        Raises:
            BucketFolderError: supplied bucket folder is invalid
            GalleryStoreError: remote insert failed
        """
        gallery_data = gallery_data or GalleryCreate()
        if gallery_data.bucket_folder is not None:
            self._require_valid_folder(gallery_data.bucket_folder)

        gallery_id = generate_gallery_id()
        now = utcnow()
        gallery = Gallery(
            id=gallery_id,
            name=gallery_data.name or f"Gallery {gallery_id}",
            description=gallery_data.description or None,
            created_at=now,
            updated_at=now,
            is_public=True if gallery_data.is_public is None else gallery_data.is_public,
            password=gallery_data.password or None,
            bucket_folder=gallery_data.bucket_folder or default_bucket_folder(gallery_id),
            bucket_name=gallery_data.bucket_name or self.remote.settings.default_bucket or DEFAULT_BUCKET,
            photo_count=0,
            view_count=0,
            allow_comments=True if gallery_data.allow_comments is None else gallery_data.allow_comments,
            allow_favorites=True if gallery_data.allow_favorites is None else gallery_data.allow_favorites,
        )

        try:
            gallery = await self.repository.insert(gallery)
        except GalleryStoreError:
            gallery_operations_total.labels(operation="create", result="failure").inc()
            raise

        await self._create_folder(gallery.bucket_name, gallery.bucket_folder)

        gallery_operations_total.labels(operation="create", result="success").inc()
        log_info("Gallery created", event="gallery", gallery_id=gallery.id, bucket_folder=gallery.bucket_folder)
        return gallery

    async def _create_folder(self, bucket: str, folder: Optional[str]) -> None:
        """Best-effort; a missing folder only means an empty listing."""
        if not folder or not self.remote.is_ready():
            return
        try:
            await self.remote.create_folder(bucket, folder)
        except RemoteError as e:
            log_warning(
                "Could not create storage folder",
                event="gallery",
                bucket=bucket,
                bucket_folder=folder,
                kind=e.kind.value,
            )

    async def update_gallery(self, gallery_id: str, update_data: GalleryUpdate) -> Optional[Gallery]:
        """
        Merge the fields set on ``update_data`` into a gallery.

        Returns:
            Updated Gallery, or None if the gallery does not exist

        Raises:
            BucketFolderError: supplied bucket folder is invalid
            GalleryStoreError: remote update failed
        """
        fields = update_data.model_fields_set
        if "bucket_folder" in fields and update_data.bucket_folder is not None:
            self._require_valid_folder(update_data.bucket_folder)

        try:
            gallery = await self.repository.update(gallery_id, gallery_update_to_row(update_data))
        except GalleryStoreError:
            gallery_operations_total.labels(operation="update", result="failure").inc()
            raise

        if gallery is None:
            return None

        if fields & {"bucket_folder", "bucket_name"}:
            await self.cache.invalidate_photos(gallery_id)

        gallery_operations_total.labels(operation="update", result="success").inc()
        return gallery

    async def delete_gallery(self, gallery_id: str) -> bool:
        """
        Delete a gallery with its stored photos, favorites and comments.

        Storage and favorites cleanup are best-effort. Local photo cache and every
        viewer's password session are always cleared.

        Returns:
            True if the gallery existed
        """
        gallery = await self.get_gallery(gallery_id)
        if gallery is None:
            return False

        if gallery.has_bucket and self.remote.is_ready():
            try:
                paths = await self.remote.list_object_paths(gallery.bucket_name, gallery.bucket_folder)
                await self.remote.delete_files(gallery.bucket_name, paths)
                log_info(
                    "Deleted gallery objects",
                    event="gallery",
                    gallery_id=gallery_id,
                    count=len(paths),
                )
            except RemoteError as e:
                log_warning(
                    "Could not delete gallery objects",
                    event="gallery",
                    gallery_id=gallery_id,
                    kind=e.kind.value,
                )

        try:
            await self.repository.delete(gallery_id)
        except GalleryStoreError:
            gallery_operations_total.labels(operation="delete", result="failure").inc()
            raise

        if self.remote.is_ready():
            await self.favorites_service.delete_for_gallery(gallery_id)

        await self.cache.invalidate_photos(gallery_id)
        await self.cache.remove_gallery_sessions(gallery_id)

        gallery_operations_total.labels(operation="delete", result="success").inc()
        log_info("Gallery deleted", event="gallery", gallery_id=gallery_id)
        return True

    async def increment_view_count(self, gallery_id: str) -> Optional[Gallery]:
        """Count one viewer visit. A failed write leaves the gallery as it was."""
        gallery = await self.get_gallery(gallery_id)
        if gallery is None:
            return None
        try:
            updated = await self.repository.update(
                gallery_id,
                gallery_update_to_row(GalleryUpdate(view_count=gallery.view_count + 1)),
            )
        except GalleryStoreError:
            return gallery
        return updated or gallery

    # ============== Bucket folder ==============

    async def update_bucket_folder(self, gallery_id: str, bucket_folder: str) -> Optional[Gallery]:
        """
        Point a gallery at another storage folder.

        The photo cache is dropped so the next listing reads the new folder.

        Raises:
            BucketFolderError: folder is invalid
        """
        self._require_valid_folder(bucket_folder)
        gallery = await self.update_gallery(gallery_id, GalleryUpdate(bucket_folder=bucket_folder))
        if gallery is None:
            return None
        await self._create_folder(gallery.bucket_name, bucket_folder)
        return gallery

    # ============== Password sessions ==============

    async def authenticate(self, gallery_id: str, password: Optional[str]) -> bool:
        """
        Check a viewer's access to a gallery.

        Public galleries without a password always pass. Otherwise the supplied
        password must equal the stored one. A passed check is remembered for this
        viewer until logout or gallery deletion.
        """
        gallery = await self.get_gallery(gallery_id)
        if gallery is None:
            return False

        if gallery.is_public and not gallery.password:
            authenticated = True
        else:
            authenticated = secrets_equal(password, gallery.password)

        if authenticated and self.viewer_id:
            await self.cache.add_auth_session(self.viewer_id, gallery_id)
        gallery_operations_total.labels(
            operation="authenticate",
            result="success" if authenticated else "failure",
        ).inc()
        return authenticated

    async def is_authenticated(self, gallery_id: str) -> bool:
        if not self.viewer_id:
            return False
        return gallery_id in await self.cache.get_auth_sessions(self.viewer_id)

    async def can_view(self, gallery: Gallery) -> bool:
        """Galleries without a password are open; others need a passed challenge."""
        return not gallery.password or await self.is_authenticated(gallery.id)

    async def logout(self, gallery_id: str) -> None:
        if self.viewer_id:
            await self.cache.remove_auth_session(self.viewer_id, gallery_id)

    # ============== Sync & migration ==============

    async def resync(self) -> SyncResult:
        """Force a remote re-read of the gallery directory."""
        if not self.remote.is_ready():
            return SyncResult(success=False, count=0, error="Supabase not configured")
        try:
            galleries = await self.repository.fetch_all()
        except RemoteError as e:
            log_remote_failure("sync", e)
            gallery_operations_total.labels(operation="sync", result="failure").inc()
            return SyncResult(success=False, count=0, error=e.message)

        gallery_operations_total.labels(operation="sync", result="success").inc()
        log_info("Galleries synced from Supabase", event="gallery", count=len(galleries))
        return SyncResult(success=True, count=len(galleries))

    async def migrate_local_galleries(self) -> int:
        """
        Upload the legacy local gallery snapshot to the remote table once.

        The upsert is keyed on id, so a retry after a partial failure is safe.
        On success the snapshot is moved to the backup key and the migration flag
        is persisted; on failure nothing changes and the next startup retries.

        Returns:
            Number of galleries migrated
        """
        if await self.cache.contains(MIGRATION_FLAG_KEY):
            return 0
        if not self.remote.is_ready():
            return 0

        records = await self.cache.get(LEGACY_GALLERIES_KEY)
        if not isinstance(records, list) or not records:
            await self.cache.set(MIGRATION_FLAG_KEY, True)
            return 0

        rows = []
        for record in records:
            try:
                gallery = gallery_from_cache_record(record)
            except ValueError:
                gallery = None
            if gallery is None:
                log_warning("Skipping unreadable legacy gallery", event="migration")
                continue
            rows.append(gallery_to_row(gallery))

        log_info("Migrating local galleries", event="migration", count=len(rows))
        try:
            if rows:
                await self.repository.upsert_rows(rows)
        except RemoteError as e:
            gallery_operations_total.labels(operation="migrate", result="failure").inc()
            log_error("Gallery migration failed", event="migration", kind=e.kind.value)
            return 0

        await self.cache.set(LEGACY_GALLERIES_BACKUP_KEY, records)
        await self.cache.remove(LEGACY_GALLERIES_KEY)
        await self.cache.set(MIGRATION_FLAG_KEY, True)

        gallery_operations_total.labels(operation="migrate", result="success").inc()
        log_info("Local galleries migrated", event="migration", count=len(rows))
        return len(rows)

    # ============== Connection status ==============

    async def check_table(self) -> bool:
        return await self.repository.check_table()

    async def get_connection_status(self) -> ConnectionStatus:
        """Remote reachability and table readiness for the admin panel."""
        is_connected = False
        is_table_ready = False
        remote_galleries = 0
        try:
            remote_galleries = await self.repository.count_remote()
            is_connected = True
            is_table_ready = True
        except RemoteError as e:
            is_connected = e.kind not in (RemoteErrorKind.NOT_CONFIGURED, RemoteErrorKind.UNREACHABLE)
            if e.kind == RemoteErrorKind.TABLE_MISSING:
                await self.check_table()

        local_galleries = len(await self.repository.cached_galleries())
        return ConnectionStatus(
            is_connected=is_connected,
            is_table_ready=is_table_ready,
            local_galleries=local_galleries,
            remote_galleries=remote_galleries,
        )
