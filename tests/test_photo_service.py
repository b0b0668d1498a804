import pytest
from prometheus_client import REGISTRY

from photo_gallery.schemas.gallery import GalleryCreate
from photo_gallery.schemas.photo import PhotoUploadItem
from photo_gallery.services.exceptions import (
    BucketConfigurationError,
    GalleryNotFoundError,
    StorageNotConfiguredError,
)
from photo_gallery.services.gallery import GalleryService
from photo_gallery.services.photo import PhotoService
from photo_gallery.services.supabase_client import RemoteErrorKind
from photo_gallery.utils.fallback import ServiceStatus, get_fallback_strategy


@pytest.fixture
def photo_service(cache, remote) -> PhotoService:
    return PhotoService(cache, remote)


@pytest.fixture
def gallery_service(cache, remote) -> GalleryService:
    return GalleryService(cache, remote)


@pytest.fixture
async def gallery(gallery_service):
    return await gallery_service.create_gallery(GalleryCreate(name="Portraits", bucket_folder="portraits"))


def image(name: str, content: bytes = b"\xff\xd8\xff image", content_type: str = "image/jpeg") -> PhotoUploadItem:
    return PhotoUploadItem(filename=name, content_type=content_type, content=content)


class TestListPhotos:
    async def test_projects_storage_objects(self, photo_service, remote, gallery):
        remote.put_object("photos", "portraits/b.png", content=b"12345", content_type="image/png")
        remote.put_object("photos", "portraits/a.jpg")
        remote.put_object("photos", "elsewhere/c.jpg")

        photos = await photo_service.list_photos(gallery.id)

        assert [p.name for p in photos] == ["a.jpg", "b.png"]
        png = photos[1]
        assert png.id == f"{gallery.id}-b.png"
        assert png.gallery_id == gallery.id
        assert png.size == 5
        assert png.mime_type == "image/png"
        assert png.bucket_path == "portraits/b.png"
        assert png.url.endswith("/storage/v1/object/public/photos/portraits/b.png")

    async def test_updates_photo_count(self, photo_service, gallery_service, remote, gallery):
        remote.put_object("photos", "portraits/a.jpg")
        remote.put_object("photos", "portraits/b.jpg")

        await photo_service.list_photos(gallery.id)
        assert (await gallery_service.get_gallery(gallery.id)).photo_count == 2

    async def test_unknown_gallery(self, photo_service):
        assert await photo_service.list_photos("missing") == []

    async def test_storage_failure_serves_cached_listing(self, photo_service, remote, gallery):
        remote.put_object("photos", "portraits/a.jpg")
        online = await photo_service.list_photos(gallery.id)

        remote.fail_with = RemoteErrorKind.UNREACHABLE
        offline = await photo_service.list_photos(gallery.id)

        assert offline == online
        assert get_fallback_strategy().get_storage_status() == ServiceStatus.DOWN

    async def test_search(self, photo_service, remote, gallery):
        remote.put_object("photos", "portraits/Beach-Sunset.jpg")
        remote.put_object("photos", "portraits/city.jpg")

        found = await photo_service.search_photos(gallery.id, "  sunset ")
        assert [p.name for p in found] == ["Beach-Sunset.jpg"]
        assert len(await photo_service.search_photos(gallery.id, "")) == 2


class TestUploadPhotos:
    async def test_batch_with_invalid_file(self, photo_service, remote, gallery):
        files = [
            image("one.jpg"),
            image("two.png", content_type="image/png"),
            PhotoUploadItem(filename="three.txt", content_type="text/plain", content=b"notes"),
            image("four.jpg"),
            image("five.webp", content_type="image/webp"),
        ]
        progress = []

        result = await photo_service.upload_photos(gallery.id, files, on_progress=lambda done, total: progress.append((done, total)))

        assert len(result.successful) == 4
        assert len(result.failed) == 1
        assert result.failed[0].file_name == "three.txt"
        assert result.failed[0].error == "Invalid image file type"
        assert progress == [(1, 5), (2, 5), (3, 5), (4, 5), (5, 5)]
        assert [p.original_name for p in result.successful] == ["one.jpg", "two.png", "four.jpg", "five.webp"]
        assert len(await photo_service.list_photos(gallery.id)) == 4

    async def test_async_progress_callback(self, photo_service, gallery):
        seen = []

        async def on_progress(done, total):
            seen.append(done)

        await photo_service.upload_photos(gallery.id, [image("a.jpg"), image("b.jpg")], on_progress=on_progress)
        assert seen == [1, 2]

    async def test_storage_failure_is_per_file(self, photo_service, remote, gallery, monkeypatch):
        names = iter(["first.jpg", "second.jpg", "third.jpg"])
        monkeypatch.setattr("photo_gallery.services.photo.generate_unique_filename", lambda original: next(names))
        remote.fail_uploads = {"second.jpg"}

        result = await photo_service.upload_photos(gallery.id, [image("a.jpg"), image("b.jpg"), image("c.jpg")])

        assert [p.name for p in result.successful] == ["first.jpg", "third.jpg"]
        assert [f.file_name for f in result.failed] == ["b.jpg"]

    async def test_existing_object_conflict(self, photo_service, remote, gallery, monkeypatch):
        monkeypatch.setattr("photo_gallery.services.photo.generate_unique_filename", lambda original: "same.jpg")
        remote.put_object("photos", "portraits/same.jpg")

        result = await photo_service.upload_photos(gallery.id, [image("a.jpg")])
        assert result.failed[0].error == "File already exists"

    async def test_too_large(self, photo_service, remote, gallery):
        remote.settings.max_upload_size_bytes = 4
        result = await photo_service.upload_photos(gallery.id, [image("big.jpg", content=b"12345")])
        assert result.failed[0].error.startswith("File too large")

    async def test_rejections_counted_by_reason(self, photo_service, remote, gallery):
        def uploads(result):
            return REGISTRY.get_sample_value("photo_gallery_photo_upload_total", {"result": result}) or 0.0

        too_large, invalid_type = uploads("too_large"), uploads("invalid_type")
        remote.settings.max_upload_size_bytes = 4

        await photo_service.upload_photos(gallery.id, [
            image("big.jpg", content=b"12345"),
            PhotoUploadItem(filename="notes.txt", content_type="text/plain", content=b"n"),
        ])

        assert uploads("too_large") == too_large + 1
        assert uploads("invalid_type") == invalid_type + 1

    async def test_uploaded_photo_shape(self, photo_service, gallery):
        result = await photo_service.upload_photos(gallery.id, [image("IMG_0001.JPG")])
        photo = result.successful[0]
        assert photo.original_name == "IMG_0001.JPG"
        assert photo.name.endswith(".jpg")
        assert photo.bucket_path == f"portraits/{photo.name}"
        assert photo.id == f"{gallery.id}-{photo.name}"

    async def test_unknown_gallery(self, photo_service):
        with pytest.raises(GalleryNotFoundError):
            await photo_service.upload_photos("missing", [image("a.jpg")])

    async def test_storage_not_configured(self, cache, offline_remote):
        offline_gallery = await GalleryService(cache, offline_remote).create_gallery()
        with pytest.raises(StorageNotConfiguredError):
            await PhotoService(cache, offline_remote).upload_photos(offline_gallery.id, [image("a.jpg")])

    async def test_gallery_without_folder(self, photo_service, remote):
        remote.table("galleries").append({
            "id": "nofolder",
            "name": "No folder",
            "created_at": "2024-01-01T00:00:00+00:00",
            "bucket_folder": None,
        })
        with pytest.raises(BucketConfigurationError):
            await photo_service.upload_photos("nofolder", [image("a.jpg")])


class TestDeletePhoto:
    async def test_delete(self, photo_service, remote, gallery):
        remote.put_object("photos", "portraits/a.jpg")
        remote.put_object("photos", "portraits/b.jpg")

        assert await photo_service.delete_photo(gallery.id, f"{gallery.id}-a.jpg") is True
        assert "portraits/a.jpg" not in remote.bucket("photos")
        assert [p.name for p in await photo_service.list_photos(gallery.id)] == ["b.jpg"]

    async def test_unknown_photo(self, photo_service, gallery):
        assert await photo_service.delete_photo(gallery.id, "nope") is False

    async def test_unknown_gallery(self, photo_service):
        assert await photo_service.delete_photo("missing", "nope") is False


class TestStats:
    async def test_gallery_stats(self, photo_service, remote, gallery):
        remote.put_object("photos", "portraits/a.jpg", content=b"123")
        remote.put_object("photos", "portraits/b.jpg", content=b"4567")

        stats = await photo_service.get_gallery_stats(gallery.id)
        assert stats.photo_count == 2
        assert stats.total_size == 7
        assert stats.bucket_folder == "portraits"
        assert stats.is_password_protected is False

    async def test_unknown_gallery_stats(self, photo_service):
        assert await photo_service.get_gallery_stats("missing") is None

    async def test_overview(self, photo_service, gallery_service, remote, gallery):
        await gallery_service.create_gallery(GalleryCreate(password="pw"))
        remote.put_object("photos", "portraits/a.jpg")

        overview = await photo_service.get_overview_stats()
        assert overview.total_galleries == 2
        assert overview.total_photos == 1
        assert overview.protected_galleries == 1
