from photo_gallery.config import get_settings
from photo_gallery.services.supabase_client import RemoteErrorKind


async def create_gallery(client, admin_headers, **fields):
    resp = await client.post("/api/admin/galleries", json=fields, headers=admin_headers)
    assert resp.status_code == 201
    return resp.json()


class TestRootAndHealth:
    async def test_root(self, client):
        resp = await client.get("/")
        assert resp.status_code == 200
        assert resp.json()["docs"] == "/docs"

    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    async def test_detailed_health_degraded_without_supabase(self, client, remote):
        remote.fail_with = RemoteErrorKind.UNREACHABLE
        resp = await client.get("/health/detailed")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "degraded"
        assert data["checks"]["cache_database"]["status"] == "up"
        assert data["checks"]["supabase"]["status"] == "down"

    async def test_request_id_header(self, client):
        resp = await client.get("/", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"


class TestAdminAuth:
    async def test_wrong_password(self, client):
        resp = await client.post("/api/admin/login", json={"password": "nope"})
        assert resp.status_code == 401

    async def test_routes_need_token(self, client):
        assert (await client.get("/api/admin/galleries")).status_code == 401
        assert (await client.post("/api/admin/galleries", json={})).status_code == 401

    async def test_invalid_token(self, client):
        resp = await client.get("/api/admin/galleries", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401


class TestAdminGalleries:
    async def test_create_with_defaults(self, client, admin_headers):
        data = await create_gallery(client, admin_headers)
        assert data["bucketFolder"] == f"gallery-{data['id']}"
        assert data["bucketName"] == "photos"
        assert data["isPublic"] is True

    async def test_create_without_body(self, client, admin_headers):
        resp = await client.post("/api/admin/galleries", headers=admin_headers)
        assert resp.status_code == 201

    async def test_create_invalid_folder(self, client, admin_headers):
        resp = await client.post("/api/admin/galleries", json={"bucketFolder": "a//b"}, headers=admin_headers)
        assert resp.status_code == 422
        assert resp.json()["detail"] == "Bucket folder cannot contain consecutive forward slashes"

    async def test_create_remote_failure(self, client, admin_headers, remote):
        remote.fail_with = RemoteErrorKind.SERVER
        resp = await client.post("/api/admin/galleries", json={}, headers=admin_headers)
        assert resp.status_code == 503

    async def test_update(self, client, admin_headers):
        gallery = await create_gallery(client, admin_headers, name="Before")
        resp = await client.patch(
            f"/api/admin/galleries/{gallery['id']}",
            json={"name": "After", "allowComments": False},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "After"
        assert resp.json()["allowComments"] is False

    async def test_update_unknown(self, client, admin_headers):
        resp = await client.patch("/api/admin/galleries/missing", json={"name": "x"}, headers=admin_headers)
        assert resp.status_code == 404

    async def test_bucket_folder(self, client, admin_headers):
        gallery = await create_gallery(client, admin_headers)
        resp = await client.put(
            f"/api/admin/galleries/{gallery['id']}/bucket-folder",
            json={"bucketFolder": "clients/jones"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["bucketFolder"] == "clients/jones"

        resp = await client.put(
            f"/api/admin/galleries/{gallery['id']}/bucket-folder",
            json={"bucketFolder": "/jones"},
            headers=admin_headers,
        )
        assert resp.status_code == 422

    async def test_delete(self, client, admin_headers):
        gallery = await create_gallery(client, admin_headers)
        await client.get("/api/galleries")

        resp = await client.delete(f"/api/admin/galleries/{gallery['id']}", headers=admin_headers)
        assert resp.status_code == 204

        assert (await client.get(f"/api/galleries/{gallery['id']}")).status_code == 404
        assert (await client.delete(f"/api/admin/galleries/{gallery['id']}", headers=admin_headers)).status_code == 404

    async def test_stats_status_and_sync(self, client, admin_headers, remote):
        gallery = await create_gallery(client, admin_headers, bucketFolder="studio")
        remote.put_object("photos", "studio/a.jpg", content=b"abc")

        stats = (await client.get(f"/api/admin/galleries/{gallery['id']}/stats", headers=admin_headers)).json()
        assert stats["photoCount"] == 1
        assert stats["totalSize"] == 3

        overview = (await client.get("/api/admin/stats", headers=admin_headers)).json()
        assert overview == {"totalGalleries": 1, "totalPhotos": 1, "protectedGalleries": 0}

        status = (await client.get("/api/admin/status", headers=admin_headers)).json()
        assert status["isConnected"] is True
        assert status["remoteGalleries"] == 1

        sync = (await client.post("/api/admin/sync", headers=admin_headers)).json()
        assert sync["success"] is True
        assert sync["count"] == 1


class TestViewerGalleries:
    async def test_list_only_public_without_password(self, client, admin_headers):
        await create_gallery(client, admin_headers, name="Open")
        await create_gallery(client, admin_headers, name="Hidden", isPublic=False)
        await create_gallery(client, admin_headers, name="Locked", password="pw")

        resp = await client.get("/api/galleries")
        assert resp.status_code == 200
        data = resp.json()
        assert sorted(g["name"] for g in data) == ["Locked", "Open"]
        assert all("password" not in g for g in data)
        assert [g["isPasswordProtected"] for g in data if g["name"] == "Locked"] == [True]

    async def test_list_served_from_cache_when_unreachable(self, client, admin_headers, remote):
        await create_gallery(client, admin_headers, name="Cached")
        await client.get("/api/galleries")

        remote.fail_with = RemoteErrorKind.UNREACHABLE
        resp = await client.get("/api/galleries")
        assert resp.status_code == 200
        assert [g["name"] for g in resp.json()] == ["Cached"]

    async def test_get_counts_view(self, client, admin_headers):
        gallery = await create_gallery(client, admin_headers)
        resp = await client.get(f"/api/galleries/{gallery['id']}")
        assert resp.status_code == 200
        assert resp.json()["viewCount"] == 1

    async def test_get_unknown(self, client):
        assert (await client.get("/api/galleries/missing")).status_code == 404

    async def test_validate_bucket_folder(self, client):
        resp = await client.post("/api/galleries/validate-bucket-folder", json={"bucketFolder": "wedding-2024"})
        assert resp.json() == {"isValid": True, "error": None}

        resp = await client.post("/api/galleries/validate-bucket-folder", json={"bucketFolder": "a" * 101})
        assert resp.json()["isValid"] is False

    async def test_password_session_flow(self, client, admin_headers, remote):
        gallery = await create_gallery(client, admin_headers, password="s3cret", bucketFolder="locked")
        gid = gallery["id"]
        remote.put_object("photos", "locked/a.jpg")

        assert (await client.get(f"/api/galleries/{gid}/photos")).status_code == 403
        # no view is counted before the challenge
        assert (await client.get(f"/api/galleries/{gid}")).json()["viewCount"] == 0

        resp = await client.post(f"/api/galleries/{gid}/authenticate", json={"password": "wrong"})
        assert resp.status_code == 401

        resp = await client.post(f"/api/galleries/{gid}/authenticate", json={"password": "s3cret"})
        assert resp.json() == {"authenticated": True}
        assert (await client.get(f"/api/galleries/{gid}/session")).json() == {"authenticated": True}

        photos = await client.get(f"/api/galleries/{gid}/photos")
        assert photos.status_code == 200
        assert [p["name"] for p in photos.json()] == ["a.jpg"]

        assert (await client.post(f"/api/galleries/{gid}/logout")).status_code == 204
        assert (await client.get(f"/api/galleries/{gid}/photos")).status_code == 403

    async def test_password_session_is_per_viewer(self, client, admin_headers):
        gallery = await create_gallery(client, admin_headers, password="s3cret")
        gid = gallery["id"]
        cookie_name = get_settings().viewer_cookie_name

        resp = await client.post(f"/api/galleries/{gid}/authenticate", json={"password": "s3cret"})
        assert resp.status_code == 200
        viewer_a = client.cookies.get(cookie_name)
        assert viewer_a

        # a different browser is still locked out and cannot end viewer A's session
        client.cookies.clear()
        assert (await client.get(f"/api/galleries/{gid}/photos")).status_code == 403
        assert (await client.get(f"/api/galleries/{gid}/session")).json() == {"authenticated": False}
        assert (await client.post(f"/api/galleries/{gid}/logout")).status_code == 204

        client.cookies.clear()
        client.cookies.set(cookie_name, viewer_a)
        assert (await client.get(f"/api/galleries/{gid}/photos")).status_code == 200

    async def test_forged_viewer_cookie_is_replaced(self, client, admin_headers):
        gallery = await create_gallery(client, admin_headers, password="s3cret")
        cookie_name = get_settings().viewer_cookie_name
        client.cookies.clear()
        client.cookies.set(cookie_name, "short")

        resp = await client.get(f"/api/galleries/{gallery['id']}")
        assert resp.status_code == 200
        assert resp.cookies.get(cookie_name) not in (None, "short")

    async def test_authenticate_unknown(self, client):
        resp = await client.post("/api/galleries/missing/authenticate", json={"password": "x"})
        assert resp.status_code == 404


class TestPhotos:
    async def test_upload_list_search_delete(self, client, admin_headers):
        gallery = await create_gallery(client, admin_headers, bucketFolder="events")
        gid = gallery["id"]

        resp = await client.post(
            f"/api/galleries/{gid}/photos",
            files=[
                ("files", ("sunset.jpg", b"\xff\xd8\xff", "image/jpeg")),
                ("files", ("notes.txt", b"hello", "text/plain")),
            ],
            headers=admin_headers,
        )
        assert resp.status_code == 200
        result = resp.json()
        assert len(result["successful"]) == 1
        assert result["failed"] == [{"fileName": "notes.txt", "error": "Invalid image file type"}]
        photo = result["successful"][0]
        assert photo["originalName"] == "sunset.jpg"

        listed = (await client.get(f"/api/galleries/{gid}/photos")).json()
        assert [p["id"] for p in listed] == [photo["id"]]

        # search matches stored names; uploads get generated names
        assert (await client.get(f"/api/galleries/{gid}/photos", params={"q": "zzz"})).json() == []

        resp = await client.delete(f"/api/galleries/{gid}/photos/{photo['id']}", headers=admin_headers)
        assert resp.status_code == 204
        assert (await client.get(f"/api/galleries/{gid}/photos")).json() == []

        resp = await client.delete(f"/api/galleries/{gid}/photos/{photo['id']}", headers=admin_headers)
        assert resp.status_code == 404

    async def test_upload_needs_admin(self, client, admin_headers):
        gallery = await create_gallery(client, admin_headers)
        resp = await client.post(
            f"/api/galleries/{gallery['id']}/photos",
            files=[("files", ("a.jpg", b"x", "image/jpeg"))],
        )
        assert resp.status_code == 401

    async def test_upload_unknown_gallery(self, client, admin_headers):
        resp = await client.post(
            "/api/galleries/missing/photos",
            files=[("files", ("a.jpg", b"x", "image/jpeg"))],
            headers=admin_headers,
        )
        assert resp.status_code == 404


class TestFavoritesAndComments:
    async def test_favorites(self, client, admin_headers):
        gid = (await create_gallery(client, admin_headers))["id"]

        first = await client.put(f"/api/galleries/{gid}/favorites/p1")
        again = await client.put(f"/api/galleries/{gid}/favorites/p1")
        assert first.status_code == 200
        assert again.json() == first.json()

        await client.put(f"/api/galleries/{gid}/favorites/p2")
        assert (await client.delete(f"/api/galleries/{gid}/favorites/p1")).status_code == 204
        assert (await client.delete(f"/api/galleries/{gid}/favorites/absent")).status_code == 204
        assert [f["photoId"] for f in (await client.get(f"/api/galleries/{gid}/favorites")).json()] == ["p2"]

        assert (await client.delete(f"/api/galleries/{gid}/favorites")).status_code == 204
        assert (await client.get(f"/api/galleries/{gid}/favorites")).json() == []

    async def test_favorites_disabled(self, client, admin_headers):
        gid = (await create_gallery(client, admin_headers, allowFavorites=False))["id"]
        assert (await client.put(f"/api/galleries/{gid}/favorites/p1")).status_code == 403

    async def test_favorites_unavailable(self, client, admin_headers, remote):
        gid = (await create_gallery(client, admin_headers))["id"]
        await client.get("/api/galleries")
        remote.fail_with = RemoteErrorKind.UNREACHABLE
        assert (await client.put(f"/api/galleries/{gid}/favorites/p1")).status_code == 503

    async def test_comments(self, client, admin_headers):
        gid = (await create_gallery(client, admin_headers))["id"]

        resp = await client.post(f"/api/galleries/{gid}/comments", json={"photoId": "p1", "text": " Lovely! "})
        assert resp.status_code == 201
        assert resp.json()["text"] == "Lovely!"

        resp = await client.post(f"/api/galleries/{gid}/comments", json={"photoId": "p1", "text": "   "})
        assert resp.status_code == 422

        comments = (await client.get(f"/api/galleries/{gid}/comments")).json()
        assert [c["text"] for c in comments] == ["Lovely!"]

    async def test_comment_counts(self, client, admin_headers):
        gid = (await create_gallery(client, admin_headers))["id"]
        for photo_id, text in [("p1", "one"), ("p1", "two"), ("p2", "three")]:
            await client.post(f"/api/galleries/{gid}/comments", json={"photoId": photo_id, "text": text})

        resp = await client.get(f"/api/galleries/{gid}/comments/counts")
        assert resp.status_code == 200
        assert resp.json() == {"p1": 2, "p2": 1}

    async def test_comment_counts_need_session(self, client, admin_headers):
        gid = (await create_gallery(client, admin_headers, password="s3cret"))["id"]
        assert (await client.get(f"/api/galleries/{gid}/comments/counts")).status_code == 403

    async def test_comments_disabled(self, client, admin_headers):
        gid = (await create_gallery(client, admin_headers, allowComments=False))["id"]
        resp = await client.post(f"/api/galleries/{gid}/comments", json={"photoId": "p1", "text": "hi"})
        assert resp.status_code == 403


class TestNavigation:
    async def test_resolve_gallery(self, client):
        resp = await client.get("/api/route", params={"path": "/gallery/abc123/"})
        assert resp.json() == {"path": "/gallery/abc123", "type": "gallery", "galleryId": "abc123"}

    async def test_resolve_unknown(self, client):
        resp = await client.get("/api/route", params={"path": "/somewhere/else"})
        assert resp.json() == {"path": "/", "type": "home", "galleryId": None}
