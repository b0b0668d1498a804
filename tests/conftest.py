"""
Shared fixtures: in-memory cache database and an in-memory Supabase fake.
"""
import os

os.environ.setdefault("CACHE_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ADMIN_PASSWORD", "test-admin-password")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("SUPABASE_URL", "")
os.environ.setdefault("SUPABASE_KEY", "")

import copy
import itertools
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from photo_gallery.config import Settings
from photo_gallery.database import Base
from photo_gallery.models import CacheEntry  # noqa: F401
from photo_gallery.services.cache_store import CacheStore
from photo_gallery.services.supabase_client import (
    FOLDER_PLACEHOLDER,
    RemoteError,
    RemoteErrorKind,
    SupabaseClient,
)
from photo_gallery.utils import fallback

SUPABASE_URL = "https://test-project.supabase.co"


class FakeSupabase(SupabaseClient):
    """
    In-memory stand-in for the Supabase REST and Storage APIs.

    ``fail_with`` makes every call raise a RemoteError of that kind;
    ``fail_uploads`` lists object names (last path segment) whose upload fails.
    """

    UNIQUE_KEYS = {
        "galleries": ("id",),
        "gallery_favorites": ("gallery_id", "photo_id"),
    }

    def __init__(self, configured: bool = True):
        settings = Settings(
            supabase_url=SUPABASE_URL if configured else "",
            supabase_key="test-key" if configured else "",
        )
        super().__init__(settings=settings)
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.objects: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.fail_with: Optional[RemoteErrorKind] = None
        self.fail_uploads: Set[str] = set()
        self.calls: List[str] = []
        self._ids = itertools.count(1)

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if not self.is_ready():
            raise RemoteError(RemoteErrorKind.NOT_CONFIGURED, "Supabase URL or key not configured")
        if self.fail_with is not None:
            raise RemoteError(self.fail_with, f"simulated {self.fail_with.value}")

    @staticmethod
    def _matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
        return all(row.get(column) == value for column, value in (filters or {}).items())

    def table(self, name: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(name, [])

    # ============== Row tables ==============

    async def select(self, table, filters=None, order=None, descending=False, limit=None, columns="*"):
        self._check("select")
        rows = [copy.deepcopy(r) for r in self.table(table) if self._matches(r, filters)]
        if order:
            rows.sort(key=lambda r: r.get(order) or "", reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def count(self, table):
        self._check("count")
        return len(self.table(table))

    def _conflicts(self, table: str, row: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        keys = self.UNIQUE_KEYS.get(table)
        if not keys:
            return None
        for existing in self.table(table):
            if all(existing.get(k) == row.get(k) for k in keys):
                return existing
        return None

    async def insert(self, table, rows):
        self._check("insert")
        inserted = []
        for row in rows:
            if self._conflicts(table, row) is not None:
                raise RemoteError(RemoteErrorKind.CONFLICT, "duplicate key value", status_code=409, code="23505")
            stored = dict(row)
            stored.setdefault("id", next(self._ids))
            self.table(table).append(stored)
            inserted.append(copy.deepcopy(stored))
        return inserted

    async def upsert(self, table, rows, on_conflict="id"):
        self._check("upsert")
        result = []
        for row in rows:
            existing = next((r for r in self.table(table) if r.get(on_conflict) == row.get(on_conflict)), None)
            if existing is None:
                existing = dict(row)
                self.table(table).append(existing)
            else:
                existing.update(row)
            result.append(copy.deepcopy(existing))
        return result

    async def update(self, table, values, filters):
        self._check("update")
        updated = []
        for row in self.table(table):
            if self._matches(row, filters):
                row.update(values)
                updated.append(copy.deepcopy(row))
        return updated

    async def delete(self, table, filters):
        self._check("delete")
        kept, removed = [], []
        for row in self.table(table):
            (removed if self._matches(row, filters) else kept).append(row)
        self.tables[table] = kept
        return removed

    # ============== Object storage ==============

    def bucket(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self.objects.setdefault(name, {})

    async def list_files(self, bucket, folder):
        self._check("list_files")
        files = []
        for path, obj in sorted(self.bucket(bucket).items()):
            parent, _, name = path.rpartition("/")
            if parent != folder or name == FOLDER_PLACEHOLDER:
                continue
            files.append({
                "name": name,
                "id": obj["id"],
                "created_at": obj["created_at"],
                "metadata": {"size": len(obj["content"]), "mimetype": obj["content_type"]},
            })
        return files

    async def upload_file(self, bucket, path, content, content_type, upsert=False):
        self._check("upload_file")
        if path.rpartition("/")[2] in self.fail_uploads:
            raise RemoteError(RemoteErrorKind.SERVER, "simulated upload failure", status_code=500)
        if path in self.bucket(bucket) and not upsert:
            raise RemoteError(RemoteErrorKind.CONFLICT, "The resource already exists", status_code=409)
        self.bucket(bucket)[path] = {
            "id": f"obj-{next(self._ids)}",
            "content": content,
            "content_type": content_type,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        return path

    async def list_object_paths(self, bucket, folder):
        self._check("list_object_paths")
        return sorted(path for path in self.bucket(bucket) if path.startswith(f"{folder}/"))

    async def delete_files(self, bucket, paths):
        self._check("delete_files")
        for path in paths:
            self.bucket(bucket).pop(path, None)

    async def test_connection(self):
        try:
            self._check("test_connection")
        except RemoteError:
            return False
        return True

    # ============== Test helpers ==============

    def put_object(self, bucket: str, path: str, content: bytes = b"x", content_type: str = "image/jpeg",
                   created_at: str = "2024-05-01T10:00:00+00:00") -> None:
        self.bucket(bucket)[path] = {
            "id": f"obj-{next(self._ids)}",
            "content": content,
            "content_type": content_type,
            "created_at": created_at,
        }


@pytest.fixture(autouse=True)
def reset_fallback_strategy():
    fallback._fallback_strategy = None
    yield
    fallback._fallback_strategy = None


@pytest.fixture
async def db_session():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def cache(db_session) -> CacheStore:
    return CacheStore(db_session)


@pytest.fixture
def remote() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def offline_remote() -> FakeSupabase:
    return FakeSupabase(configured=False)


@pytest.fixture
async def client(db_session, remote):
    """HTTP client against the app with the cache session and Supabase replaced."""
    from photo_gallery.database import get_db
    from photo_gallery.dependencies.services import get_remote
    from photo_gallery.main import app
    from photo_gallery.utils.prometheus_metrics import ready

    async def override_get_db():
        yield db_session
        await db_session.commit()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_remote] = lambda: remote
    ready.set(1)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()


@pytest.fixture
async def admin_headers(client) -> Dict[str, str]:
    response = await client.post("/api/admin/login", json={"password": "test-admin-password"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
