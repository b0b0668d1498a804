"""
Supabase REST (PostgREST) and Storage API client.

Thin adapter over the backend-as-a-service: row tables with equality filters and
ordering, and an object bucket with list/upload/delete/public-URL. Every failure is
raised as a RemoteError carrying an explicit RemoteErrorKind so callers can branch
on it instead of sniffing messages.

PostgREST reference: https://postgrest.org/en/stable/references/api.html
Storage reference: https://supabase.com/docs/reference/api (storage endpoints)
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from photo_gallery.config import Settings, get_settings
from photo_gallery.utils.prometheus_metrics import record_external_request

logger = logging.getLogger("photo_gallery.remote")

FOLDER_PLACEHOLDER = ".emptyFolderPlaceholder"
LIST_PAGE_SIZE = 1000

# PostgREST / Postgres codes for a table that does not exist
_TABLE_MISSING_CODES = {"42P01", "PGRST205", "PGRST106"}


class RemoteErrorKind(str, Enum):
    """Why a remote call failed."""
    NOT_CONFIGURED = "not_configured"  # URL or key missing
    UNREACHABLE = "unreachable"  # network error or timeout
    TABLE_MISSING = "table_missing"  # table or bucket does not exist
    NOT_FOUND = "not_found"  # object or row does not exist
    CONFLICT = "conflict"  # duplicate key / object already exists
    REJECTED = "rejected"  # 4xx: bad credentials, bad request, policy denial
    SERVER = "server"  # 5xx


class RemoteError(Exception):
    """Failure of a Supabase call."""

    def __init__(
        self,
        kind: RemoteErrorKind,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.code = code

    def __repr__(self) -> str:
        return f"<RemoteError(kind={self.kind.value}, status={self.status_code}, code={self.code})>"


def classify_response(response: httpx.Response) -> RemoteError:
    """Build a RemoteError from a non-2xx response."""
    status_code = response.status_code
    code: Optional[str] = None
    message = response.reason_phrase or f"HTTP {status_code}"

    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        code = body.get("code")
        message = body.get("message") or body.get("error") or message
        # Storage reports the logical status inside the body
        inner_status = body.get("statusCode")
        if inner_status is not None:
            try:
                status_code = int(inner_status)
            except (TypeError, ValueError):
                pass
        if code is not None:
            code = str(code)

    if code in _TABLE_MISSING_CODES:
        kind = RemoteErrorKind.TABLE_MISSING
    elif isinstance(message, str) and "bucket not found" in message.lower():
        kind = RemoteErrorKind.TABLE_MISSING
    elif status_code == 404:
        kind = RemoteErrorKind.NOT_FOUND
    elif status_code == 409 or code == "23505":
        kind = RemoteErrorKind.CONFLICT
    elif status_code >= 500:
        kind = RemoteErrorKind.SERVER
    else:
        kind = RemoteErrorKind.REJECTED

    return RemoteError(kind, str(message), status_code=status_code, code=code)


class SupabaseClient:
    """
    Service for interacting with a Supabase project.

    Table layout (fixed by the application):
    - galleries, gallery_favorites, gallery_comments
    Storage layout:
    - one bucket (default "photos"), one folder per gallery
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    def is_ready(self) -> bool:
        """True when URL and API key are configured."""
        return self.settings.supabase_configured

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.settings.supabase_key,
            "Authorization": f"Bearer {self.settings.supabase_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.supabase_timeout_seconds,
            transport=self._transport,
        )

    async def _request(self, service: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if not self.is_ready():
            raise RemoteError(RemoteErrorKind.NOT_CONFIGURED, "Supabase URL or key not configured")

        try:
            async with record_external_request(service):
                async with self._client() as client:
                    response = await client.request(method, url, **kwargs)
                if response.status_code >= 400:
                    raise classify_response(response)
                return response
        except httpx.TimeoutException as e:
            logger.error("Remote request timeout", extra={"event": "remote", "service": service, "method": method})
            raise RemoteError(RemoteErrorKind.UNREACHABLE, "Request timed out") from e
        except httpx.HTTPError as e:
            logger.error(
                "Remote request network error",
                extra={"event": "remote", "service": service, "method": method, "error_type": type(e).__name__},
            )
            raise RemoteError(RemoteErrorKind.UNREACHABLE, f"Network error: {type(e).__name__}") from e

    # ============== Row tables ==============

    def _table_url(self, table: str) -> str:
        return f"{self.settings.supabase_url}/rest/v1/{table}"

    @staticmethod
    def _filter_params(filters: Optional[Dict[str, Any]]) -> Dict[str, str]:
        params: Dict[str, str] = {}
        for column, value in (filters or {}).items():
            if isinstance(value, bool):
                value = "true" if value else "false"
            params[column] = f"eq.{value}"
        return params

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        columns: str = "*",
    ) -> List[Dict[str, Any]]:
        """
        Select rows matching every equality filter.

        Args:
            table: Table name
            filters: column -> value equality predicates
            order: Column to order by
            descending: Order direction
            limit: Maximum number of rows
            columns: PostgREST select list

        Returns:
            List of row dicts
        """
        params = {"select": columns, **self._filter_params(filters)}
        if order:
            params["order"] = f"{order}.{'desc' if descending else 'asc'}"
        if limit is not None:
            params["limit"] = str(limit)
        response = await self._request("supabase_rest", "GET", self._table_url(table), params=params, headers=self._headers())
        return response.json() or []

    async def count(self, table: str) -> int:
        """Exact row count of a table."""
        response = await self._request(
            "supabase_rest",
            "HEAD",
            self._table_url(table),
            params={"select": "id"},
            headers=self._headers({"Prefer": "count=exact"}),
        )
        content_range = response.headers.get("content-range", "")
        total = content_range.rsplit("/", 1)[-1] if "/" in content_range else ""
        return int(total) if total.isdigit() else 0

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        response = await self._request(
            "supabase_rest",
            "POST",
            self._table_url(table),
            json=rows,
            headers=self._headers({"Prefer": "return=representation"}),
        )
        return response.json() or []

    async def upsert(
        self,
        table: str,
        rows: List[Dict[str, Any]],
        on_conflict: str = "id",
    ) -> List[Dict[str, Any]]:
        response = await self._request(
            "supabase_rest",
            "POST",
            self._table_url(table),
            params={"on_conflict": on_conflict},
            json=rows,
            headers=self._headers({"Prefer": "resolution=merge-duplicates,return=representation"}),
        )
        return response.json() or []

    async def update(
        self,
        table: str,
        values: Dict[str, Any],
        filters: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        """Update matching rows; returns the updated rows (empty when nothing matched)."""
        response = await self._request(
            "supabase_rest",
            "PATCH",
            self._table_url(table),
            params=self._filter_params(filters),
            json=values,
            headers=self._headers({"Prefer": "return=representation"}),
        )
        return response.json() or []

    async def delete(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Delete matching rows; returns the deleted rows."""
        if not filters:
            raise ValueError("Refusing to delete without filters")
        response = await self._request(
            "supabase_rest",
            "DELETE",
            self._table_url(table),
            params=self._filter_params(filters),
            headers=self._headers({"Prefer": "return=representation"}),
        )
        return response.json() or []

    # ============== Object storage ==============

    def _object_url(self, bucket: str, path: str) -> str:
        return f"{self.settings.supabase_url}/storage/v1/object/{bucket}/{quote(path)}"

    def get_public_url(self, bucket: str, path: str) -> str:
        """Public URL of an object (the bucket must be public)."""
        return f"{self.settings.supabase_url}/storage/v1/object/public/{bucket}/{quote(path)}"

    async def _list_entries(self, bucket: str, folder: str) -> List[Dict[str, Any]]:
        """Every entry directly inside a folder, sub-folders included, across all pages."""
        url = f"{self.settings.supabase_url}/storage/v1/object/list/{bucket}"
        entries: List[Dict[str, Any]] = []
        offset = 0
        while True:
            body = {
                "prefix": folder,
                "limit": LIST_PAGE_SIZE,
                "offset": offset,
                "sortBy": {"column": "name", "order": "asc"},
            }
            response = await self._request("supabase_storage", "POST", url, json=body, headers=self._headers())
            page = response.json() or []
            entries.extend(page)
            if len(page) < LIST_PAGE_SIZE:
                break
            offset += LIST_PAGE_SIZE
        return entries

    async def list_files(self, bucket: str, folder: str) -> List[Dict[str, Any]]:
        """
        List the files directly inside a folder.

        Sub-folders (entries without an id) and the folder placeholder are skipped.
        """
        return [
            item for item in await self._list_entries(bucket, folder)
            if item.get("id") is not None and item.get("name") != FOLDER_PLACEHOLDER
        ]

    async def list_object_paths(self, bucket: str, folder: str) -> List[str]:
        """
        Paths of every object under a folder, walking sub-folders.

        The folder placeholder is included, so deleting the result removes the folder.
        """
        paths: List[str] = []
        pending = [folder]
        while pending:
            current = pending.pop()
            for item in await self._list_entries(bucket, current):
                name = item.get("name")
                if not name:
                    continue
                if item.get("id") is None:
                    pending.append(f"{current}/{name}")
                else:
                    paths.append(f"{current}/{name}")
        return sorted(paths)

    async def upload_file(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> str:
        """
        Upload an object.

        Returns:
            The object path inside the bucket
        """
        await self._request(
            "supabase_storage",
            "POST",
            self._object_url(bucket, path),
            content=content,
            headers=self._headers({
                "Content-Type": content_type,
                "x-upsert": "true" if upsert else "false",
            }),
        )
        return path

    async def delete_files(self, bucket: str, paths: List[str]) -> None:
        if not paths:
            return
        await self._request(
            "supabase_storage",
            "DELETE",
            f"{self.settings.supabase_url}/storage/v1/object/{bucket}",
            json={"prefixes": paths},
            headers=self._headers(),
        )

    async def create_folder(self, bucket: str, folder: str) -> None:
        """Folders only exist through their objects; a placeholder object makes one visible."""
        await self.upload_file(
            bucket,
            f"{folder}/{FOLDER_PLACEHOLDER}",
            b"",
            "application/octet-stream",
            upsert=True,
        )

    async def test_connection(self) -> bool:
        try:
            await self.select(self.settings.galleries_table, columns="id", limit=1)
            return True
        except RemoteError as e:
            logger.warning(
                "Remote connection test failed",
                extra={"event": "remote", "kind": e.kind.value, "status": e.status_code},
            )
            return False


# Singleton instance
_supabase_client: Optional[SupabaseClient] = None


def get_supabase_client() -> SupabaseClient:
    """Get the singleton Supabase client instance."""
    global _supabase_client
    if _supabase_client is None:
        _supabase_client = SupabaseClient()
    return _supabase_client
