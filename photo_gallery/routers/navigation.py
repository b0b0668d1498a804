"""
Route resolution for client URLs.
"""
from fastapi import APIRouter, Query

from photo_gallery.navigation import Route, parse_route

router = APIRouter(prefix="/api", tags=["Navigation"])


@router.get(
    "/route",
    response_model=Route,
    summary="Resolve a client URL",
)
async def resolve_route(
    path: str = Query("/", max_length=2048, description="Client path, e.g. /gallery/abc123"),
) -> Route:
    """
    Map a path to home, gallery or admin. Unknown paths resolve to home.
    """
    return parse_route(path)
