"""
Client URL routing.

Three URL shapes exist: ``/`` (gallery listing), ``/gallery/<id>`` (viewer) and
``/admin`` (management). Anything else resolves to home.
"""
import logging
import re
from enum import Enum
from typing import Callable, List, Optional
from urllib.parse import urlsplit

from photo_gallery.schemas.base import CamelModel

logger = logging.getLogger("photo_gallery.navigation")

_GALLERY_PATH = re.compile(r"^/gallery/([^/]+)$")


class RouteType(str, Enum):
    HOME = "home"
    GALLERY = "gallery"
    ADMIN = "admin"


class Route(CamelModel):
    path: str
    type: RouteType
    gallery_id: Optional[str] = None


HOME_ROUTE = Route(path="/", type=RouteType.HOME)

RouteListener = Callable[[Route], None]


def parse_route(path: Optional[str]) -> Route:
    """
    Map a path to a route. Query string and fragment are ignored.

    >>> parse_route("/gallery/abc123/").gallery_id
    'abc123'
    >>> parse_route("/nowhere").type
    <RouteType.HOME: 'home'>
    """
    if not isinstance(path, str):
        return HOME_ROUTE

    clean = urlsplit(path).path.rstrip("/") or "/"

    match = _GALLERY_PATH.match(clean)
    if match:
        return Route(path=clean, type=RouteType.GALLERY, gallery_id=match.group(1))

    if clean == "/admin":
        return Route(path=clean, type=RouteType.ADMIN)

    return HOME_ROUTE


class Router:
    """
    History-backed navigation state.

    The history list and the current route always change together. ``back`` and
    ``forward`` move through history like browser popstate; ``location_changed``
    replaces the current entry with a location set from outside.
    """

    def __init__(self, initial_path: str = "/"):
        self._history: List[str] = [initial_path]
        self._index = 0
        self._current = parse_route(initial_path)
        self._listeners: List[RouteListener] = []

    @property
    def current_route(self) -> Route:
        return self._current

    @property
    def location(self) -> str:
        return self._history[self._index]

    @property
    def history(self) -> List[str]:
        return list(self._history)

    def can_go_back(self) -> bool:
        return self._index > 0

    def can_go_forward(self) -> bool:
        return self._index < len(self._history) - 1

    def subscribe(self, listener: RouteListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_route(self, route: Route) -> None:
        if route == self._current:
            return
        self._current = route
        logger.debug("Route changed", extra={"event": "navigation", "route_type": route.type.value})
        for listener in list(self._listeners):
            listener(route)

    def navigate_to(self, path: str) -> Route:
        route = parse_route(path)
        if path != self.location:
            # a new entry drops everything ahead of the current one
            del self._history[self._index + 1:]
            self._history.append(path)
            self._index += 1
        self._set_route(route)
        return route

    def navigate_to_gallery(self, gallery_id: str) -> Route:
        if not gallery_id:
            raise ValueError("gallery_id is required")
        return self.navigate_to(f"/gallery/{gallery_id}")

    def navigate_to_home(self) -> Route:
        return self.navigate_to("/")

    def navigate_to_admin(self) -> Route:
        return self.navigate_to("/admin")

    def back(self) -> Route:
        if self.can_go_back():
            self._index -= 1
            self._set_route(parse_route(self.location))
        return self._current

    def forward(self) -> Route:
        if self.can_go_forward():
            self._index += 1
            self._set_route(parse_route(self.location))
        return self._current

    def location_changed(self, path: str) -> Route:
        self._history[self._index] = path
        self._set_route(parse_route(path))
        return self._current

    def current_gallery_id(self) -> Optional[str]:
        if self._current.type == RouteType.GALLERY:
            return self._current.gallery_id
        return None
