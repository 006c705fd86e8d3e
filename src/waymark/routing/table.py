"""Route table — method-keyed, registration-ordered route storage.

Routes are registered during setup and the table is compiled (frozen)
before the first dispatch. After that it is read-only and may be shared
by concurrent requests.
"""

import logging
import threading

from waymark.errors import ConfigurationError
from waymark.routing.pattern import normalize_path
from waymark.routing.route import HttpMethod, Route, RouteMatch

logger = logging.getLogger("waymark.routing")


class RouteTable:
    """Maps ``method -> {pattern text: Route}``.

    Usage::

        table = RouteTable()
        table.add(Route(HttpMethod.GET, "/users/{id}", handler))
        table.compile()
        match = table.match("GET", "/users/42")

    Uniqueness is by method plus compiled pattern text. Adding a route
    whose key already exists replaces the earlier route in place, so
    the newcomer keeps the original's position in match order.
    """

    __slots__ = ("_compiled", "_lock", "_routes")

    def __init__(self) -> None:
        self._routes: dict[HttpMethod, dict[str, Route]] = {}
        self._compiled = False
        self._lock = threading.Lock()

    def add(self, route: Route) -> Route:
        """Add a route. Must be called before ``compile()``."""
        if self._compiled:
            msg = "Cannot add routes after the route table is compiled."
            raise ConfigurationError(msg)

        by_pattern = self._routes.setdefault(route.method, {})
        previous = by_pattern.get(route.pattern.text)
        if previous is not None:
            logger.debug(
                "Route %s %s replaces %s %s",
                route.method,
                route.path or "/",
                previous.method,
                previous.path or "/",
            )
        by_pattern[route.pattern.text] = route
        return route

    @property
    def compiled(self) -> bool:
        return self._compiled

    def compile(self) -> None:
        """Freeze the table. No more routes can be added or renamed.

        Safe to call from several threads; only the first call does work.
        """
        if self._compiled:
            return
        with self._lock:
            if self._compiled:
                return
            for route in self.routes:
                route.seal()
            self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch | None:
        """Return the first route for *method* whose pattern matches *path*.

        Routes are tried in registration order. Returns ``None`` when the
        method has no routes or none of them match.
        """
        by_pattern = self._routes.get(method.upper())  # type: ignore[call-overload]
        if not by_pattern:
            return None

        path = normalize_path(path)
        for route in by_pattern.values():
            params = route.pattern.match(path)
            if params is not None:
                return RouteMatch(route=route, path_params=params)
        return None

    def allowed_methods(self, path: str) -> frozenset[str]:
        """Methods with at least one route matching *path*."""
        path = normalize_path(path)
        return frozenset(
            str(method)
            for method, by_pattern in self._routes.items()
            if any(route.pattern.match(path) is not None for route in by_pattern.values())
        )

    @property
    def routes(self) -> list[Route]:
        """Every registered route, grouped by method, in registration order."""
        return [route for by_pattern in self._routes.values() for route in by_pattern.values()]

    def find(self, name: str) -> Route | None:
        """Return the route registered under *name*, if any.

        When several routes share a name, the first one in table order wins.
        """
        for route in self.routes:
            if route.name == name:
                return route
        return None

    def __len__(self) -> int:
        return sum(len(by_pattern) for by_pattern in self._routes.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.find(name) is not None
